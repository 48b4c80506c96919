"""
FastAPI Application Entry Point

Restaurant Storefront - public ordering API plus admin back office.

Endpoints:
    - GET /api/store: Storefront catalog and settings
    - POST /api/whatsapp-order: Submit a cart as a WhatsApp order message
    - POST /admin/login, /admin/logout: Admin session cookie
    - /admin/*: Catalog management (session required)
    - GET /health: System health check
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, List

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import get_settings, setup_logging
from storefront.database import engine, get_db, init_db
from storefront.ordering.formatter import build_order_message
from storefront.schemas import (
    AddonCreate,
    AddonGroupCreate,
    AddonGroupLink,
    CategoryCreate,
    CategoryOrderItem,
    ErrorResponse,
    HealthResponse,
    LoginRequest,
    MutationResponse,
    OrderSubmission,
    OrderSubmitResponse,
    ProductCreate,
    ProductSchema,
    ProductStatusUpdate,
    SettingsUpdate,
    StoreDataResponse,
    StoreSettingsSchema,
    VariantCreate,
    VariantUpdate,
)
from storefront.services.auth import issue_session_token, require_admin, verify_password
from storefront.services.catalog import CatalogError, CatalogNotFoundError, CatalogService
from storefront.services.messaging import (
    BaseMessagingService,
    get_messaging_service,
    to_whatsapp_chat_id,
)

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("Database initialized")

    messaging_service = get_messaging_service()
    logger.info(f"Messaging Service: {messaging_service.provider_name}")

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"Missing config: {missing}")

    logger.info("Application ready")

    yield  # Application runs

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Online ordering storefront for a single restaurant. Orders are "
        "delivered to the owner as WhatsApp messages."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_catalog(db: AsyncSession = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "store": "/api/store",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    messaging: BaseMessagingService = Depends(get_messaging_service),
) -> HealthResponse:
    """Verify the data store and messaging channel are reachable."""

    db_status = "healthy"
    try:
        await db.execute(select(1))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    messaging_status = "healthy" if await messaging.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, messaging_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        messaging_service=messaging_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# STOREFRONT ENDPOINTS
# =============================================================================

@app.get(
    "/api/store",
    response_model=StoreDataResponse,
    tags=["Storefront"],
    summary="Storefront Catalog",
)
async def get_store_data(catalog: CatalogService = Depends(get_catalog)) -> StoreDataResponse:
    """Settings, categories, active products and add-on groups."""
    return await catalog.fetch_store_data(include_inactive=False)


@app.post(
    "/api/whatsapp-order",
    response_model=OrderSubmitResponse,
    responses={500: {"model": OrderSubmitResponse}},
    tags=["Storefront"],
    summary="Submit Order",
)
async def submit_order(
    request: Request,
    messaging: BaseMessagingService = Depends(get_messaging_service),
) -> Any:
    """
    Format the submitted cart as an order message and send it to the owner.

    Body: ``{items, subtotal, deliveryFee, settings, customer}``.
    The cart is client-held; a failed submission leaves it untouched so the
    shopper can retry.
    """
    try:
        payload = OrderSubmission.model_validate(await request.json())
    except ValidationError as e:
        logger.warning(f"Rejected order payload: {e.error_count()} validation errors")
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": "Invalid order payload", "detail": str(e)},
        )
    except ValueError as e:
        logger.warning(f"Unreadable order payload: {e}")
        return JSONResponse(status_code=500, content={"ok": False, "error": "Invalid JSON body"})

    try:
        body = build_order_message(
            payload.items,
            payload.subtotal,
            payload.delivery_fee,
            payload.settings,
            payload.customer,
        )
        to = to_whatsapp_chat_id(settings.owner_whatsapp_number or "")
        logger.info(
            f"Submitting order for {payload.customer.name or 'anonymous'} "
            f"({len(payload.items)} items, {payload.customer.type.value})"
        )
        result = await messaging.send_text(to, body)
    except Exception as e:
        logger.exception(f"Error submitting order: {e}")
        return JSONResponse(status_code=500, content={"ok": False, "error": str(e) or "Unknown error"})

    if not result.success:
        logger.warning(f"Order delivery failed via {result.provider}: {result.error_message}")
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": result.error_message, "detail": result.detail},
        )

    logger.info(f"Order delivered via {result.provider} (ID: {result.message_id})")
    return {"ok": True}


# =============================================================================
# ADMIN SESSION
# =============================================================================

@app.post("/admin/login", tags=["Admin"], responses={401: {"model": ErrorResponse}})
async def admin_login(data: LoginRequest, response: Response) -> dict[str, Any]:
    """Exchange the admin password for a signed session cookie."""
    if not settings.admin_password:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin access is not configured",
        )

    if not verify_password(data.password, settings.admin_password):
        logger.warning("Failed admin login attempt")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "error": "Invalid password"},
        )

    response.set_cookie(
        key=settings.session_cookie_name,
        value=issue_session_token(settings.admin_password),
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )
    logger.info("Admin logged in")
    return {"success": True}


@app.post("/admin/logout", tags=["Admin"])
async def admin_logout(response: Response) -> dict[str, Any]:
    response.delete_cookie(settings.session_cookie_name, path="/")
    return {"success": True}


# =============================================================================
# ADMIN CATALOG ENDPOINTS
# =============================================================================

@app.get(
    "/admin/data",
    response_model=StoreDataResponse,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def get_admin_data(catalog: CatalogService = Depends(get_catalog)) -> StoreDataResponse:
    """Same as the storefront read, including inactive products."""
    return await catalog.fetch_store_data(include_inactive=True)


@app.put(
    "/admin/settings",
    response_model=StoreSettingsSchema,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def update_settings(
    data: SettingsUpdate,
    catalog: CatalogService = Depends(get_catalog),
) -> StoreSettingsSchema:
    return await catalog.update_settings(data)


@app.post(
    "/admin/categories",
    response_model=MutationResponse,
    status_code=201,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def create_category(
    data: CategoryCreate,
    catalog: CatalogService = Depends(get_catalog),
) -> MutationResponse:
    category = await catalog.create_category(data.name)
    return MutationResponse(id=category.id)


@app.put(
    "/admin/categories/order",
    response_model=MutationResponse,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def reorder_categories(
    items: List[CategoryOrderItem],
    catalog: CatalogService = Depends(get_catalog),
) -> MutationResponse:
    await catalog.reorder_categories(items)
    return MutationResponse()


@app.delete(
    "/admin/categories/{category_id}",
    response_model=MutationResponse,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def delete_category(
    category_id: str,
    catalog: CatalogService = Depends(get_catalog),
) -> MutationResponse:
    await catalog.delete_category(category_id)
    return MutationResponse(id=category_id)


@app.post(
    "/admin/products",
    response_model=MutationResponse,
    status_code=201,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def create_product(
    data: ProductCreate,
    catalog: CatalogService = Depends(get_catalog),
) -> MutationResponse:
    product = await catalog.create_product(data)
    return MutationResponse(id=product.id)


@app.get(
    "/admin/products/{product_id}",
    response_model=ProductSchema,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def get_product(
    product_id: str,
    catalog: CatalogService = Depends(get_catalog),
) -> ProductSchema:
    """Single product with variants and linked add-on groups, active or not."""
    return await catalog.get_product(product_id)


@app.patch(
    "/admin/products/{product_id}/status",
    response_model=MutationResponse,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def update_product_status(
    product_id: str,
    data: ProductStatusUpdate,
    catalog: CatalogService = Depends(get_catalog),
) -> MutationResponse:
    await catalog.set_product_status(product_id, data.is_active)
    return MutationResponse(id=product_id)


@app.delete(
    "/admin/products/{product_id}",
    response_model=MutationResponse,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def delete_product(
    product_id: str,
    catalog: CatalogService = Depends(get_catalog),
) -> MutationResponse:
    await catalog.delete_product(product_id)
    return MutationResponse(id=product_id)


@app.put(
    "/admin/products/{product_id}/addon-groups/{group_id}",
    response_model=MutationResponse,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def link_addon_group(
    product_id: str,
    group_id: str,
    data: AddonGroupLink,
    catalog: CatalogService = Depends(get_catalog),
) -> MutationResponse:
    await catalog.set_product_addon_group(product_id, group_id, data.linked)
    return MutationResponse(id=product_id)


@app.post(
    "/admin/variants",
    response_model=MutationResponse,
    status_code=201,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def create_variant(
    data: VariantCreate,
    catalog: CatalogService = Depends(get_catalog),
) -> MutationResponse:
    variant = await catalog.create_variant(data)
    return MutationResponse(id=variant.id)


@app.put(
    "/admin/variants/{variant_id}",
    response_model=MutationResponse,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def update_variant(
    variant_id: str,
    data: VariantUpdate,
    catalog: CatalogService = Depends(get_catalog),
) -> MutationResponse:
    await catalog.update_variant(variant_id, data)
    return MutationResponse(id=variant_id)


@app.delete(
    "/admin/variants/{variant_id}",
    response_model=MutationResponse,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def delete_variant(
    variant_id: str,
    catalog: CatalogService = Depends(get_catalog),
) -> MutationResponse:
    await catalog.delete_variant(variant_id)
    return MutationResponse(id=variant_id)


@app.post(
    "/admin/addon-groups",
    response_model=MutationResponse,
    status_code=201,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def create_addon_group(
    data: AddonGroupCreate,
    catalog: CatalogService = Depends(get_catalog),
) -> MutationResponse:
    group = await catalog.create_addon_group(data)
    return MutationResponse(id=group.id)


@app.delete(
    "/admin/addon-groups/{group_id}",
    response_model=MutationResponse,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def delete_addon_group(
    group_id: str,
    catalog: CatalogService = Depends(get_catalog),
) -> MutationResponse:
    await catalog.delete_addon_group(group_id)
    return MutationResponse(id=group_id)


@app.post(
    "/admin/addons",
    response_model=MutationResponse,
    status_code=201,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def create_addon(
    data: AddonCreate,
    catalog: CatalogService = Depends(get_catalog),
) -> MutationResponse:
    addon = await catalog.create_addon(data)
    return MutationResponse(id=addon.id)


@app.delete(
    "/admin/addons/{addon_id}",
    response_model=MutationResponse,
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)
async def delete_addon(
    addon_id: str,
    catalog: CatalogService = Depends(get_catalog),
) -> MutationResponse:
    await catalog.delete_addon(addon_id)
    return MutationResponse(id=addon_id)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(CatalogNotFoundError)
async def catalog_not_found_handler(request: Request, exc: CatalogNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"success": False, "error": "Not Found", "detail": str(exc)},
    )


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    logger.error(f"Catalog operation failed: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Data store error", "detail": str(exc)},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )
