"""
Catalog Service

Reads the storefront catalog out of the data store and performs the admin
back-office mutations.

Reads request their ordering explicitly (categories by sort_order, add-on
groups by name); the store promises none. Every row is mapped through the
typed schemas, and rows that fail validation are skipped with a warning.

Mutations are not retried. A store failure is rolled back and re-raised
as ``CatalogError`` tagged with the operation name, e.g.
``"deleteCategory: <database message>"``.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Sequence, Type, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, ValidationError
from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.models import (
    Addon,
    AddonGroup,
    AddonGroupType,
    Category,
    Product,
    StoreSetting,
    Variant,
    product_addon_groups,
)
from storefront.schemas import (
    AddonCreate,
    AddonGroupCreate,
    AddonGroupSchema,
    CategoryOrderItem,
    CategorySchema,
    ProductCreate,
    ProductSchema,
    SettingsUpdate,
    StoreDataResponse,
    StoreSettingsSchema,
    VariantCreate,
    VariantUpdate,
)

logger = logging.getLogger(__name__)

SETTINGS_KEY = "restaurant_info"
PLACEHOLDER_IMAGE_URL = "https://placehold.co/400x300/orange/white?text={name}"
DEFAULT_VARIANT_SIZE = "Standard"
DEFAULT_VARIANT_CRUST = "Original"

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class CatalogError(Exception):
    """A data-store operation failed."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation}: {message}")


class CatalogNotFoundError(CatalogError):
    """The entity an operation targets does not exist."""


def map_rows(schema: Type[SchemaT], rows: Sequence[object], entity: str) -> List[SchemaT]:
    """Validate raw store rows into ``schema``; malformed rows are dropped."""
    mapped = []
    for row in rows:
        try:
            mapped.append(schema.model_validate(row))
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed {entity} row {getattr(row, 'id', '?')}: "
                f"{e.error_count()} validation errors"
            )
    return mapped


class CatalogService:
    """
    Data access for the storefront and the admin back office.

    Args:
        db: Async session; the service commits its own mutations
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _operation(self, name: str) -> AsyncIterator[None]:
        try:
            yield
            await self.db.commit()
        except CatalogError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"{name} failed: {e}")
            raise CatalogError(name, str(e.__cause__ or e)) from e

    async def _get_or_404(self, model, entity_id: str, operation: str):
        obj = await self.db.get(model, entity_id)
        if obj is None:
            raise CatalogNotFoundError(operation, f"{model.__name__} {entity_id} not found")
        return obj

    # =========================================================================
    # READS
    # =========================================================================

    async def get_store_settings(self) -> StoreSettingsSchema:
        try:
            row = await self.db.get(StoreSetting, SETTINGS_KEY)
        except SQLAlchemyError as e:
            raise CatalogError("settings.select", str(e)) from e

        value = row.value if row is not None else None
        if not isinstance(value, dict):
            return StoreSettingsSchema()
        try:
            return StoreSettingsSchema.model_validate(value)
        except ValidationError as e:
            logger.warning(f"Stored settings are malformed, using defaults: {e.error_count()} errors")
            return StoreSettingsSchema()

    async def list_categories(self, include_inactive: bool = False) -> List[CategorySchema]:
        query = select(Category).order_by(Category.sort_order, Category.name)
        if not include_inactive:
            query = query.where(Category.is_active.is_(True))
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise CatalogError("categories.select", str(e)) from e
        return map_rows(CategorySchema, result.scalars().all(), "category")

    async def list_addon_groups(self) -> List[AddonGroupSchema]:
        try:
            result = await self.db.execute(
                select(AddonGroup)
                .options(selectinload(AddonGroup.addons))
                .order_by(AddonGroup.name)
            )
        except SQLAlchemyError as e:
            raise CatalogError("addon_groups.select", str(e)) from e
        return map_rows(AddonGroupSchema, result.scalars().all(), "addon group")

    async def list_products(self, include_inactive: bool = False) -> List[ProductSchema]:
        query = (
            select(Product)
            .options(
                selectinload(Product.variants),
                selectinload(Product.addon_groups).selectinload(AddonGroup.addons),
            )
            .order_by(Product.name)
        )
        if not include_inactive:
            query = query.where(Product.is_active.is_(True))
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise CatalogError("products.select", str(e)) from e
        return map_rows(ProductSchema, result.scalars().all(), "product")

    async def get_product(self, product_id: str) -> ProductSchema:
        try:
            result = await self.db.execute(
                select(Product)
                .options(
                    selectinload(Product.variants),
                    selectinload(Product.addon_groups).selectinload(AddonGroup.addons),
                )
                .where(Product.id == product_id)
            )
        except SQLAlchemyError as e:
            raise CatalogError("products.select", str(e)) from e
        row = result.scalar_one_or_none()
        if row is None:
            raise CatalogNotFoundError("products.select", f"Product {product_id} not found")
        return ProductSchema.model_validate(row)

    async def fetch_store_data(self, include_inactive: bool = False) -> StoreDataResponse:
        """
        Load everything the storefront renders in one go.

        Args:
            include_inactive: Admin view; also return deactivated categories and products
        """
        return StoreDataResponse(
            settings=await self.get_store_settings(),
            categories=await self.list_categories(include_inactive=include_inactive),
            products=await self.list_products(include_inactive=include_inactive),
            addon_groups=await self.list_addon_groups(),
        )

    # =========================================================================
    # SETTINGS
    # =========================================================================

    async def update_settings(self, data: SettingsUpdate) -> StoreSettingsSchema:
        async with self._operation("updateSettings"):
            row = await self.db.get(StoreSetting, SETTINGS_KEY)
            value = data.model_dump()
            if row is None:
                self.db.add(StoreSetting(key=SETTINGS_KEY, value=value))
            else:
                row.value = value
        logger.info(f"Store settings updated ({data.name})")
        return StoreSettingsSchema.model_validate(value)

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def create_category(self, name: str) -> Category:
        async with self._operation("createCategory"):
            result = await self.db.execute(select(func.max(Category.sort_order)))
            next_order = (result.scalar() or 0) + 1
            category = Category(name=name, sort_order=next_order)
            self.db.add(category)
        logger.info(f"Category created: {name} (#{next_order})")
        return category

    async def reorder_categories(self, items: Sequence[CategoryOrderItem]) -> None:
        async with self._operation("updateCategoryOrderBulk"):
            for item in items:
                category = await self._get_or_404(Category, item.id, "updateCategoryOrderBulk")
                category.sort_order = item.sort_order

    async def delete_category(self, category_id: str) -> None:
        async with self._operation("deleteCategory"):
            category = await self._get_or_404(Category, category_id, "deleteCategory")
            await self.db.delete(category)
        logger.info(f"Category deleted: {category_id}")

    # =========================================================================
    # PRODUCTS
    # =========================================================================

    async def create_product(self, data: ProductCreate) -> Product:
        """Create a product together with its default variant."""
        image_url = data.image_url or PLACEHOLDER_IMAGE_URL.format(name=quote(data.name))
        async with self._operation("createProduct"):
            if data.category_id:
                await self._get_or_404(Category, data.category_id, "createProduct")
            product = Product(
                name=data.name,
                description=data.description,
                category_id=data.category_id,
                image_url=image_url,
                is_active=True,
            )
            self.db.add(product)
            await self.db.flush()
            self.db.add(Variant(
                product_id=product.id,
                size=DEFAULT_VARIANT_SIZE,
                crust=DEFAULT_VARIANT_CRUST,
                price=data.price,
                is_active=True,
            ))
        logger.info(f"Product created: {data.name} ({product.id})")
        return product

    async def set_product_status(self, product_id: str, is_active: bool) -> None:
        async with self._operation("updateProductStatus"):
            product = await self._get_or_404(Product, product_id, "updateProductStatus")
            product.is_active = is_active

    async def delete_product(self, product_id: str) -> None:
        async with self._operation("deleteProduct"):
            product = await self._get_or_404(Product, product_id, "deleteProduct")
            await self.db.delete(product)
        logger.info(f"Product deleted: {product_id}")

    # =========================================================================
    # VARIANTS
    # =========================================================================

    async def create_variant(self, data: VariantCreate) -> Variant:
        async with self._operation("createVariant"):
            await self._get_or_404(Product, data.product_id, "createVariant")
            variant = Variant(
                product_id=data.product_id,
                size=data.size,
                crust=data.crust,
                price=data.price,
                is_active=True,
            )
            self.db.add(variant)
        return variant

    async def update_variant(self, variant_id: str, data: VariantUpdate) -> None:
        async with self._operation("updateVariant"):
            variant = await self._get_or_404(Variant, variant_id, "updateVariant")
            variant.size = data.size
            variant.crust = data.crust
            variant.price = data.price

    async def delete_variant(self, variant_id: str) -> None:
        async with self._operation("deleteVariant"):
            variant = await self._get_or_404(Variant, variant_id, "deleteVariant")
            await self.db.delete(variant)

    # =========================================================================
    # ADD-ON GROUPS & ADD-ONS
    # =========================================================================

    async def create_addon_group(self, data: AddonGroupCreate) -> AddonGroup:
        async with self._operation("createAddonGroup"):
            group = AddonGroup(
                name=data.name,
                type=AddonGroupType(data.type.value),
                min_select=data.min_select,
                max_select=data.max_select,
                is_required=data.is_required,
                is_active=True,
            )
            self.db.add(group)
        logger.info(
            f"Add-on group created: {data.name} ({data.type.value}, "
            f"{data.min_select}-{data.max_select}, required={data.is_required})"
        )
        return group

    async def delete_addon_group(self, group_id: str) -> None:
        async with self._operation("deleteAddonGroup"):
            group = await self._get_or_404(AddonGroup, group_id, "deleteAddonGroup")
            await self.db.delete(group)

    async def create_addon(self, data: AddonCreate) -> Addon:
        async with self._operation("createAddon"):
            await self._get_or_404(AddonGroup, data.group_id, "createAddon")
            addon = Addon(group_id=data.group_id, name=data.name, price=data.price, is_active=True)
            self.db.add(addon)
        return addon

    async def delete_addon(self, addon_id: str) -> None:
        async with self._operation("deleteAddon"):
            addon = await self._get_or_404(Addon, addon_id, "deleteAddon")
            await self.db.delete(addon)

    async def set_product_addon_group(self, product_id: str, group_id: str, linked: bool) -> None:
        """
        Link or unlink a product and an add-on group.

        Both directions are idempotent: linking twice or unlinking a
        missing link succeeds without error.
        """
        operation = "toggleProductAddonGroup (link)" if linked else "toggleProductAddonGroup (unlink)"
        async with self._operation(operation):
            await self._get_or_404(Product, product_id, operation)
            await self._get_or_404(AddonGroup, group_id, operation)

            match = (
                (product_addon_groups.c.product_id == product_id)
                & (product_addon_groups.c.group_id == group_id)
            )
            if linked:
                existing = await self.db.execute(select(product_addon_groups).where(match))
                if existing.first() is None:
                    await self.db.execute(
                        insert(product_addon_groups).values(product_id=product_id, group_id=group_id)
                    )
            else:
                await self.db.execute(delete(product_addon_groups).where(match))
