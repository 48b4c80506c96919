"""
Pydantic Schemas for Request/Response Validation

Typed records for every catalog entity at the data-store boundary, the
shopper cart, and the order submission payload. Rows coming out of the
store and JSON coming off the wire are both mapped through these models,
so malformed values are rejected or defaulted here instead of leaking
into the pricing code.
"""

from enum import Enum
from typing import Annotated, Any, List, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from storefront.ordering import pricing
from storefront.ordering.pricing import coerce_minor_units


# =============================================================================
# ENUMS
# =============================================================================

class AddonGroupTypeEnum(str, Enum):
    TOPPING = "topping"
    SIDE = "side"
    DRINK = "drink"


class DeliveryTypeEnum(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


def _enum_value(v: Any) -> Any:
    if isinstance(v, Enum):
        v = v.value
    if isinstance(v, str):
        return v.strip().lower()
    return v


def _price(v: Any) -> int:
    return max(coerce_minor_units(v), 0)


def _text(v: Any) -> str:
    if v is None:
        return ""
    return v if isinstance(v, str) else str(v)


Price = Annotated[int, BeforeValidator(_price)]
Text = Annotated[str, BeforeValidator(_text)]
GroupType = Annotated[AddonGroupTypeEnum, BeforeValidator(_enum_value)]
DeliveryType = Annotated[DeliveryTypeEnum, BeforeValidator(_enum_value)]


# =============================================================================
# CATALOG ENTITIES
# =============================================================================

class AddonSchema(BaseModel):
    """Single add-on as read from the store or echoed back by the client."""
    model_config = ConfigDict(from_attributes=True)

    id: Text = ""
    group_id: Text = ""
    name: Text = ""
    price: Price = 0
    is_active: bool = True


class AddonGroupSchema(BaseModel):
    """Add-on group with its cardinality rules."""
    model_config = ConfigDict(from_attributes=True)

    id: Text = ""
    name: Text = ""
    type: GroupType = AddonGroupTypeEnum.TOPPING
    min_select: int = 0
    max_select: int = 1
    is_required: bool = False
    is_active: bool = True
    addons: List[AddonSchema] = Field(default_factory=list)

    @field_validator("min_select", "max_select", mode="before")
    @classmethod
    def coerce_counts(cls, v: Any) -> int:
        return max(coerce_minor_units(v), 0)

    @model_validator(mode="after")
    def clamp_max_select(self) -> "AddonGroupSchema":
        if self.max_select < self.min_select:
            self.max_select = self.min_select
        return self

    @property
    def is_food(self) -> bool:
        return self.type in (AddonGroupTypeEnum.TOPPING, AddonGroupTypeEnum.SIDE)

    @property
    def is_drink(self) -> bool:
        return self.type == AddonGroupTypeEnum.DRINK


class VariantSchema(BaseModel):
    """Purchasable size/crust of a product."""
    model_config = ConfigDict(from_attributes=True)

    id: Text = ""
    product_id: Text = ""
    size: Text = ""
    crust: Text = ""
    price: Price = 0
    is_active: bool = True


class ProductSchema(BaseModel):
    """Product with its variants and linked add-on groups."""
    model_config = ConfigDict(from_attributes=True)

    id: Text = ""
    category_id: Optional[Text] = None
    name: Text = ""
    description: Text = ""
    image_url: Text = ""
    is_active: bool = True
    variants: List[VariantSchema] = Field(default_factory=list)
    addon_groups: List[AddonGroupSchema] = Field(default_factory=list)


class CategorySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    sort_order: int = 0
    is_active: bool = True


class StoreSettingsSchema(BaseModel):
    """
    Singleton store settings.

    Missing or malformed values fall back to the shop defaults.
    """
    name: str = "Pizza Shop"
    currency: str = "$"
    phone: str = "923152967579"
    delivery_fee_cents: int = 299
    theme_color: str = "red"

    @field_validator("name", "currency", "phone", "theme_color", mode="before")
    @classmethod
    def blank_to_default(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("delivery_fee_cents", mode="before")
    @classmethod
    def coerce_fee(cls, v: Any) -> int:
        if v is None:
            return 299
        return _price(v)


# =============================================================================
# CART & CHECKOUT
# =============================================================================

class CartLineItemSchema(BaseModel):
    """
    One configured product in the cart.

    Serialized with the same camelCase keys the browser cart uses.
    """
    model_config = ConfigDict(populate_by_name=True)

    uid: Text = ""
    product: ProductSchema
    variant: VariantSchema
    selected_addons: List[AddonSchema] = Field(default_factory=list, alias="selectedAddons")
    quantity: int = 0

    @field_validator("selected_addons", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, v: Any) -> int:
        return coerce_minor_units(v)

    @property
    def unit_price(self) -> int:
        return pricing.unit_price(self.variant.price, (a.price for a in self.selected_addons))

    @property
    def line_total(self) -> int:
        return pricing.line_total(
            self.variant.price,
            (a.price for a in self.selected_addons),
            self.quantity,
        )


class CustomerInfo(BaseModel):
    """Customer and fulfilment details entered at checkout."""
    name: str = ""
    phone: str = ""
    type: DeliveryType = DeliveryTypeEnum.PICKUP
    address: str = ""
    notes: str = ""

    @field_validator("name", "phone", "address", "notes", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @property
    def is_delivery(self) -> bool:
        return self.type == DeliveryTypeEnum.DELIVERY


class OrderSubmission(BaseModel):
    """Body of ``POST /api/whatsapp-order``."""
    model_config = ConfigDict(populate_by_name=True)

    items: List[CartLineItemSchema] = Field(default_factory=list)
    subtotal: Any = 0
    delivery_fee: Any = Field(default=0, alias="deliveryFee")
    settings: StoreSettingsSchema = Field(default_factory=StoreSettingsSchema)
    customer: CustomerInfo = Field(default_factory=CustomerInfo)


class OrderSubmitResponse(BaseModel):
    ok: bool
    error: Optional[str] = None
    detail: Optional[Any] = None


class StoreDataResponse(BaseModel):
    """Everything the storefront (or admin screen) needs in one read."""
    settings: StoreSettingsSchema
    categories: List[CategorySchema]
    products: List[ProductSchema]
    addon_groups: List[AddonGroupSchema]


# =============================================================================
# ADMIN REQUEST SCHEMAS
# =============================================================================

class LoginRequest(BaseModel):
    password: str = Field(..., min_length=1)


class SettingsUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=30)
    currency: str = Field(default="$", min_length=1, max_length=5)
    delivery_fee_cents: int = Field(default=0, ge=0)
    theme_color: str = Field(default="red", max_length=30)


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class CategoryOrderItem(BaseModel):
    id: str
    sort_order: int


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    category_id: Optional[str] = None
    price: int = Field(default=0, ge=0, description="Default variant price in cents")
    image_url: Optional[str] = Field(default=None, max_length=500)


class ProductStatusUpdate(BaseModel):
    is_active: bool


class VariantCreate(BaseModel):
    product_id: str
    size: str = Field(..., min_length=1, max_length=100)
    crust: str = Field(default="", max_length=100)
    price: int = Field(..., ge=0)


class VariantUpdate(BaseModel):
    size: str = Field(..., min_length=1, max_length=100)
    crust: str = Field(default="", max_length=100)
    price: int = Field(..., ge=0)


class AddonGroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: AddonGroupTypeEnum = AddonGroupTypeEnum.TOPPING
    min_select: int = Field(default=0, ge=0)
    max_select: int = Field(default=1, ge=0)
    is_required: bool = False

    @model_validator(mode="after")
    def check_cardinality(self) -> "AddonGroupCreate":
        if self.max_select < self.min_select:
            raise ValueError("max_select must be greater than or equal to min_select")
        if self.is_required and self.min_select < 1:
            raise ValueError("required groups need min_select of at least 1")
        return self


class AddonCreate(BaseModel):
    group_id: str
    name: str = Field(..., min_length=1, max_length=100)
    price: int = Field(default=0, ge=0)


class AddonGroupLink(BaseModel):
    linked: bool


# =============================================================================
# GENERIC RESPONSES
# =============================================================================

class MutationResponse(BaseModel):
    success: bool = True
    id: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    messaging_service: str
    timestamp: Any
