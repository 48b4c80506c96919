"""
SQLAlchemy Database Models

Catalog tables for the restaurant storefront:
- Key/value store settings
- Categories, products and their priced variants
- Add-on groups with selection rules, and their add-ons
- Product <-> add-on group links

All prices are integers in minor currency units (cents).
"""

import enum
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    JSON,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storefront.database import Base


def new_id() -> str:
    return str(uuid.uuid4())


class AddonGroupType(str, enum.Enum):
    """Kind of add-on group; decides which wizard step shows it."""
    TOPPING = "topping"
    SIDE = "side"
    DRINK = "drink"


product_addon_groups = Table(
    "product_addon_groups",
    Base.metadata,
    Column(
        "product_id",
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "group_id",
        String(36),
        ForeignKey("addon_groups.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class StoreSetting(Base):
    """
    Key/value settings. The storefront reads the ``restaurant_info`` key.
    """
    __tablename__ = "settings"

    key = Column(String(100), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<StoreSetting {self.key}>"


class Category(Base):
    """Menu category, displayed by ascending sort_order."""
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<Category {self.name} #{self.sort_order}>"


class Product(Base):
    """
    Sellable menu entry.

    Owns its variants; linked to add-on groups many-to-many.
    """
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    category_id = Column(
        String(36),
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    image_url = Column(String(500), nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    category = relationship("Category", back_populates="products")
    variants = relationship(
        "Variant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="Variant.price",
    )
    addon_groups = relationship(
        "AddonGroup",
        secondary=product_addon_groups,
        back_populates="products",
        order_by="AddonGroup.name",
    )

    def __repr__(self):
        return f"<Product {self.name} active={self.is_active}>"


class Variant(Base):
    """A purchasable size/crust of a product with its own price."""
    __tablename__ = "variants"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_variants_price_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    size = Column(String(100), nullable=False)
    crust = Column(String(100), nullable=False, default="")
    price = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    product = relationship("Product", back_populates="variants")

    def __repr__(self):
        return f"<Variant {self.size}/{self.crust} {self.price}>"


class AddonGroup(Base):
    """
    Named, typed collection of add-ons with selection cardinality rules.
    """
    __tablename__ = "addon_groups"
    __table_args__ = (
        CheckConstraint("min_select >= 0", name="ck_addon_groups_min_select"),
        CheckConstraint("max_select >= min_select", name="ck_addon_groups_max_select"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False, index=True)
    type = Column(
        Enum(
            AddonGroupType,
            name="addon_group_type",
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=AddonGroupType.TOPPING,
    )
    min_select = Column(Integer, nullable=False, default=0)
    max_select = Column(Integer, nullable=False, default=1)
    is_required = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    addons = relationship(
        "Addon",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="Addon.name",
    )
    products = relationship(
        "Product",
        secondary=product_addon_groups,
        back_populates="addon_groups",
    )

    def __repr__(self):
        return f"<AddonGroup {self.name} ({self.type.value}) {self.min_select}-{self.max_select}>"


class Addon(Base):
    """Single extra item inside an add-on group."""
    __tablename__ = "addons"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_addons_price_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    group_id = Column(
        String(36),
        ForeignKey("addon_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(100), nullable=False)
    price = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    group = relationship("AddonGroup", back_populates="addons")

    def __repr__(self):
        return f"<Addon {self.name} {self.price}>"
