"""
Cart Aggregator with Durable Local State

Holds the shopper's configured line items and fulfilment type, derives
totals in exact integer minor units, and writes every change through to
a ``BaseCartStore``.

Stores:
    - InMemoryCartStore: process memory only (tests, throwaway sessions)
    - JsonFileCartStore: single JSON record on disk, guarded by a file lock

Persisted layout::

    {"version": 1, "items": [CartLineItem, ...], "deliveryType": "delivery"}

A record with a missing or different ``version`` is discarded and the cart
starts empty. The last writer wins; no cross-process merge is attempted.
"""

import json
import logging
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Union

from filelock import FileLock, Timeout
from pydantic import ValidationError

from storefront.core.config import get_settings
from storefront.schemas import CartLineItemSchema, DeliveryTypeEnum

logger = logging.getLogger(__name__)

CART_STATE_VERSION = 1


@dataclass
class CartState:
    """Snapshot of everything a cart persists."""
    items: List[CartLineItemSchema] = field(default_factory=list)
    delivery_type: DeliveryTypeEnum = DeliveryTypeEnum.DELIVERY

    def to_dict(self) -> dict:
        return {
            "version": CART_STATE_VERSION,
            "items": [item.model_dump(mode="json", by_alias=True) for item in self.items],
            "deliveryType": self.delivery_type.value,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CartState":
        """
        Rebuild a state from a persisted record.

        Unknown versions yield an empty state. Individual items that no
        longer validate, or carry a non-positive quantity, are dropped.
        """
        if not isinstance(data, dict) or data.get("version") != CART_STATE_VERSION:
            found = data.get("version") if isinstance(data, dict) else None
            logger.warning(f"Discarding persisted cart with version {found!r}")
            return cls()

        items = []
        for raw in data.get("items") or []:
            try:
                item = CartLineItemSchema.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Dropping unreadable cart item: {e.error_count()} errors")
                continue
            if item.quantity > 0 and item.uid:
                items.append(item)

        try:
            delivery_type = DeliveryTypeEnum(data.get("deliveryType", DeliveryTypeEnum.DELIVERY.value))
        except ValueError:
            delivery_type = DeliveryTypeEnum.DELIVERY

        return cls(items=items, delivery_type=delivery_type)


# =============================================================================
# STORES
# =============================================================================

class BaseCartStore(ABC):
    """Where a cart keeps its state between sessions."""

    @abstractmethod
    def load(self) -> CartState:
        pass

    @abstractmethod
    def save(self, state: CartState) -> None:
        pass


class InMemoryCartStore(BaseCartStore):
    """Keeps the last saved record in memory."""

    def __init__(self):
        self._record: Optional[dict] = None

    def load(self) -> CartState:
        if self._record is None:
            return CartState()
        return CartState.from_dict(self._record)

    def save(self, state: CartState) -> None:
        self._record = state.to_dict()


class JsonFileCartStore(BaseCartStore):
    """Cart record stored as JSON on local disk."""

    def __init__(self, path: Union[str, Path], lock_timeout: int = 10):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self.lock_timeout = lock_timeout

    def _lock(self) -> FileLock:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return FileLock(str(self.lock_path), timeout=self.lock_timeout)

    def load(self) -> CartState:
        if not self.path.exists():
            return CartState()
        try:
            with self._lock():
                raw = self.path.read_text(encoding="utf-8")
        except Timeout:
            logger.error(f"Timed out waiting for cart lock {self.lock_path}")
            raise
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding corrupt cart file {self.path}: {e}")
            return CartState()
        return CartState.from_dict(data)

    def save(self, state: CartState) -> None:
        payload = json.dumps(state.to_dict(), ensure_ascii=False)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with self._lock():
                tmp_path.write_text(payload, encoding="utf-8")
                os.replace(tmp_path, self.path)
        except Timeout:
            logger.error(f"Timed out waiting for cart lock {self.lock_path}")
            raise
        logger.debug(f"Cart saved to {self.path} ({len(state.items)} items)")


# =============================================================================
# CART
# =============================================================================

class BaseCart(ABC):
    """Operations the wizard and checkout rely on."""

    @property
    @abstractmethod
    def items(self) -> List[CartLineItemSchema]:
        pass

    @property
    @abstractmethod
    def delivery_type(self) -> DeliveryTypeEnum:
        pass

    @abstractmethod
    def add_item(self, item: CartLineItemSchema) -> CartLineItemSchema:
        pass

    @abstractmethod
    def remove_item(self, uid: str) -> bool:
        pass

    @abstractmethod
    def update_quantity(self, uid: str, delta: int) -> Optional[CartLineItemSchema]:
        pass

    @abstractmethod
    def set_delivery_type(self, delivery_type: DeliveryTypeEnum) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    def subtotal(self) -> int:
        pass


class Cart(BaseCart):
    """
    Shopper cart backed by a store.

    Example:
        >>> cart = Cart(JsonFileCartStore("data/cart.json"))
        >>> item = cart.add_item(line_item)
        >>> cart.update_quantity(item.uid, +1)
        >>> cart.subtotal()
        2700
    """

    def __init__(self, store: Optional[BaseCartStore] = None):
        self._store = store or InMemoryCartStore()
        self._state = self._store.load()

    @property
    def items(self) -> List[CartLineItemSchema]:
        return list(self._state.items)

    @property
    def delivery_type(self) -> DeliveryTypeEnum:
        return self._state.delivery_type

    def add_item(self, item: CartLineItemSchema) -> CartLineItemSchema:
        """Append ``item`` under a fresh instance id."""
        if item.quantity < 1:
            raise ValueError(f"Cart items need a positive quantity, got {item.quantity}")
        stored = item.model_copy(update={"uid": uuid.uuid4().hex})
        self._state.items.append(stored)
        self._persist()
        logger.info(f"Added {stored.product.name} x{stored.quantity} to cart ({stored.uid})")
        return stored

    def remove_item(self, uid: str) -> bool:
        """Delete by instance id. Unknown ids are ignored."""
        before = len(self._state.items)
        self._state.items = [i for i in self._state.items if i.uid != uid]
        removed = len(self._state.items) != before
        if removed:
            self._persist()
        return removed

    def update_quantity(self, uid: str, delta: int) -> Optional[CartLineItemSchema]:
        """
        Change an item's quantity by ``delta``.

        If the result would be zero or less, the item is removed instead.

        Returns:
            The updated item, or None if it was removed or not found
        """
        for index, item in enumerate(self._state.items):
            if item.uid != uid:
                continue
            new_quantity = item.quantity + delta
            if new_quantity <= 0:
                self.remove_item(uid)
                return None
            updated = item.model_copy(update={"quantity": new_quantity})
            self._state.items[index] = updated
            self._persist()
            return updated
        return None

    def set_delivery_type(self, delivery_type: DeliveryTypeEnum) -> None:
        self._state.delivery_type = DeliveryTypeEnum(delivery_type)
        self._persist()

    def clear(self) -> None:
        self._state.items = []
        self._persist()
        logger.info("Cart cleared")

    def subtotal(self) -> int:
        return sum(item.line_total for item in self._state.items)

    def item_count(self) -> int:
        """Number of line items."""
        return len(self._state.items)

    def total_quantity(self) -> int:
        """Number of units across all line items."""
        return sum(item.quantity for item in self._state.items)

    def _persist(self) -> None:
        self._store.save(self._state)


def open_cart(path: Optional[Union[str, Path]] = None) -> Cart:
    """Open the shopper cart persisted at ``path`` (defaults to settings)."""
    settings = get_settings()
    store = JsonFileCartStore(
        path or settings.cart_storage_path,
        lock_timeout=settings.cart_lock_timeout,
    )
    return Cart(store)
