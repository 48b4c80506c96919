"""
Product Configuration Wizard

Walks a shopper through configuring one product:

    variant-selection -> food-addons -> drink-addons

The food and drink steps only exist when the product is linked to at
least one group of that kind, so a product without add-on groups is a
single-step wizard. ``next()`` is gated by validation of the current
step; on the last step it finalizes the configuration into a cart line
item and closes the wizard.

Disallowed actions (toggling past a group's bounds, picking a variant of
another product, moving past an invalid step) are refused by returning
``False``/``None``; nothing is raised. Only using a wizard after it has
been finalized raises ``WizardClosedError``.
"""

import logging
from enum import Enum
from typing import List, Optional, Tuple

from storefront.ordering import pricing, selection
from storefront.ordering.cart import BaseCart
from storefront.schemas import (
    AddonGroupSchema,
    AddonSchema,
    CartLineItemSchema,
    ProductSchema,
    VariantSchema,
)

logger = logging.getLogger(__name__)


class WizardStep(str, Enum):
    VARIANT = "variant-selection"
    FOOD = "food-addons"
    DRINKS = "drink-addons"


class WizardClosedError(RuntimeError):
    """Raised when a finalized wizard is used again."""


def build_steps(product: ProductSchema) -> Tuple[WizardStep, ...]:
    """Step sequence for ``product``; variant selection always comes first."""
    steps = [WizardStep.VARIANT]
    if any(g.is_food for g in product.addon_groups):
        steps.append(WizardStep.FOOD)
    if any(g.is_drink for g in product.addon_groups):
        steps.append(WizardStep.DRINKS)
    return tuple(steps)


class ProductConfigurator:
    """
    Stateful wizard for a single product.

    Attributes:
        product: Product being configured
        steps: Step sequence, fixed at construction
        step_index: Index of the current step
        selected_variant: Chosen variant (defaults to the first one)
        selected_addons: Chosen add-ons across every step
        quantity: Positive item count, changed only by increment/decrement
    """

    def __init__(self, product: ProductSchema, cart: BaseCart):
        self.product = product
        self.steps = build_steps(product)
        self.step_index = 0
        self.selected_variant: Optional[VariantSchema] = product.variants[0] if product.variants else None
        self.selected_addons: List[AddonSchema] = []
        self.quantity = 1
        self.closed = False
        self._cart = cart

        self.food_groups = [g for g in product.addon_groups if g.is_food]
        self.drink_groups = [g for g in product.addon_groups if g.is_drink]

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def current_step(self) -> WizardStep:
        return self.steps[self.step_index]

    @property
    def is_last_step(self) -> bool:
        return self.step_index == len(self.steps) - 1

    @property
    def visible_groups(self) -> List[AddonGroupSchema]:
        """Add-on groups shown on the current step."""
        if self.current_step == WizardStep.FOOD:
            return self.food_groups
        if self.current_step == WizardStep.DRINKS:
            return self.drink_groups
        return []

    @property
    def can_go_back(self) -> bool:
        return not self.closed and self.step_index > 0

    @property
    def can_go_next(self) -> bool:
        return not self.closed and self.validate_step()

    @property
    def price(self) -> int:
        """Running price: variant plus every selected add-on, times quantity."""
        variant_price = self.selected_variant.price if self.selected_variant else 0
        return pricing.line_total(
            variant_price,
            (a.price for a in self.selected_addons),
            self.quantity,
        )

    def validate_step(self) -> bool:
        """Whether the current step's selections allow moving forward."""
        if self.current_step == WizardStep.VARIANT:
            return self.selected_variant is not None
        return all(
            selection.is_group_satisfied(group, self.selected_addons)
            for group in self.visible_groups
        )

    def is_addon_selected(self, addon_id: str) -> bool:
        return any(a.id == addon_id for a in self.selected_addons)

    # =========================================================================
    # SHOPPER ACTIONS
    # =========================================================================

    def select_variant(self, variant_id: str) -> bool:
        self._ensure_open()
        if self.current_step != WizardStep.VARIANT:
            return False
        for variant in self.product.variants:
            if variant.id == variant_id:
                self.selected_variant = variant
                return True
        return False

    def toggle_addon(self, addon_id: str) -> bool:
        """
        Select or deselect an add-on shown on the current step.

        Returns:
            bool: True if the selection changed
        """
        self._ensure_open()
        for group in self.visible_groups:
            for addon in group.addons:
                if addon.id != addon_id:
                    continue
                if not selection.can_toggle(addon, group, self.selected_addons):
                    logger.debug(f"Toggle of {addon.name} refused by group {group.name}")
                    return False
                self.selected_addons = selection.toggle(addon, group, self.selected_addons)
                return True
        return False

    def increment(self) -> int:
        self._ensure_open()
        self.quantity += 1
        return self.quantity

    def decrement(self) -> int:
        self._ensure_open()
        self.quantity = max(1, self.quantity - 1)
        return self.quantity

    def back(self) -> bool:
        self._ensure_open()
        if self.step_index == 0:
            return False
        self.step_index -= 1
        return True

    def next(self) -> Optional[CartLineItemSchema]:
        """
        Advance one step, or finalize on the last step.

        Returns:
            The line item pushed to the cart when the wizard finalizes,
            otherwise None.
        """
        self._ensure_open()
        if not self.validate_step():
            return None
        if not self.is_last_step:
            self.step_index += 1
            return None
        return self._finalize()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _finalize(self) -> CartLineItemSchema:
        item = CartLineItemSchema(
            product=self.product,
            variant=self.selected_variant,
            selected_addons=list(self.selected_addons),
            quantity=self.quantity,
        )
        added = self._cart.add_item(item)
        self.closed = True
        logger.info(
            f"Configured {self.product.name} ({self.selected_variant.size}) "
            f"x{self.quantity} with {len(self.selected_addons)} add-ons"
        )
        return added

    def _ensure_open(self) -> None:
        if self.closed:
            raise WizardClosedError(f"Configuration of {self.product.name} is already finished")
