"""
Order Message Formatter

Turns a cart plus customer details into the plain-text order summary that
is handed to the messaging channel. The output is deterministic: items are
listed in cart order and every amount is formatted from integer cents.

Amounts that travel through the checkout payload (subtotal, delivery fee,
item prices and quantities) are passed through ``sanitize_order`` first,
so the layout code below only ever sees plain ints.
"""

from dataclasses import dataclass
from typing import Any, List, Sequence

from storefront.ordering import pricing
from storefront.ordering.pricing import coerce_minor_units, format_currency
from storefront.schemas import CartLineItemSchema, CustomerInfo, StoreSettingsSchema

SEPARATOR = "-" * 32


@dataclass
class MessageLine:
    """One cart line reduced to what the message prints."""
    product_name: str
    size: str
    crust: str
    quantity: int
    addon_names: List[str]
    total: int


@dataclass
class SanitizedOrder:
    lines: List[MessageLine]
    subtotal: int
    delivery_fee: int


def sanitize_order(items: Sequence[CartLineItemSchema], subtotal: Any, delivery_fee: Any) -> SanitizedOrder:
    """Coerce every amount the message prints into a well-typed int."""
    lines = []
    for item in items:
        addons = item.selected_addons or []
        lines.append(MessageLine(
            product_name=item.product.name,
            size=item.variant.size,
            crust=item.variant.crust,
            quantity=coerce_minor_units(item.quantity),
            addon_names=[a.name for a in addons],
            total=pricing.line_total(
                coerce_minor_units(item.variant.price),
                (coerce_minor_units(a.price) for a in addons),
                coerce_minor_units(item.quantity),
            ),
        ))
    return SanitizedOrder(
        lines=lines,
        subtotal=coerce_minor_units(subtotal),
        delivery_fee=coerce_minor_units(delivery_fee),
    )


def build_order_message(
    items: Sequence[CartLineItemSchema],
    subtotal: Any,
    delivery_fee: Any,
    settings: StoreSettingsSchema,
    customer: CustomerInfo,
) -> str:
    """
    Build the order summary text.

    Layout:
        header banner, customer block, numbered item lines with add-ons
        and line totals, then subtotal, delivery fee (delivery only) and
        the grand total.

    Args:
        items: Cart line items in insertion order
        subtotal: Cart subtotal in cents (untrusted)
        delivery_fee: Store delivery fee in cents (untrusted)
        settings: Store settings (name, currency symbol)
        customer: Customer details including the fulfilment type

    Returns:
        str: Message text, one trailing newline
    """
    order = sanitize_order(items, subtotal, delivery_fee)
    symbol = settings.currency
    is_delivery = customer.is_delivery
    grand_total = order.subtotal + (order.delivery_fee if is_delivery else 0)

    out = [
        f"*NEW ORDER - {settings.name}*",
        SEPARATOR,
        f"*Customer:* {customer.name}",
        f"*Phone:* {customer.phone}",
        f"*Type:* {'Delivery' if is_delivery else 'Pickup'}",
    ]
    if is_delivery:
        out.append(f"*Address:* {customer.address}")
    if customer.notes:
        out.append(f"*Notes:* {customer.notes}")

    out.append("")
    out.append("*ORDER DETAILS:*")
    for idx, line in enumerate(order.lines, start=1):
        out.append(f"{idx}. {line.product_name} ({line.size}, {line.crust}) x{line.quantity}")
        if line.addon_names:
            out.append(f"   + {', '.join(line.addon_names)}")
        out.append(f"   Item Total: {format_currency(line.total, symbol)}")
        out.append("")

    out.append(SEPARATOR)
    out.append(f"Subtotal: {format_currency(order.subtotal, symbol)}")
    if is_delivery:
        out.append(f"Delivery Fee: {format_currency(order.delivery_fee, symbol)}")
    out.append(f"*GRAND TOTAL: {format_currency(grand_total, symbol)}*")

    return "\n".join(out) + "\n"
