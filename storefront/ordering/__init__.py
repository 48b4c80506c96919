"""
                        Ordering Engine

Pure, synchronous core of the storefront:
    - pricing: minor-unit coercion and currency formatting
    - selection: add-on group cardinality rules
    - configurator: variant -> food add-ons -> drink add-ons wizard
    - cart: line items, totals, and persisted cart state
    - formatter: plain-text order message for the messaging channel

Submodules are imported directly, e.g. ``from storefront.ordering.cart import Cart``.
"""
