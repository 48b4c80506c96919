import json

import pytest
from filelock import FileLock, Timeout

from storefront.ordering.cart import (
    CART_STATE_VERSION,
    Cart,
    CartState,
    InMemoryCartStore,
    JsonFileCartStore,
    open_cart,
)
from storefront.schemas import CartLineItemSchema, DeliveryTypeEnum


@pytest.fixture
def pizza_item(pizza, toppings):
    return CartLineItemSchema(
        product=pizza,
        variant=pizza.variants[0],
        selected_addons=[toppings.addons[0]],
        quantity=2,
    )


@pytest.fixture
def bread_item(garlic_bread):
    return CartLineItemSchema(product=garlic_bread, variant=garlic_bread.variants[0], quantity=1)


def test_each_add_gets_a_unique_uid(pizza_item):
    cart = Cart()
    first = cart.add_item(pizza_item)
    second = cart.add_item(pizza_item)

    assert first.uid and second.uid
    assert first.uid != second.uid
    assert cart.item_count() == 2


def test_subtotal_is_sum_of_line_totals(pizza_item, bread_item):
    cart = Cart()
    cart.add_item(pizza_item)
    cart.add_item(bread_item)

    assert cart.subtotal() == (1200 + 150) * 2 + 800
    assert cart.total_quantity() == 3


def test_update_quantity(pizza_item):
    cart = Cart()
    item = cart.add_item(pizza_item)

    updated = cart.update_quantity(item.uid, 1)
    assert updated.quantity == 3
    assert cart.subtotal() == 1350 * 3

    assert cart.update_quantity(item.uid, -2).quantity == 1
    assert cart.update_quantity("nope", 1) is None


def test_quantity_reaching_zero_removes_item(pizza_item, bread_item):
    cart = Cart()
    pizza = cart.add_item(pizza_item)
    cart.add_item(bread_item)

    assert cart.update_quantity(pizza.uid, -2) is None
    assert [i.product.id for i in cart.items] == ["bread"]

    cart.update_quantity(cart.items[0].uid, -5)
    assert cart.items == []
    assert cart.subtotal() == 0


def test_decrementing_single_item_removes_it(pizza_item, bread_item):
    cart = Cart()
    cart.add_item(pizza_item)
    bread = cart.add_item(bread_item)
    count = cart.item_count()

    assert cart.update_quantity(bread.uid, -1) is None
    assert cart.item_count() == count - 1
    assert bread.uid not in [i.uid for i in cart.items]
    assert cart.subtotal() == 2700


def test_remove_and_clear(pizza_item, bread_item):
    cart = Cart()
    pizza = cart.add_item(pizza_item)
    cart.add_item(bread_item)

    assert cart.remove_item(pizza.uid)
    assert not cart.remove_item(pizza.uid)
    cart.clear()
    assert cart.items == []


def test_add_item_rejects_non_positive_quantity(bread_item):
    cart = Cart()
    with pytest.raises(ValueError):
        cart.add_item(bread_item.model_copy(update={"quantity": 0}))


def test_delivery_type_defaults_to_delivery():
    cart = Cart()
    assert cart.delivery_type == DeliveryTypeEnum.DELIVERY
    cart.set_delivery_type(DeliveryTypeEnum.PICKUP)
    assert cart.delivery_type == DeliveryTypeEnum.PICKUP


def test_in_memory_store_survives_reopen(pizza_item):
    store = InMemoryCartStore()
    cart = Cart(store)
    item = cart.add_item(pizza_item)
    cart.set_delivery_type("pickup")

    reopened = Cart(store)
    assert [i.uid for i in reopened.items] == [item.uid]
    assert reopened.delivery_type == DeliveryTypeEnum.PICKUP


# =============================================================================
# JSON FILE STORE
# =============================================================================

def test_json_store_round_trip(tmp_path, pizza_item):
    path = tmp_path / "cart.json"
    cart = Cart(JsonFileCartStore(path))
    item = cart.add_item(pizza_item)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["version"] == CART_STATE_VERSION
    assert data["deliveryType"] == "delivery"
    assert data["items"][0]["uid"] == item.uid
    assert "selectedAddons" in data["items"][0]

    reopened = Cart(JsonFileCartStore(path))
    assert reopened.items == cart.items
    assert reopened.subtotal() == 2700


def test_json_store_missing_file_is_empty(tmp_path):
    cart = Cart(JsonFileCartStore(tmp_path / "nested" / "cart.json"))
    assert cart.items == []


def test_json_store_discards_other_versions(tmp_path, pizza_item):
    path = tmp_path / "cart.json"
    Cart(JsonFileCartStore(path)).add_item(pizza_item)

    data = json.loads(path.read_text(encoding="utf-8"))
    data["version"] = 0
    path.write_text(json.dumps(data), encoding="utf-8")

    assert Cart(JsonFileCartStore(path)).items == []


def test_json_store_discards_corrupt_file(tmp_path):
    path = tmp_path / "cart.json"
    path.write_text("{not json", encoding="utf-8")
    assert Cart(JsonFileCartStore(path)).items == []


def test_json_store_lock_timeout(tmp_path, bread_item):
    path = tmp_path / "cart.json"
    cart = Cart(JsonFileCartStore(path, lock_timeout=0))

    with FileLock(str(path) + ".lock"):
        with pytest.raises(Timeout):
            cart.add_item(bread_item)


def test_state_drops_invalid_items(pizza_item):
    good = pizza_item.model_copy(update={"uid": "abc"})
    record = {
        "version": CART_STATE_VERSION,
        "items": [
            good.model_dump(mode="json", by_alias=True),
            {"uid": "broken"},
            good.model_copy(update={"uid": "zero", "quantity": 0}).model_dump(mode="json", by_alias=True),
        ],
        "deliveryType": "teleport",
    }

    state = CartState.from_dict(record)

    assert [i.uid for i in state.items] == ["abc"]
    assert state.delivery_type == DeliveryTypeEnum.DELIVERY


def test_open_cart_uses_given_path(tmp_path, bread_item):
    path = tmp_path / "shopper" / "cart.json"
    open_cart(path).add_item(bread_item)

    assert path.exists()
    assert open_cart(path).subtotal() == 800


def test_subtotal_with_free_items_and_large_quantities(pizza, toppings, garlic_bread):
    free = garlic_bread.variants[0].model_copy(update={"price": 0})
    cart = Cart()
    cart.add_item(CartLineItemSchema(product=garlic_bread, variant=free, quantity=3))
    cart.add_item(CartLineItemSchema(
        product=pizza,
        variant=pizza.variants[1],
        selected_addons=toppings.addons[:2],
        quantity=1_000_000,
    ))

    assert cart.subtotal() == (1600 + 150 + 100) * 1_000_000
    assert isinstance(cart.subtotal(), int)
