import pytest

from storefront.core.config import get_settings
from storefront.services.auth import issue_session_token


def _product(client, product_id):
    products = client.get("/admin/data").json()["products"]
    return next((p for p in products if p["id"] == product_id), None)


# =============================================================================
# SESSION
# =============================================================================

def test_login_sets_http_only_cookie(client):
    response = client.post("/admin/login", json={"password": "testpassword123"})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    cookie = response.headers["set-cookie"]
    assert cookie.startswith("admin_session=v1.")
    assert "HttpOnly" in cookie
    assert "Max-Age=604800" in cookie


def test_login_with_wrong_password(client):
    response = client.post("/admin/login", json={"password": "nope"})

    assert response.status_code == 401
    assert "admin_session" not in client.cookies


def test_admin_routes_need_a_session(client):
    assert client.get("/admin/data").status_code == 401
    assert client.post("/admin/categories", json={"name": "X"}).status_code == 401
    assert client.delete("/admin/products/any").status_code == 401


def test_forged_cookie_is_rejected(client):
    client.cookies.set("admin_session", issue_session_token("not-the-password"))
    assert client.get("/admin/data").status_code == 401


def test_expired_cookie_is_rejected(client):
    settings = get_settings()
    stale = issue_session_token(settings.admin_password, now=1_000_000)
    client.cookies.set("admin_session", stale)
    assert client.get("/admin/data").status_code == 401


def test_admin_unavailable_without_password(client, settings, monkeypatch):
    monkeypatch.setattr(settings, "admin_password", None)

    assert client.post("/admin/login", json={"password": "anything"}).status_code == 503
    assert client.get("/admin/data").status_code == 503


def test_logout_clears_cookie(admin_client):
    assert admin_client.get("/admin/data").status_code == 200

    response = admin_client.post("/admin/logout")

    assert response.status_code == 200
    assert admin_client.get("/admin/data").status_code == 401


# =============================================================================
# SETTINGS & CATEGORIES
# =============================================================================

def test_update_settings(admin_client):
    response = admin_client.put("/admin/settings", json={
        "name": "Napoli",
        "phone": "+1 555 0100",
        "currency": "€",
        "delivery_fee_cents": 500,
    })

    assert response.status_code == 200
    settings = admin_client.get("/api/store").json()["settings"]
    assert settings["name"] == "Napoli"
    assert settings["currency"] == "€"
    assert settings["delivery_fee_cents"] == 500
    assert settings["theme_color"] == "red"


def test_update_settings_validates(admin_client):
    response = admin_client.put("/admin/settings", json={"name": "", "phone": "1", "delivery_fee_cents": -1})
    assert response.status_code == 422


def test_create_and_reorder_categories(admin_client):
    first = admin_client.post("/admin/categories", json={"name": "Pizzas"}).json()["id"]
    second = admin_client.post("/admin/categories", json={"name": "Drinks"}).json()["id"]

    response = admin_client.put("/admin/categories/order", json=[
        {"id": first, "sort_order": 2},
        {"id": second, "sort_order": 1},
    ])

    assert response.status_code == 200
    names = [c["name"] for c in admin_client.get("/admin/data").json()["categories"]]
    assert names == ["Drinks", "Pizzas"]


def test_reorder_unknown_category(admin_client):
    response = admin_client.put("/admin/categories/order", json=[{"id": "missing", "sort_order": 1}])

    assert response.status_code == 404
    assert response.json()["detail"].startswith("updateCategoryOrderBulk:")


def test_delete_category_keeps_products(admin_client, seeded):
    response = admin_client.delete(f"/admin/categories/{seeded['pizzas']}")

    assert response.status_code == 200
    assert _product(admin_client, seeded["margherita"])["category_id"] is None


# =============================================================================
# PRODUCTS & VARIANTS
# =============================================================================

def test_create_product_with_default_variant(admin_client, seeded):
    response = admin_client.post("/admin/products", json={
        "name": "Hawaiian Special",
        "category_id": seeded["pizzas"],
        "price": 1450,
    })

    assert response.status_code == 201
    product = _product(admin_client, response.json()["id"])
    assert product["image_url"] == "https://placehold.co/400x300/orange/white?text=Hawaiian%20Special"
    assert [(v["size"], v["crust"], v["price"]) for v in product["variants"]] == [
        ("Standard", "Original", 1450),
    ]


def test_create_product_rejects_negative_price(admin_client):
    assert admin_client.post("/admin/products", json={"name": "X", "price": -1}).status_code == 422


def test_deactivated_product_hidden_from_storefront(admin_client, seeded):
    response = admin_client.patch(
        f"/admin/products/{seeded['bread']}/status", json={"is_active": False}
    )

    assert response.status_code == 200
    storefront = [p["id"] for p in admin_client.get("/api/store").json()["products"]]
    assert seeded["bread"] not in storefront
    assert _product(admin_client, seeded["bread"])["is_active"] is False


def test_delete_product(admin_client, seeded):
    assert admin_client.delete(f"/admin/products/{seeded['margherita']}").status_code == 200
    assert _product(admin_client, seeded["margherita"]) is None
    assert admin_client.delete(f"/admin/products/{seeded['margherita']}").status_code == 404


def test_variant_lifecycle(admin_client, seeded):
    created = admin_client.post("/admin/variants", json={
        "product_id": seeded["bread"],
        "size": "Family",
        "crust": "",
        "price": 1500,
    })
    assert created.status_code == 201
    variant_id = created.json()["id"]

    updated = admin_client.put(f"/admin/variants/{variant_id}", json={"size": "XL", "price": 1700})
    assert updated.status_code == 200
    sizes = [(v["size"], v["price"]) for v in _product(admin_client, seeded["bread"])["variants"]]
    assert sizes == [("Standard", 800), ("XL", 1700)]

    assert admin_client.delete(f"/admin/variants/{variant_id}").status_code == 200
    assert len(_product(admin_client, seeded["bread"])["variants"]) == 1


def test_variant_for_unknown_product(admin_client):
    response = admin_client.post("/admin/variants", json={"product_id": "missing", "size": "S", "price": 1})
    assert response.status_code == 404


# =============================================================================
# ADD-ON GROUPS
# =============================================================================

@pytest.mark.parametrize(
    "body",
    [
        {"name": "Bad", "min_select": 3, "max_select": 1},
        {"name": "Bad", "min_select": 0, "max_select": 2, "is_required": True},
        {"name": "Bad", "min_select": -1, "max_select": 1},
        {"name": "Bad", "type": "dessert"},
    ],
)
def test_addon_group_rules_are_validated(admin_client, body):
    assert admin_client.post("/admin/addon-groups", json=body).status_code == 422


def test_addon_group_lifecycle(admin_client, seeded):
    created = admin_client.post("/admin/addon-groups", json={
        "name": "Sauces",
        "type": "side",
        "min_select": 0,
        "max_select": 3,
    })
    assert created.status_code == 201
    group_id = created.json()["id"]

    addon = admin_client.post("/admin/addons", json={"group_id": group_id, "name": "Garlic Dip", "price": 75})
    assert addon.status_code == 201

    groups = {g["id"]: g for g in admin_client.get("/admin/data").json()["addon_groups"]}
    assert groups[group_id]["type"] == "side"
    assert [(a["name"], a["price"]) for a in groups[group_id]["addons"]] == [("Garlic Dip", 75)]

    assert admin_client.delete(f"/admin/addons/{addon.json()['id']}").status_code == 200
    assert admin_client.delete(f"/admin/addon-groups/{group_id}").status_code == 200
    groups = [g["id"] for g in admin_client.get("/admin/data").json()["addon_groups"]]
    assert group_id not in groups


def test_link_and_unlink_are_idempotent(admin_client, seeded):
    url = f"/admin/products/{seeded['bread']}/addon-groups/{seeded['drinks']}"

    for _ in range(2):
        assert admin_client.put(url, json={"linked": True}).status_code == 200
    groups = [g["id"] for g in _product(admin_client, seeded["bread"])["addon_groups"]]
    assert groups == [seeded["drinks"]]

    for _ in range(2):
        assert admin_client.put(url, json={"linked": False}).status_code == 200
    assert _product(admin_client, seeded["bread"])["addon_groups"] == []


def test_link_unknown_group(admin_client, seeded):
    response = admin_client.put(
        f"/admin/products/{seeded['bread']}/addon-groups/missing", json={"linked": True}
    )

    assert response.status_code == 404
    assert response.json()["detail"].startswith("toggleProductAddonGroup (link):")


def test_get_single_product(admin_client, seeded):
    response = admin_client.get(f"/admin/products/{seeded['margherita']}")

    assert response.status_code == 200
    product = response.json()
    assert product["name"] == "Margherita"
    assert [g["name"] for g in product["addon_groups"]] == ["Drinks", "Toppings"]
    assert admin_client.get("/admin/products/missing").status_code == 404
