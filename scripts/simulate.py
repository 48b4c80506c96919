"""
Order Flow Simulation Script

Drives the storefront the way a shopper would: loads the catalog, walks
random products through the configuration wizard into a cart, and submits
the cart as a WhatsApp order. Many carts are submitted concurrently to
exercise the API under load.

Run from project root (server in development mode, mock messaging):
    python scripts/simulate.py --orders 20
"""

import argparse
import asyncio
import os
import random
import sys
import time
from datetime import datetime
from typing import Any, Optional

import httpx
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storefront.ordering.cart import Cart, InMemoryCartStore
from storefront.ordering.configurator import ProductConfigurator
from storefront.ordering.pricing import format_currency
from storefront.schemas import DeliveryTypeEnum, StoreDataResponse

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 20

# Sample data for random customers
FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis"]
STREETS = ["Main St", "Broadway", "5th Avenue", "Park Ave", "Madison Ave"]
NOTES = ["", "", "Extra napkins", "Ring doorbell", "Call on arrival"]


def generate_random_customer(delivery_type: DeliveryTypeEnum) -> dict[str, str]:
    """Generate random checkout details."""
    return {
        "name": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
        "phone": f"555-{random.randint(100, 999)}-{random.randint(1000, 9999)}",
        "type": delivery_type.value,
        "address": f"{random.randint(1, 999)} {random.choice(STREETS)}",
        "notes": random.choice(NOTES),
    }


# =============================================================================
# WIZARD DRIVER
# =============================================================================

def configure_random_item(configurator: ProductConfigurator, max_attempts: int = 20) -> bool:
    """
    Walk one wizard to completion with random choices.

    Returns:
        bool: True if the item reached the cart
    """
    if configurator.product.variants:
        configurator.select_variant(random.choice(configurator.product.variants).id)
    for _ in range(random.randint(0, 2)):
        configurator.increment()

    for _ in range(max_attempts):
        for group in configurator.visible_groups:
            addons = list(group.addons)
            random.shuffle(addons)
            for addon in addons:
                wanted = random.random() < 0.4
                if wanted != configurator.is_addon_selected(addon.id):
                    configurator.toggle_addon(addon.id)
            # Top up required groups the random pass left short
            for addon in addons:
                if configurator.validate_step():
                    break
                if not configurator.is_addon_selected(addon.id):
                    configurator.toggle_addon(addon.id)

        if configurator.next() is not None or configurator.closed:
            return True
        if not configurator.can_go_next:
            return False
    return False


def build_random_cart(store: StoreDataResponse) -> Optional[Cart]:
    """Fill an in-memory cart with 1-3 configured products."""
    products = [p for p in store.products if p.variants]
    if not products:
        return None

    cart = Cart(InMemoryCartStore())
    cart.set_delivery_type(random.choice(list(DeliveryTypeEnum)))
    for _ in range(random.randint(1, 3)):
        configure_random_item(ProductConfigurator(random.choice(products), cart))
    return cart if cart.items else None


def build_order_payload(store: StoreDataResponse, cart: Cart) -> dict[str, Any]:
    return {
        "items": [item.model_dump(mode="json", by_alias=True) for item in cart.items],
        "subtotal": cart.subtotal(),
        "deliveryFee": store.settings.delivery_fee_cents,
        "settings": store.settings.model_dump(mode="json"),
        "customer": generate_random_customer(cart.delivery_type),
    }


# =============================================================================
# API CALLS
# =============================================================================

async def fetch_store(client: httpx.AsyncClient) -> StoreDataResponse:
    response = await client.get(f"{API_BASE_URL}/api/store", timeout=30.0)
    response.raise_for_status()
    return StoreDataResponse.model_validate(response.json())


async def send_order(
    client: httpx.AsyncClient,
    store: StoreDataResponse,
    order_num: int
) -> dict[str, Any]:
    """Build a random cart and submit it."""
    cart = build_random_cart(store)
    if cart is None:
        return {"order_num": order_num, "success": False, "error": "Empty cart", "time": 0.0}

    payload = build_order_payload(store, cart)
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/whatsapp-order",
            json=payload,
            timeout=30.0
        )
        elapsed = round(time.time() - start_time, 3)
        data = response.json()

        if response.status_code == 200 and data.get("ok"):
            return {
                "order_num": order_num,
                "success": True,
                "total": payload["subtotal"],
                "items": len(cart.items),
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": str(data.get("error") or response.text)[:100],
            "time": elapsed,
        }
    except Exception as e:
        elapsed = round(time.time() - start_time, 3)
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": elapsed,
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    """
    Run the order simulation.

    Args:
        num_orders: Number of carts to submit concurrently
    """
    print("=" * 70)
    print("ORDER FLOW SIMULATION")
    print("=" * 70)
    print(f"Total Orders: {num_orders}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        store = await fetch_store(client)
        print(f"\nCatalog: {len(store.products)} products, {len(store.addon_groups)} add-on groups")
        print("\nSubmitting orders...\n")
        tasks = [send_order(client, store, i + 1) for i in range(num_orders)]
        results = await asyncio.gather(*tasks)

    total_time = round(time.time() - start_time, 2)
    symbol = store.settings.currency

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("SIMULATION RESULTS")
    print("=" * 70)

    print(f"\nSuccessful Orders: {len(successful)}/{num_orders}")
    print(f"Failed Orders: {len(failed)}/{num_orders}")
    print(f"Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r.get("total", 0) for r in successful)

        print("\nPerformance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   Total Subtotals: {format_currency(total_revenue, symbol)}")

    if failed:
        print("\nFailed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results
    }


async def preflight_checks() -> bool:
    """Check health and the catalog before firing orders."""
    print("\n" + "=" * 70)
    print("PREFLIGHT CHECKS")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        print("\n1. Health Check...")
        response = await client.get(f"{API_BASE_URL}/health")
        if response.status_code != 200:
            print(f"   Failed: {response.text}")
            return False
        data = response.json()
        print(f"   Status: {data.get('status')}")
        print(f"   Database: {data.get('database')}")
        print(f"   Messaging: {data.get('messaging_service')}")

        print("\n2. Storefront Catalog...")
        store = await fetch_store(client)
        if not any(p.variants for p in store.products):
            print("   No orderable products. Add some in the admin first.")
            return False
        print(f"   Store: {store.settings.name} ({len(store.products)} products)")

        print("\n3. Single Order...")
        result = await send_order(client, store, 1)
        if not result["success"]:
            print(f"   Failed: {result.get('error')}")
            return False
        print(f"   Sent in {result['time']}s")

    print("\n" + "=" * 70)
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Order Flow Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--base-url", default=API_BASE_URL, help="Storefront API base URL")
    parser.add_argument("--skip-checks", action="store_true", help="Skip preflight checks")
    args = parser.parse_args()

    API_BASE_URL = args.base_url.rstrip("/")

    if not args.skip_checks:
        if not asyncio.run(preflight_checks()):
            print("\nPreflight checks failed. Fix issues before running the simulation.")
            sys.exit(1)
        print("\nPreflight checks passed!")

    asyncio.run(run_simulation(num_orders=args.orders))
