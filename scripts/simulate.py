"""
Kitchen Chaos Simulation Script

Places a burst of orders, then lets every kitchen station and the
dispatch screen work them concurrently against a running server.
Every order must end up Ready, then gets completed by a cashier.
Run from project root: python scripts/simulate.py

Author: Khalil Bannouri
Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 30
STATIONS = ["pizza", "pasta", "fried", "bar"]
CASHIERS = ["cashier-1", "cashier-2"]

# Items on the built-in menu
MENU_LINES = [
    {"catalog_id": "D-00001"},  # Family Deal
    {"catalog_id": "D-00002"},  # Lunch Box Deal
    {"catalog_id": "I-P-001", "selected_variant": {"id": "V-LARGE"}},
    {"catalog_id": "I-P-002", "selected_addons": [
        {"id": "A-00001", "name": "Extra Cheese", "price": "120.00"},
    ]},
    {"catalog_id": "I-PA-001"},
    {"catalog_id": "I-C-001"},
    {"catalog_id": "I-DS-001"},
    {"catalog_id": "I-X-001"},  # Mineral Water, no station
]


def generate_random_lines() -> list[dict]:
    """Generate random cart lines."""
    lines = []
    for _ in range(random.randint(1, 4)):
        line = dict(random.choice(MENU_LINES))
        line["quantity"] = random.randint(1, 2)
        lines.append(line)
    return lines


def generate_order_payload() -> dict[str, Any]:
    """Generate payload for /api/orders endpoint."""
    order_type = random.choice(["Dine-In", "Take-Away"])
    return {
        "lines": generate_random_lines(),
        "order_type": order_type,
        "table_id": f"T-{random.randint(1, 20)}" if order_type == "Dine-In" else None,
        "payment_method": random.choice(["Cash", "Card", "Online"]),
        "placed_by": f"kiosk-{random.randint(1, 3)}",
        "instructions": random.choice([None, "No onions", "Extra spicy", "Pack separately"]),
    }


# =============================================================================
# KIOSK
# =============================================================================

async def place_order(client: httpx.AsyncClient, order_num: int) -> dict[str, Any]:
    """Place one order."""
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json=generate_order_payload(),
            timeout=30.0
        )
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "order_id": data["id"],
                "total": data["total_amount"],
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


# =============================================================================
# KITCHEN TERMINALS
# =============================================================================

async def station_terminal(client: httpx.AsyncClient, station_id: str) -> dict[str, int]:
    """Prepare everything in the station queue until it is empty."""
    stats = {"prepared": 0, "conflicts": 0}

    while True:
        response = await client.get(f"{API_BASE_URL}/api/kds/stations/{station_id}")
        queue = response.json()["orders"]
        pending = [
            (entry["order_id"], [u["unit_id"] for u in entry["units"] if not u["is_prepared"]])
            for entry in queue
        ]
        pending = [(order_id, units) for order_id, units in pending if units]
        if not pending:
            return stats

        for order_id, unit_ids in pending:
            await asyncio.sleep(random.uniform(0.0, 0.05))  # Cooking
            response = await client.post(
                f"{API_BASE_URL}/api/orders/{order_id}/prepared",
                json={"unit_ids": unit_ids},
            )
            if response.status_code == 200:
                stats["prepared"] += len(unit_ids)
            else:
                stats["conflicts"] += 1


async def dispatch_terminal(client: httpx.AsyncClient, deadline: float) -> dict[str, int]:
    """Dispatch prepared units until every order has left the dispatch queue."""
    stats = {"dispatched": 0, "waiting": 0}

    while time.time() < deadline:
        response = await client.get(f"{API_BASE_URL}/api/kds/dispatch")
        queue = response.json()["orders"]
        if not queue:
            return stats

        for entry in queue:
            for unit in entry["units"]:
                if not unit["is_prepared"]:
                    stats["waiting"] += 1
                    continue
                response = await client.post(
                    f"{API_BASE_URL}/api/orders/{entry['order_id']}/units/{unit['unit_id']}/dispatch"
                )
                if response.status_code == 200:
                    stats["dispatched"] += 1
        await asyncio.sleep(0.05)

    return stats


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS, timeout: float = 60.0) -> dict[str, Any]:
    """
    Run the chaos simulation.

    Args:
        num_orders: Number of orders to place
        timeout: Seconds the dispatch terminal keeps polling
    """
    print("=" * 70)
    print("🔥 KITCHEN CHAOS SIMULATION - CONCURRENT STATIONS")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"🍳 Stations: {', '.join(STATIONS)}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient(timeout=30.0) as client:
        print("\n🚀 Placing orders...\n")
        placed = await asyncio.gather(*[place_order(client, i + 1) for i in range(num_orders)])
        successful = [r for r in placed if r["success"]]
        failed = [r for r in placed if not r["success"]]

        # Move every order to Preparing so the dispatch screen picks it up
        await asyncio.gather(*[
            client.put(
                f"{API_BASE_URL}/api/orders/{r['order_id']}/status",
                json={"status": "Preparing"},
            )
            for r in successful
        ])

        print("🍕 Stations and dispatch working concurrently...\n")
        deadline = time.time() + timeout
        results = await asyncio.gather(
            *[station_terminal(client, station) for station in STATIONS],
            dispatch_terminal(client, deadline),
        )
        station_stats = dict(zip(STATIONS, results[:-1]))
        dispatch_stats = results[-1]

        # Cashiers close what the kitchen finished
        statuses = {}
        for r in successful:
            response = await client.put(
                f"{API_BASE_URL}/api/orders/{r['order_id']}/status",
                json={"status": "Completed", "actor": random.choice(CASHIERS)},
            )
            statuses[r["order_id"]] = response.json().get("status", response.json().get("code"))

        balances = {}
        for cashier in CASHIERS:
            response = await client.get(f"{API_BASE_URL}/api/cashiers/{cashier}/balance")
            balances[cashier] = response.json()

    total_time = round(time.time() - start_time, 2)
    completed = [order_id for order_id, status in statuses.items() if status == "Completed"]

    # Print results
    print("=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)

    print(f"\n✅ Placed Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"🏁 Completed Orders: {len(completed)}/{len(successful)}")
    print(f"⏱️  Total Time: {total_time}s")

    print("\n🍳 Stations:")
    for station, stats in station_stats.items():
        print(f"   {station:<8} prepared={stats['prepared']} conflicts={stats['conflicts']}")
    print(f"\n📦 Dispatch: dispatched={dispatch_stats['dispatched']}")

    print("\n💰 Cashier Balances:")
    for cashier, data in balances.items():
        print(f"   {cashier}: {data.get('balance', 0):.2f} ({data.get('settled_orders', 0)} orders)")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    stuck = [order_id for order_id, status in statuses.items() if status != "Completed"]
    if stuck:
        print(f"\n⚠️  {len(stuck)} orders never reached Ready")

    print("\n" + "=" * 70)

    return {
        "total": num_orders,
        "placed": len(successful),
        "completed": len(completed),
        "total_time": total_time,
    }


async def check_health() -> bool:
    """Pre-flight health check."""
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(f"{API_BASE_URL}/health")
        except httpx.HTTPError as e:
            print(f"   ❌ Server unreachable: {e}")
            return False

    if response.status_code != 200:
        print(f"   ❌ Failed: {response.text}")
        return False

    data = response.json()
    print(f"   ✅ Status: {data.get('status')}")
    print(f"   Repository: {data.get('repository')}")
    print(f"   Redis: {data.get('redis')}")
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Kitchen Chaos Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--timeout", type=float, default=60.0, help="Dispatch polling timeout")
    parser.add_argument("--url", default=API_BASE_URL, help="Server base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url

    print("\n1️⃣ Health Check...")
    if not asyncio.run(check_health()):
        print("\n❌ Pre-flight check failed. Start the server first.")
        sys.exit(1)

    summary = asyncio.run(run_simulation(num_orders=args.orders, timeout=args.timeout))
    sys.exit(0 if summary["completed"] == summary["placed"] else 1)
