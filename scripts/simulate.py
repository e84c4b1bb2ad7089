"""
Booking Rush Simulation

Fires concurrent bookings at a running API, then races confirm and cancel
requests against the same reservations to check that every reservation
ends in exactly one terminal answer.
Run from project root: python scripts/simulate.py
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import date, datetime, timedelta
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_BOOKINGS = 50

FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis", "Wilson", "Taylor"]
REQUESTS = [None, "Window seat", "High chair needed", "Anniversary", "Quiet table"]


def generate_booking_payload() -> dict[str, Any]:
    """Random booking 1-14 days ahead inside business hours, sometimes invalid."""
    first = random.choice(FIRST_NAMES)
    last = random.choice(LAST_NAMES)
    day = date.today() + timedelta(days=random.randint(1, 14))
    hour = random.randint(17, 21)

    payload = {
        "customer_name": f"{first} {last}",
        "customer_email": f"{first.lower()}.{last.lower()}@example.com",
        "customer_phone": f"555-{random.randint(100,999)}-{random.randint(1000,9999)}",
        "party_size": random.randint(1, 12),
        "reservation_date": datetime(day.year, day.month, day.day, hour, random.choice([0, 30])).isoformat(),
        "special_requests": random.choice(REQUESTS),
    }

    # One in ten bookings breaks a rule on purpose
    if random.random() < 0.1:
        payload["party_size"] = random.choice([0, 13, 20])
    return {"reservation": payload}


async def send_booking(client: httpx.AsyncClient, num: int) -> dict[str, Any]:
    payload = generate_booking_payload()
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/v1/reservations",
            json=payload,
            timeout=30.0,
        )
    except httpx.HTTPError as e:
        return {"num": num, "success": False, "error": str(e)[:100], "time": round(time.time() - start_time, 3)}

    elapsed = round(time.time() - start_time, 3)
    if response.status_code == 201:
        return {
            "num": num,
            "success": True,
            "reservation_id": response.json()["data"]["id"],
            "time": elapsed,
        }
    return {
        "num": num,
        "success": False,
        "error": ", ".join(response.json().get("errors", []))[:100],
        "time": elapsed,
    }


async def race_status_change(client: httpx.AsyncClient, reservation_id: int) -> dict[str, Any]:
    """Send confirm and cancel at the same moment and report who won."""
    confirm, cancel = await asyncio.gather(
        client.patch(f"{API_BASE_URL}/api/v1/reservations/{reservation_id}/confirm", headers={"X-Actor": "sim:host"}),
        client.patch(f"{API_BASE_URL}/api/v1/reservations/{reservation_id}/cancel", headers={"X-Actor": "sim:guest"}),
    )
    final = await client.get(f"{API_BASE_URL}/api/v1/reservations/{reservation_id}")
    return {
        "reservation_id": reservation_id,
        "confirm": confirm.status_code,
        "cancel": cancel.status_code,
        "final_status": final.json()["data"]["status"],
    }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_bookings: int = TOTAL_BOOKINGS) -> dict[str, Any]:
    print("=" * 70)
    print("BOOKING RUSH SIMULATION")
    print("=" * 70)
    print(f"Total Bookings: {num_bookings}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        results = await asyncio.gather(*[send_booking(client, i + 1) for i in range(num_bookings)])

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        races = await asyncio.gather(*[
            race_status_change(client, r["reservation_id"]) for r in successful
        ])

    total_time = round(time.time() - start_time, 2)

    print(f"\nBookings accepted: {len(successful)}/{num_bookings}")
    print(f"Bookings rejected: {len(failed)}/{num_bookings}")
    print(f"Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print(f"Average Response: {avg_time}s")

    if failed:
        print("\nRejected bookings (showing first 5):")
        for f in failed[:5]:
            print(f"   Booking #{f['num']}: {f.get('error', 'Unknown error')}")

    outcomes: dict[str, int] = {}
    for race in races:
        outcomes[race["final_status"]] = outcomes.get(race["final_status"], 0) + 1
    print(f"\nConfirm/cancel race outcomes: {outcomes}")
    print("=" * 70)

    return {
        "total": num_bookings,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "races": races,
    }


async def check_health() -> bool:
    async with httpx.AsyncClient() as client:
        response = await client.get(f"{API_BASE_URL}/health")
    if response.status_code != 200:
        print(f"Health check failed: {response.text}")
        return False
    data = response.json()
    print(f"Status: {data.get('status')} (database: {data.get('database')}, redis: {data.get('redis')})")
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Booking Rush Simulation")
    parser.add_argument("--bookings", type=int, default=TOTAL_BOOKINGS, help="Number of bookings")
    parser.add_argument("--skip-health", action="store_true", help="Skip the health check")
    args = parser.parse_args()

    if not args.skip_health and not asyncio.run(check_health()):
        sys.exit(1)

    asyncio.run(run_simulation(args.bookings))
