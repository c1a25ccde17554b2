import httpx
import asyncio
import uuid
from ridebook.middleware.auth import create_access_token


BASE_URL = "http://localhost:8000"


async def safe_request(resp: httpx.Response, step: str):
    """Print response + fail loudly if error"""
    print(f"{step}: {resp.status_code}")

    try:
        print(resp.json())
    except Exception:
        print(resp.text)

    resp.raise_for_status()


async def main():

    async with httpx.AsyncClient(timeout=30.0) as client:

        # ---------------------------------------------------
        print("\n1. Checking Health...")
        resp = await client.get(f"{BASE_URL}/health")
        await safe_request(resp, "Health")

        # ---------------------------------------------------
        print("\n2. Registering Driver...")

        driver_payload = {
            "name": "Test Driver",
            "phone": f"+91{uuid.uuid4().int % 10000000000:010d}",
            "rating": 4.7,
            "vehicle": {"make": "Kia", "model": "Niro", "color": "White", "license_plate": "KA 01 0001"},
        }

        resp = await client.post(f"{BASE_URL}/v1/drivers", json=driver_payload)
        await safe_request(resp, "Register Driver")

        # ---------------------------------------------------
        print("\n3. Generating Tokens...")

        rider_id = str(uuid.uuid4())
        rider_headers = {"Authorization": f"Bearer {create_access_token({'sub': rider_id})}"}
        ops_headers = {"Authorization": f"Bearer {create_access_token({'sub': 'ops', 'role': 'ops'})}"}

        # ---------------------------------------------------
        print("\n4. Rider books a ride...")

        resp = await client.post(
            f"{BASE_URL}/v1/bookings",
            json={"pickup": "12 Main St", "dropoff": "Airport", "date": "2025-01-01", "time": "09:00"},
            headers={**rider_headers, "Idempotency-Key": str(uuid.uuid4())},
        )
        await safe_request(resp, "Create Booking")
        booking_id = resp.json()["id"]

        # ---------------------------------------------------
        print("\n5. Manual assign (races the dispatch timer)...")
        resp = await client.post(f"{BASE_URL}/v1/bookings/{booking_id}/assign", headers=ops_headers)
        await safe_request(resp, "Assign Driver")

        # ---------------------------------------------------
        print("\n6. Completing trip...")
        resp = await client.post(f"{BASE_URL}/v1/bookings/{booking_id}/complete", headers=ops_headers)
        await safe_request(resp, "Complete")

        # ---------------------------------------------------
        print("\n7. Rider history...")
        resp = await client.get(
            f"{BASE_URL}/v1/bookings", params={"status_class": "historical"}, headers=rider_headers
        )
        await safe_request(resp, "History")

        print("\nFLOW COMPLETED SUCCESSFULLY")


if __name__ == "__main__":
    asyncio.run(main())
