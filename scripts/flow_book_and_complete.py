#!/usr/bin/env python3
"""
Booking lifecycle flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_book_and_complete.py --client-id <UUID> --provider-id <UUID>
    python scripts/flow_book_and_complete.py --client-id <UUID> --provider-id <UUID> --reject

Tokens are minted locally with the shared JWT secret, so run this from the
repository root with the same environment as the server.

Flow:
    1. Client requests a service
    2. Provider lists pending bookings
    3. Provider accepts (or rejects) the booking
    4. Provider completes the job
    5. Client reads completed (or rejected) history
    6. Client deletes the finished booking
"""

import argparse
import json
import sys
from pathlib import Path

import httpx

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.core.security import create_access_token  # noqa: E402

BASE_URL = "http://localhost:8000"
API = "/api/book"


def api_request(token: str | None, method: str, endpoint: str, data: dict | None = None) -> dict:
    """Make API request, authenticated when a token is given."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    url = f"{BASE_URL}{API}{endpoint}"

    if method == "GET":
        response = httpx.get(url, headers=headers, timeout=30.0)
    elif method == "POST":
        response = httpx.post(url, headers=headers, json=data or {}, timeout=30.0)
    elif method == "DELETE":
        response = httpx.delete(url, headers=headers, timeout=30.0)
    else:
        raise ValueError(f"Unknown method: {method}")

    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict) -> bool:
    """Print result; False when the call failed."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    print(json.dumps(result["data"], indent=2))
    return True


def main():
    parser = argparse.ArgumentParser(description="Booking lifecycle flow")
    parser.add_argument("--client-id", required=True, help="Client user UUID")
    parser.add_argument("--provider-id", required=True, help="Provider user UUID")
    parser.add_argument("--service", default="Plumbing", help="Service name")
    parser.add_argument("--date", default="2025-03-01", help="Date (YYYY-MM-DD)")
    parser.add_argument("--time", default="14:00", help="Time (HH:MM)")
    parser.add_argument("--price", type=float, default=450, help="Price")
    parser.add_argument("--address", default="12 Main St", help="Service address")
    parser.add_argument("--reject", action="store_true", help="Reject instead of accept and complete")
    args = parser.parse_args()

    client_token = create_access_token({"sub": args.client_id})
    provider_token = create_access_token({"sub": args.provider_id})

    print_step(1, "Client requests a service")
    created = api_request(None, "POST", "/book-service", {
        "userId": args.client_id,
        "providerId": args.provider_id,
        "serviceName": args.service,
        "date": args.date,
        "time": args.time,
        "price": args.price,
        "address": args.address,
    })
    if not print_result(created):
        sys.exit(1)
    booking_id = created["data"]["booking"]["id"]

    print_step(2, "Provider lists pending bookings")
    if not print_result(api_request(provider_token, "GET", "/provider/bookings/pending")):
        sys.exit(1)

    if args.reject:
        print_step(3, "Provider rejects the booking")
        if not print_result(api_request(provider_token, "POST", f"/reject/{booking_id}")):
            sys.exit(1)
        view = "rejected"
    else:
        print_step(3, "Provider accepts the booking")
        if not print_result(api_request(provider_token, "POST", f"/accept/{booking_id}")):
            sys.exit(1)

        print_step(4, "Provider completes the job")
        if not print_result(api_request(provider_token, "POST", f"/complete/{booking_id}")):
            sys.exit(1)
        view = "completed"

    print_step(5, f"Client reads {view} history")
    if not print_result(api_request(client_token, "GET", f"/history/{view}")):
        sys.exit(1)

    print_step(6, "Client deletes the finished booking")
    if not print_result(api_request(client_token, "DELETE", f"/{view}/{booking_id}")):
        sys.exit(1)

    print("\n" + "="*60)
    print("FLOW COMPLETE")
    print("="*60)
    print(f"Booking: {booking_id}")


if __name__ == "__main__":
    main()
