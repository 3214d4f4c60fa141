from datetime import timedelta
from uuid import UUID, uuid4

import httpx
import pytest
from sqlalchemy import select

from app.api.deps import get_db
from app.core.security import create_access_token
from app.main import app
from app.models.booking import Booking
from app.services.email_service import get_email_dispatcher

BASE = "/api/book"


@pytest.fixture
async def api(session_factory, email):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_dispatcher] = lambda: email
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


def _auth(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


def _payload(client_user, provider_user, **overrides) -> dict:
    body = {
        "userId": str(client_user.id),
        "providerId": str(provider_user.id),
        "serviceName": "Plumbing",
        "date": "2025-03-01",
        "time": "14:00",
        "price": 450,
        "address": "12 Main St",
    }
    body.update(overrides)
    return body


async def _stored(session_factory, booking_id) -> Booking | None:
    async with session_factory() as session:
        return await session.scalar(select(Booking).where(Booking.id == UUID(str(booking_id))))


@pytest.fixture
async def booked(api, client_user, provider_user) -> dict:
    response = await api.post(f"{BASE}/book-service", json=_payload(client_user, provider_user))
    assert response.status_code == 201
    return response.json()["booking"]


async def test_health(api):
    response = await api.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_book_service_returns_camel_case_booking(api, email, client_user, provider_user):
    response = await api.post(f"{BASE}/book-service", json=_payload(client_user, provider_user))

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Booking created, provider notified, and email sent."
    booking = body["booking"]
    assert booking["status"] == "pending"
    assert booking["serviceName"] == "Plumbing"
    assert booking["clientId"] == str(client_user.id)
    assert booking["providerId"] == str(provider_user.id)
    assert booking["price"] == 450
    assert booking["pendingRating"] is False
    assert email.sent[0]["to"] == provider_user.email


async def test_book_service_missing_fields(api, client_user, provider_user):
    body = _payload(client_user, provider_user)
    del body["address"]
    del body["time"]

    response = await api.post(f"{BASE}/book-service", json=body)

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "message": "Validation error: Missing fields - time, address.",
    }


async def test_book_service_malformed_id_is_400(api, client_user, provider_user):
    response = await api.post(
        f"{BASE}/book-service", json=_payload(client_user, provider_user, providerId="not-a-uuid")
    )
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["message"].startswith("Validation error: providerId")


async def test_book_service_unknown_provider(api, client_user, provider_user):
    response = await api.post(
        f"{BASE}/book-service", json=_payload(client_user, provider_user, providerId=str(uuid4()))
    )
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Service provider not found."}


async def test_book_service_email_failure_is_500_but_booking_is_kept(
    api, email, session_factory, client_user, provider_user
):
    email.fail_next()

    response = await api.post(f"{BASE}/book-service", json=_payload(client_user, provider_user))

    assert response.status_code == 500
    assert response.json()["success"] is False
    async with session_factory() as session:
        stored = (await session.scalars(select(Booking))).all()
    assert [b.status for b in stored] == ["pending"]


async def test_provider_accepts_then_completes(api, email, session_factory, booked, provider_user):
    accepted = await api.post(f"{BASE}/accept/{booked['id']}", headers=_auth(provider_user))
    assert accepted.status_code == 200
    assert accepted.json()["message"] == (
        "Booking successfully accepted. A confirmation email has been sent to the client."
    )
    assert accepted.json()["booking"]["status"] == "confirmed"

    completed = await api.post(f"{BASE}/complete/{booked['id']}", headers=_auth(provider_user))
    assert completed.status_code == 200
    assert completed.json()["booking"]["status"] == "completed"
    assert completed.json()["booking"]["pendingRating"] is True

    stored = await _stored(session_factory, booked["id"])
    assert stored.status == "completed"
    assert [m["subject"] for m in email.sent][-1] == "Job Completed - Plumbing"


async def test_rejected_booking_cannot_be_accepted(api, session_factory, booked, provider_user):
    rejected = await api.post(f"{BASE}/reject/{booked['id']}", headers=_auth(provider_user))
    assert rejected.status_code == 200
    assert rejected.json()["message"] == "Booking successfully rejected. An email has been sent to the client."

    again = await api.post(f"{BASE}/accept/{booked['id']}", headers=_auth(provider_user))
    assert again.status_code == 400
    assert again.json()["success"] is False

    stored = await _stored(session_factory, booked["id"])
    assert stored.status == "rejected"


async def test_decisions_require_authentication(api, booked):
    response = await api.post(f"{BASE}/accept/{booked['id']}")
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Not authenticated"}


async def test_expired_token_is_rejected(api, booked, provider_user):
    token = create_access_token({"sub": str(provider_user.id)}, expires_delta=timedelta(minutes=-1))
    response = await api.post(f"{BASE}/accept/{booked['id']}", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


async def test_clients_cannot_decide(api, booked, client_user):
    response = await api.post(f"{BASE}/accept/{booked['id']}", headers=_auth(client_user))
    assert response.status_code == 403


async def test_other_provider_cannot_decide(api, booked, other_provider):
    response = await api.post(f"{BASE}/reject/{booked['id']}", headers=_auth(other_provider))
    assert response.status_code == 403


async def test_unknown_booking_is_404(api, provider_user):
    response = await api.post(f"{BASE}/accept/{uuid4()}", headers=_auth(provider_user))
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Booking not found."}


async def test_provider_bookings_listing(api, booked, client_user, provider_user):
    response = await api.get(f"{BASE}/provider/bookings/pending", headers=_auth(provider_user))

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "pending bookings fetched successfully."
    assert len(body["bookings"]) == 1
    item = body["bookings"][0]
    assert item["id"] == booked["id"]
    assert item["clientName"] == client_user.name
    assert item["email"] == client_user.email
    assert item["phone"] == client_user.phone
    assert item["profileImage"].endswith("/avatars/chipo.png")

    empty = await api.get(f"{BASE}/provider/bookings/completed", headers=_auth(provider_user))
    assert empty.status_code == 200
    assert empty.json()["bookings"] == []


async def test_client_history(api, booked, client_user, provider_user):
    pending = await api.get(f"{BASE}/history/all", headers=_auth(client_user))
    assert pending.status_code == 200
    data = pending.json()["data"]
    assert [item["id"] for item in data] == [booked["id"]]
    assert data[0]["provider"]["name"] == provider_user.name
    assert data[0]["provider"]["profileImage"] == "https://cdn.example.com/petrus.jpg"

    completed = await api.get(f"{BASE}/history/completed", headers=_auth(client_user))
    assert completed.status_code == 200
    assert completed.json() == {"success": True, "data": []}


async def test_history_unknown_view_is_400(api, client_user):
    response = await api.get(f"{BASE}/history/archived", headers=_auth(client_user))
    assert response.status_code == 400


async def test_client_withdraws_pending_booking(api, session_factory, booked, client_user):
    response = await api.delete(f"{BASE}/pending/{booked['id']}", headers=_auth(client_user))

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Pending booking deleted successfully."}
    assert await _stored(session_factory, booked["id"]) is None


async def test_other_client_cannot_withdraw(api, session_factory, booked, other_client):
    response = await api.delete(f"{BASE}/pending/{booked['id']}", headers=_auth(other_client))

    assert response.status_code == 403
    assert response.json()["message"] == "Pending booking not found or not authorized to delete."
    assert await _stored(session_factory, booked["id"]) is not None


async def test_accepted_booking_cannot_be_withdrawn(api, session_factory, booked, client_user, provider_user):
    await api.post(f"{BASE}/accept/{booked['id']}", headers=_auth(provider_user))

    response = await api.delete(f"{BASE}/pending/{booked['id']}", headers=_auth(client_user))

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "message": "Pending booking not found or not authorized to delete.",
    }
    assert (await _stored(session_factory, booked["id"])).status == "confirmed"


async def test_delete_rejected_and_completed(api, session_factory, booked, client_user, provider_user):
    await api.post(f"{BASE}/reject/{booked['id']}", headers=_auth(provider_user))

    wrong_kind = await api.delete(f"{BASE}/completed/{booked['id']}", headers=_auth(client_user))
    assert wrong_kind.status_code == 400

    deleted = await api.delete(f"{BASE}/rejected/{booked['id']}", headers=_auth(client_user))
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "Rejected booking deleted successfully."
    assert await _stored(session_factory, booked["id"]) is None

    again = await api.delete(f"{BASE}/rejected/{booked['id']}", headers=_auth(client_user))
    assert again.status_code == 404
    assert again.json()["message"] == "Rejected booking not found or already deleted."


async def test_dispatch_retries_failed_email(api, email, session_factory, booked, provider_user):
    email.fail_next()
    failed = await api.post(f"{BASE}/accept/{booked['id']}", headers=_auth(provider_user))
    assert failed.status_code == 500
    assert (await _stored(session_factory, booked["id"])).status == "confirmed"

    retried = await api.post(f"{BASE}/dispatch/{booked['id']}", headers=_auth(provider_user))
    assert retried.status_code == 200
    assert retried.json()["message"] == "Booking notifications are up to date."
    assert retried.json()["booking"]["emailedAt"] is not None
    assert email.sent[-1]["subject"] == "Your Booking is Confirmed - Plumbing"
