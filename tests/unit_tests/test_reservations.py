"""Tests for the reservation endpoints."""

import asyncio
from datetime import datetime

import httpx
import pytest

from app import db
from app.main import app
from tests.mocks.models import ADMIN_HEADERS, MOCK_DAY, NEXT_DAY, USER_HEADERS, at

CUSTOMER = {
    "customer_name": "Awa Koné",
    "customer_email": "awa@example.com",
    "customer_phone": "+225 07 00 00 00",
}


def _book(client, resource_id, start, end, **overrides):
    body = {"start_time": start.isoformat(), "end_time": end.isoformat(), **CUSTOMER, **overrides}
    return client.post(f"/api/resources/{resource_id}/reservations", json=body)


def _offered(client, resource_id, start, duration):
    data = client.get(
        f"/api/resources/{resource_id}/availability",
        params={"day": start.date().isoformat()},
    ).json()
    return any(
        datetime.fromisoformat(s["start_time"]) == start and s["duration_minutes"] == duration
        for s in data["slots"]
    )


class TestCreateReservation:
    def test_books_offered_slot(self, client, court):
        resp = _book(client, court["id"], at(10, day=NEXT_DAY), at(11, 30, day=NEXT_DAY))
        assert resp.status_code == 201, resp.text

        data = resp.json()
        assert data["resource_id"] == court["id"]
        assert data["status"] == "pending"
        assert data["total_price"] == 12000
        assert data["customer_email"] == "awa@example.com"
        assert datetime.fromisoformat(data["start_time"]) == at(10, day=NEXT_DAY)

    def test_booked_time_leaves_availability(self, client, court):
        _book(client, court["id"], at(10, day=NEXT_DAY), at(11, 30, day=NEXT_DAY))

        assert not _offered(client, court["id"], at(10, day=NEXT_DAY), 60)
        assert not _offered(client, court["id"], at(9, 30, day=NEXT_DAY), 60)
        assert _offered(client, court["id"], at(9, day=NEXT_DAY), 60)
        assert _offered(client, court["id"], at(11, 30, day=NEXT_DAY), 60)

    def test_double_booking_is_rejected(self, client, court):
        first = _book(client, court["id"], at(10, day=NEXT_DAY), at(11, day=NEXT_DAY))
        assert first.status_code == 201

        again = _book(client, court["id"], at(10, 30, day=NEXT_DAY), at(11, 30, day=NEXT_DAY))
        assert again.status_code == 409

    def test_naive_times_are_business_local(self, client, court):
        resp = _book(
            client,
            court["id"],
            datetime(2026, 3, 11, 18),
            datetime(2026, 3, 11, 19),
        )
        assert resp.status_code == 201
        assert datetime.fromisoformat(resp.json()["start_time"]) == at(18, day=NEXT_DAY)

    @pytest.mark.parametrize(
        "start, end",
        [
            ((10, 10), (11, 10)),  # off the 30-minute grid
            ((10, 0), (10, 30)),   # shorter than the minimum
            ((10, 0), (15, 0)),    # longer than the maximum
            ((21, 30), (22, 30)),  # past closing time
            ((7, 0), (8, 0)),      # before opening
        ],
    )
    def test_slot_not_offered(self, client, court, start, end):
        resp = _book(client, court["id"], at(*start, day=NEXT_DAY), at(*end, day=NEXT_DAY))
        assert resp.status_code == 409

    def test_already_started(self, client, court):
        # The frozen clock reads 09:15 on MOCK_DAY.
        resp = _book(client, court["id"], at(9), at(10))
        assert resp.status_code == 409

    def test_later_today(self, client, court):
        resp = _book(client, court["id"], at(9, 30), at(10, 30))
        assert resp.status_code == 201

    def test_blacked_out_slot(self, client, court):
        client.post(
            f"/api/resources/{court['id']}/unavailabilities",
            json={
                "start_time": at(14, day=NEXT_DAY).isoformat(),
                "end_time": at(14, 30, day=NEXT_DAY).isoformat(),
            },
            headers=ADMIN_HEADERS,
        )
        resp = _book(client, court["id"], at(14, day=NEXT_DAY), at(15, day=NEXT_DAY))
        assert resp.status_code == 409

    def test_maintenance_resource(self, client, court):
        client.patch(
            f"/api/resources/{court['id']}/status",
            json={"status": "maintenance"},
            headers=ADMIN_HEADERS,
        )
        resp = _book(client, court["id"], at(10, day=NEXT_DAY), at(11, day=NEXT_DAY))
        assert resp.status_code == 409

    def test_gym_equipment_half_hour(self, client, bike):
        resp = _book(client, bike["id"], at(8, day=NEXT_DAY), at(8, 30, day=NEXT_DAY))
        assert resp.status_code == 201
        assert resp.json()["total_price"] == 1000

    def test_end_before_start(self, client, court):
        resp = _book(client, court["id"], at(11, day=NEXT_DAY), at(10, day=NEXT_DAY))
        assert resp.status_code == 422

    def test_invalid_email(self, client, court):
        resp = _book(
            client, court["id"], at(10, day=NEXT_DAY), at(11, day=NEXT_DAY),
            customer_email="not-an-email",
        )
        assert resp.status_code == 422

    def test_unknown_resource(self, client):
        resp = _book(
            client, "00000000-0000-0000-0000-000000000099",
            at(10, day=NEXT_DAY), at(11, day=NEXT_DAY),
        )
        assert resp.status_code == 404


class TestManageReservation:
    @pytest.fixture()
    def reservation(self, client, court):
        resp = _book(client, court["id"], at(10, day=NEXT_DAY), at(12, day=NEXT_DAY))
        assert resp.status_code == 201
        return resp.json()

    def test_admin_can_read(self, client, reservation):
        resp = client.get(f"/api/reservations/{reservation['id']}", headers=ADMIN_HEADERS)
        assert resp.status_code == 200
        assert resp.json()["id"] == reservation["id"]

    def test_read_requires_admin(self, client, reservation):
        assert client.get(f"/api/reservations/{reservation['id']}").status_code == 401
        resp = client.get(f"/api/reservations/{reservation['id']}", headers=USER_HEADERS)
        assert resp.status_code == 403

    def test_read_unknown(self, client):
        resp = client.get(
            "/api/reservations/00000000-0000-0000-0000-000000000099", headers=ADMIN_HEADERS
        )
        assert resp.status_code == 404

    def test_confirm(self, client, reservation):
        resp = client.patch(
            f"/api/reservations/{reservation['id']}/status",
            json={"status": "confirmed"},
            headers=ADMIN_HEADERS,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "confirmed"

    def test_cancel_frees_the_slot(self, client, court, reservation):
        assert not _offered(client, court["id"], at(10, day=NEXT_DAY), 60)

        resp = client.patch(
            f"/api/reservations/{reservation['id']}/status",
            json={"status": "cancelled"},
            headers=ADMIN_HEADERS,
        )
        assert resp.status_code == 200
        assert _offered(client, court["id"], at(10, day=NEXT_DAY), 60)

        rebook = _book(client, court["id"], at(10, day=NEXT_DAY), at(11, day=NEXT_DAY))
        assert rebook.status_code == 201

    def test_set_status_unknown(self, client):
        resp = client.patch(
            "/api/reservations/00000000-0000-0000-0000-000000000099/status",
            json={"status": "cancelled"},
            headers=ADMIN_HEADERS,
        )
        assert resp.status_code == 404

    def test_set_status_invalid(self, client, reservation):
        resp = client.patch(
            f"/api/reservations/{reservation['id']}/status",
            json={"status": "done"},
            headers=ADMIN_HEADERS,
        )
        assert resp.status_code == 422

    def test_reconfirming_over_a_rebooked_slot_conflicts(self, client, court, reservation):
        client.patch(
            f"/api/reservations/{reservation['id']}/status",
            json={"status": "cancelled"},
            headers=ADMIN_HEADERS,
        )
        rebook = _book(client, court["id"], at(11, day=NEXT_DAY), at(12, day=NEXT_DAY))
        assert rebook.status_code == 201

        resp = client.patch(
            f"/api/reservations/{reservation['id']}/status",
            json={"status": "confirmed"},
            headers=ADMIN_HEADERS,
        )
        assert resp.status_code == 409
        assert "already reserved" in resp.json()["detail"]

        stored = client.get(f"/api/reservations/{reservation['id']}", headers=ADMIN_HEADERS)
        assert stored.json()["status"] == "cancelled"

    def test_reconfirming_into_a_blackout_conflicts(self, client, court, reservation):
        client.patch(
            f"/api/reservations/{reservation['id']}/status",
            json={"status": "cancelled"},
            headers=ADMIN_HEADERS,
        )
        blackout = client.post(
            f"/api/resources/{court['id']}/unavailabilities",
            json={
                "start_time": at(11, day=NEXT_DAY).isoformat(),
                "end_time": at(13, day=NEXT_DAY).isoformat(),
            },
            headers=ADMIN_HEADERS,
        )
        assert blackout.status_code == 201

        resp = client.patch(
            f"/api/reservations/{reservation['id']}/status",
            json={"status": "pending"},
            headers=ADMIN_HEADERS,
        )
        assert resp.status_code == 409


class TestListReservations:
    @pytest.fixture()
    def booked(self, client, court, bike):
        made = {
            "court_today": _book(client, court["id"], at(10), at(11)),
            "court_tomorrow": _book(client, court["id"], at(10, day=NEXT_DAY), at(11, day=NEXT_DAY)),
            "bike_tomorrow": _book(client, bike["id"], at(8, day=NEXT_DAY), at(9, day=NEXT_DAY)),
        }
        assert all(r.status_code == 201 for r in made.values())
        return {name: r.json()["id"] for name, r in made.items()}

    def _ids(self, resp):
        assert resp.status_code == 200, resp.text
        return [item["id"] for item in resp.json()["items"]]

    def test_lists_everything_in_start_order(self, client, booked):
        resp = client.get("/api/reservations", headers=ADMIN_HEADERS)
        assert self._ids(resp) == [
            booked["court_today"], booked["bike_tomorrow"], booked["court_tomorrow"],
        ]
        assert resp.json()["meta"]["total_items"] == 3

    def test_requires_admin(self, client, booked):
        assert client.get("/api/reservations").status_code == 401
        assert client.get("/api/reservations", headers=USER_HEADERS).status_code == 403

    def test_filter_by_resource(self, client, court, booked):
        resp = client.get(
            "/api/reservations", params={"resource_id": court["id"]}, headers=ADMIN_HEADERS
        )
        assert self._ids(resp) == [booked["court_today"], booked["court_tomorrow"]]

    def test_filter_by_day_range(self, client, booked):
        day = NEXT_DAY.isoformat()
        resp = client.get(
            "/api/reservations", params={"date_from": day, "date_to": day}, headers=ADMIN_HEADERS
        )
        assert self._ids(resp) == [booked["bike_tomorrow"], booked["court_tomorrow"]]

        resp = client.get(
            "/api/reservations", params={"date_to": MOCK_DAY.isoformat()}, headers=ADMIN_HEADERS
        )
        assert self._ids(resp) == [booked["court_today"]]

    def test_inverted_day_range(self, client):
        resp = client.get(
            "/api/reservations",
            params={"date_from": NEXT_DAY.isoformat(), "date_to": MOCK_DAY.isoformat()},
            headers=ADMIN_HEADERS,
        )
        assert resp.status_code == 400

    def test_filter_by_status(self, client, booked):
        client.patch(
            f"/api/reservations/{booked['bike_tomorrow']}/status",
            json={"status": "cancelled"},
            headers=ADMIN_HEADERS,
        )
        resp = client.get("/api/reservations", params={"status": "cancelled"}, headers=ADMIN_HEADERS)
        assert self._ids(resp) == [booked["bike_tomorrow"]]

        resp = client.get("/api/reservations", params={"status": "pending"}, headers=ADMIN_HEADERS)
        assert self._ids(resp) == [booked["court_today"], booked["court_tomorrow"]]

    def test_pagination(self, client, booked):
        resp = client.get(
            "/api/reservations", params={"page": 2, "page_size": 2}, headers=ADMIN_HEADERS
        )
        assert self._ids(resp) == [booked["court_tomorrow"]]
        assert resp.json()["meta"]["total_pages"] == 2


@pytest.mark.asyncio
async def test_concurrent_requests_for_one_slot(_test_env):
    """Two simultaneous bookings of the same slot: one wins, the other gets 409."""
    await db.init_db()
    try:
        court_id = next(str(r.id) for r in await db.list_resources() if r.name == "Padel Court A")
        body = {
            "start_time": at(10, day=NEXT_DAY).isoformat(),
            "end_time": at(11, day=NEXT_DAY).isoformat(),
            **CUSTOMER,
        }
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            responses = await asyncio.gather(
                *(ac.post(f"/api/resources/{court_id}/reservations", json=body) for _ in range(2))
            )

        assert sorted(r.status_code for r in responses) == [201, 409]
        assert len(await db.list_reservations(resource_id=court_id)) == 1
    finally:
        await db.close_db()
