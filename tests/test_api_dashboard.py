"""Dashboard endpoints: auth, availability, settings, catalog, bookings and calendar"""
from datetime import datetime

import pytest

from realty_booking.models import UserRole

from tests.conftest import MONDAY, add_rule, at, auth_headers, book, make_admin, make_service, unknown_id

API = "/api/v1/dashboard"


def ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@pytest.fixture
def headers(admin):
    return auth_headers(admin)


@pytest.fixture
def booking(db, admin):
    add_rule(db, admin)
    return book(db, admin, at(MONDAY, 9), [make_service(db, admin)])


class TestAuth:

    def test_missing_token(self, client):
        assert client.get(f"{API}/bookings").status_code == 401

    def test_garbage_token(self, client):
        response = client.get(f"{API}/bookings", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401

    def test_realtor_is_forbidden(self, client, db):
        realtor = make_admin(db, "a-realtor", role=UserRole.REALTOR)
        assert client.get(f"{API}/bookings", headers=auth_headers(realtor)).status_code == 403

    def test_inactive_admin_is_forbidden(self, client, db, admin):
        admin.is_active = False
        db.commit()
        assert client.get(f"{API}/bookings", headers=auth_headers(admin)).status_code == 403


class TestAvailabilityRoutes:

    def test_rule_crud(self, client, headers):
        created = client.post(f"{API}/availability/rules", headers=headers,
                              json={"dayOfWeek": 1, "startMinutes": 540, "endMinutes": 1020})
        assert created.status_code == 201
        rule = created.json()
        assert rule["timeZone"] == "UTC"
        assert rule["active"] is True

        patched = client.patch(f"{API}/availability/rules/{rule['id']}", headers=headers, json={"endMinutes": 720})
        assert patched.json()["endMinutes"] == 720

        assert len(client.get(f"{API}/availability/rules", headers=headers).json()) == 1
        assert client.delete(f"{API}/availability/rules/{rule['id']}", headers=headers).status_code == 204
        assert client.get(f"{API}/availability/rules", headers=headers).json() == []

    def test_invalid_rule(self, client, headers):
        response = client.post(f"{API}/availability/rules", headers=headers,
                               json={"dayOfWeek": 1, "startMinutes": 1020, "endMinutes": 540})
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    def test_inverting_update_is_rejected(self, client, headers):
        rule = client.post(f"{API}/availability/rules", headers=headers,
                           json={"dayOfWeek": 1, "startMinutes": 540, "endMinutes": 600}).json()

        response = client.patch(f"{API}/availability/rules/{rule['id']}", headers=headers, json={"startMinutes": 660})

        assert response.status_code == 400

    def test_blackouts(self, client, headers):
        created = client.post(f"{API}/availability/blackouts", headers=headers, json={
            "start": "2025-12-24T00:00:00Z", "end": "2025-12-27T00:00:00Z", "reason": "Holiday"
        })
        assert created.status_code == 201
        assert created.json()["reason"] == "Holiday"

        listed = client.get(f"{API}/availability/blackouts", headers=headers).json()
        assert [ts(b["start"]) for b in listed] == [ts("2025-12-24T00:00:00Z")]

    def test_other_admins_rule_is_404(self, client, db, admin):
        rule = add_rule(db, admin)
        other = make_admin(db, "other-media")

        response = client.delete(f"{API}/availability/rules/{rule.id}", headers=auth_headers(other))

        assert response.status_code == 404


class TestSettingsRoutes:

    def test_defaults_for_new_admin(self, client, db):
        fresh = make_admin(db, "fresh-admin")

        data = client.get(f"{API}/booking-settings", headers=auth_headers(fresh)).json()

        assert data == {
            "timeZone": "UTC",
            "leadTimeMin": 0,
            "maxAdvanceDays": 60,
            "defaultBufferMin": 0,
            "externalCalendarId": None,
        }

    def test_loose_values_are_coerced(self, client, headers):
        response = client.put(f"{API}/booking-settings", headers=headers,
                              json={"leadTimeMin": "abc", "maxAdvanceDays": "30", "defaultBufferMin": -10})

        assert response.status_code == 200
        data = response.json()
        assert data["leadTimeMin"] == 0
        assert data["maxAdvanceDays"] == 30
        assert data["defaultBufferMin"] == 0

    def test_bad_time_zone(self, client, headers):
        response = client.put(f"{API}/booking-settings", headers=headers, json={"timeZone": "Nowhere/City"})
        assert response.status_code == 400


class TestCatalogRoutes:

    def test_create_service_with_tax(self, client, headers):
        category = client.post(f"{API}/catalog/categories", headers=headers, json={"name": "Photography"}).json()
        rate = client.post(f"{API}/catalog/tax-rates", headers=headers, json={"name": "HST", "rateBps": 1300}).json()

        response = client.post(f"{API}/catalog/services", headers=headers, json={
            "categoryId": category["id"],
            "name": "Twilight photos",
            "durationMin": 45,
            "bufferAfterMin": 15,
            "priceCents": 12000,
            "taxRateIds": [rate["id"]],
        })

        assert response.status_code == 201
        data = response.json()
        assert data["formattedDuration"] == "45m"
        assert data["taxRates"][0]["rateBps"] == 1300

        listed = client.get(f"{API}/catalog/services", headers=headers, params={"categoryId": category["id"]}).json()
        assert [s["name"] for s in listed] == ["Twilight photos"]

    def test_zero_duration_is_rejected(self, client, headers):
        category = client.post(f"{API}/catalog/categories", headers=headers, json={"name": "Video"}).json()
        response = client.post(f"{API}/catalog/services", headers=headers,
                               json={"categoryId": category["id"], "name": "Reel", "durationMin": 0})
        assert response.status_code == 400


class TestBookingRoutes:

    def test_list_and_get(self, client, headers, booking):
        listed = client.get(f"{API}/bookings", headers=headers).json()
        assert [b["id"] for b in listed] == [str(booking.id)]

        data = client.get(f"{API}/bookings/{booking.id}", headers=headers).json()
        assert data["contactName"] == "Jane Realtor"
        assert data["services"][0]["durationMin"] == 60

    def test_other_admin_gets_404(self, client, db, booking):
        other = make_admin(db, "other-media")

        response = client.get(f"{API}/bookings/{booking.id}", headers=auth_headers(other))

        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_unknown_booking(self, client, headers):
        assert client.get(f"{API}/bookings/{unknown_id()}", headers=headers).status_code == 404

    def test_cancel_twice(self, client, headers, booking):
        first = client.post(f"{API}/bookings/{booking.id}/cancel", headers=headers)
        assert first.status_code == 200
        assert first.json()["status"] == "CANCELLED"

        second = client.post(f"{API}/bookings/{booking.id}/cancel", headers=headers)
        assert second.status_code == 409
        assert second.json()["code"] == "invalid_transition"

    def test_reschedule(self, client, headers, booking):
        response = client.patch(f"{API}/bookings/{booking.id}", headers=headers, json={"start": "2025-03-10T13:00:00Z"})

        assert response.status_code == 200
        assert ts(response.json()["end"]) == at(MONDAY, 14)

    def test_reschedule_into_conflict(self, client, db, admin, headers, booking):
        book(db, admin, at(MONDAY, 13), list(booking.services))

        response = client.patch(f"{API}/bookings/{booking.id}", headers=headers, json={"start": "2025-03-10T13:30:00Z"})

        assert response.status_code == 409
        assert response.json()["code"] == "slot_unavailable"

    def test_invalid_status_transition(self, client, headers, booking):
        client.patch(f"{API}/bookings/{booking.id}", headers=headers, json={"status": "COMPLETED"})

        response = client.patch(f"{API}/bookings/{booking.id}", headers=headers, json={"status": "PENDING"})

        assert response.status_code == 409


class TestSyncRoute:

    def test_no_linked_event(self, client, headers, booking):
        response = client.post(f"{API}/bookings/{booking.id}/sync-from-google", headers=headers)

        assert response.status_code == 409
        assert response.json()["code"] == "no_linked_event"

    def test_upstream_unavailable(self, client, db, headers, booking, fake_calendar):
        booking.external_event_id = "evt-remote"
        db.commit()
        fake_calendar.fail = True

        response = client.post(f"{API}/bookings/{booking.id}/sync-from-google", headers=headers)

        assert response.status_code == 502
        assert response.json()["code"] == "upstream_unavailable"

    def test_remote_event_gone(self, client, db, headers, booking):
        booking.external_event_id = "evt-remote"
        db.commit()

        response = client.post(f"{API}/bookings/{booking.id}/sync-from-google", headers=headers)

        assert response.status_code == 404
        assert response.json()["code"] == "remote_event_not_found"

    def test_sync_returns_booking_and_event(self, client, db, headers, booking, fake_calendar):
        booking.external_event_id = "evt-remote"
        db.commit()
        fake_calendar.put_event("evt-remote", start=at(MONDAY, 11))

        response = client.post(f"{API}/bookings/{booking.id}/sync-from-google", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert ts(data["booking"]["start"]) == at(MONDAY, 11)
        assert ts(data["booking"]["end"]) == at(MONDAY, 12)
        assert data["event"]["id"] == "evt-remote"


class TestCalendarRoutes:

    def test_status_and_calendars(self, client, headers):
        assert client.get(f"{API}/calendar/status", headers=headers).json()["connected"] is True

        calendars = client.get(f"{API}/calendar/calendars", headers=headers).json()["calendars"]
        assert calendars[0] == {"id": "primary@example.com", "displayName": "Primary", "isPrimary": True}

    def test_select_calendar(self, client, headers):
        response = client.post(f"{API}/calendar/select", headers=headers,
                               json={"calendarId": "shoots@group.calendar.google.com"})

        assert response.status_code == 200
        assert response.json()["calendarId"] == "shoots@group.calendar.google.com"
        assert response.json()["connected"] is True
        settings = client.get(f"{API}/booking-settings", headers=headers).json()
        assert settings["externalCalendarId"] == "shoots@group.calendar.google.com"

    def test_select_reports_missing_connection(self, client, headers, fake_calendar):
        fake_calendar.connected = False

        response = client.post(f"{API}/calendar/select", headers=headers, json={"calendarId": None})

        assert response.status_code == 200
        assert response.json()["connected"] is False

    def test_select_unknown_calendar(self, client, headers):
        response = client.post(f"{API}/calendar/select", headers=headers, json={"calendarId": "someone-else"})
        assert response.status_code == 400

    def test_list_calendars_upstream_error(self, client, headers, fake_calendar):
        fake_calendar.fail = True
        assert client.get(f"{API}/calendar/calendars", headers=headers).status_code == 502

    def test_disconnect(self, client, admin, headers, fake_calendar):
        client.post(f"{API}/calendar/select", headers=headers, json={"calendarId": "shoots@group.calendar.google.com"})

        response = client.post(f"{API}/calendar/disconnect", headers=headers)

        assert response.json()["connected"] is False
        assert fake_calendar.disconnected == [admin.id]
        assert client.get(f"{API}/booking-settings", headers=headers).json()["externalCalendarId"] is None
