"""
Tests for Notifications API
===========================

Tests reminder listing, cancellation, rescheduling and the sweep endpoint.
"""

import pytest
from datetime import datetime
from fastapi import status
from fastapi.testclient import TestClient

from models import NotificationStatus, ScheduledNotification


@pytest.fixture
def scheduled(client: TestClient, daily_medication):
    response = client.post(f"/api/v1/notifications/medications/{daily_medication.id}/schedule")
    assert response.status_code == status.HTTP_200_OK
    return response.json()


class TestScheduling:
    """Tests for materialization endpoints"""

    @pytest.mark.api
    def test_schedule_medication(self, scheduled):
        assert scheduled["scheduled"] == 7
        assert scheduled["failed"] == 0

    @pytest.mark.api
    def test_schedule_is_idempotent(self, client: TestClient, daily_medication, scheduled):
        response = client.post(f"/api/v1/notifications/medications/{daily_medication.id}/schedule")

        data = response.json()
        assert data["scheduled"] == 0
        assert data["skipped_existing"] == 7

    @pytest.mark.api
    def test_days_ahead_bounds(self, client: TestClient, daily_medication):
        response = client.post(
            f"/api/v1/notifications/medications/{daily_medication.id}/schedule",
            params={"days_ahead": 0}
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.api
    def test_reschedule(self, client: TestClient, daily_medication, scheduled):
        response = client.post(f"/api/v1/notifications/medications/{daily_medication.id}/reschedule")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["cancelled"]["cancelled"] == 7
        assert data["scheduled"]["scheduled"] == 7

    @pytest.mark.api
    def test_unknown_medication(self, client: TestClient):
        response = client.post("/api/v1/notifications/medications/999/schedule")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestListing:
    """Tests for a user's reminders"""

    @pytest.mark.api
    def test_list_with_status_filter(self, client: TestClient, test_user, scheduled):
        response = client.get(
            f"/api/v1/notifications/users/{test_user.id}",
            params={"status": "scheduled", "limit": 3}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert len(data) == 3
        assert data[0]["notification_time"] == "2025-01-15T07:45:00"
        assert all(n["status"] == "scheduled" for n in data)

    @pytest.mark.api
    def test_unknown_status_rejected(self, client: TestClient, test_user):
        response = client.get(f"/api/v1/notifications/users/{test_user.id}", params={"status": "queued"})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestCancel:
    """Tests for cancelling one reminder"""

    @pytest.mark.api
    def test_cancel_then_conflict(self, client: TestClient, db_session, test_user, scheduled):
        notification_id = db_session.query(ScheduledNotification.id).first().id

        first = client.post(
            f"/api/v1/notifications/{notification_id}/cancel", json={"user_id": test_user.id}
        )
        second = client.post(
            f"/api/v1/notifications/{notification_id}/cancel", json={"user_id": test_user.id}
        )

        assert first.status_code == status.HTTP_200_OK
        assert first.json()["status"] == "cancelled"
        assert second.status_code == status.HTTP_409_CONFLICT

    @pytest.mark.api
    def test_cancel_other_users_reminder(self, client: TestClient, db_session, other_user, scheduled):
        notification_id = db_session.query(ScheduledNotification.id).first().id

        response = client.post(
            f"/api/v1/notifications/{notification_id}/cancel", json={"user_id": other_user.id}
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestSweep:
    """Tests for running a sweep on demand"""

    @pytest.mark.api
    def test_sweep_delivers_due_reminders(self, client: TestClient, db_session, test_device, scheduled, clock, transport):
        clock.set(datetime(2025, 1, 15, 7, 50))

        response = client.post("/api/v1/notifications/sweep")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["ran"] is True
        assert data["selected"] == 1
        assert data["sent"] == 1
        assert len(transport.messages) == 1
        assert db_session.query(ScheduledNotification).filter_by(
            status=NotificationStatus.SENT
        ).count() == 1

    @pytest.mark.api
    def test_sweep_with_nothing_due(self, client: TestClient):
        response = client.post("/api/v1/notifications/sweep")

        assert response.json() == {
            "ran": True, "selected": 0, "sent": 0, "failed": 0, "users": 0, "skipped": 0
        }
