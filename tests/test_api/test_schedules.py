"""
Tests for Schedules API
=======================

Tests custom slots, dose status, today's doses and adherence endpoints.
"""

import pytest
from datetime import datetime
from fastapi import status
from fastapi.testclient import TestClient

from models import HistoryAction, MedicationHistory, MedicationSchedule


def _slot_id(db_session, medication) -> int:
    return db_session.query(MedicationSchedule).filter_by(medication_id=medication.id).first().id


class TestCustomSchedules:
    """Tests for slot endpoints"""

    @pytest.mark.api
    def test_create_custom_slot(self, client: TestClient, daily_medication):
        response = client.post(
            f"/api/v1/schedules/medications/{daily_medication.id}",
            json={"scheduled_time": "21:00", "days_of_week": ["MONDAY", "THURSDAY"]}
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["time"] == "21:00"
        assert data["is_custom"] is True
        assert data["day_offset"] == 0

    @pytest.mark.api
    def test_invalid_time(self, client: TestClient, daily_medication):
        response = client.post(
            f"/api/v1/schedules/medications/{daily_medication.id}",
            json={"scheduled_time": "24:00", "days_of_week": ["MONDAY"]}
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.api
    def test_unknown_medication(self, client: TestClient):
        response = client.post(
            "/api/v1/schedules/medications/999",
            json={"scheduled_time": "21:00", "days_of_week": ["MONDAY"]}
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.api
    def test_list_slots(self, client: TestClient, daily_medication):
        response = client.get(f"/api/v1/schedules/medications/{daily_medication.id}")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert len(data) == 1
        assert data[0]["time"] == "08:00"
        assert len(data[0]["days_of_week"]) == 7

    @pytest.mark.api
    def test_deactivate_slot(self, client: TestClient, db_session, daily_medication):
        slot_id = _slot_id(db_session, daily_medication)

        response = client.post(f"/api/v1/schedules/{slot_id}/deactivate")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["schedule_id"] == slot_id
        listed = client.get(f"/api/v1/schedules/medications/{daily_medication.id}")
        assert listed.json() == []

    @pytest.mark.api
    def test_delete_slot(self, client: TestClient, db_session, daily_medication):
        slot_id = _slot_id(db_session, daily_medication)

        response = client.delete(f"/api/v1/schedules/{slot_id}")
        assert response.status_code == status.HTTP_200_OK

        missing = client.delete(f"/api/v1/schedules/{slot_id}")
        assert missing.status_code == status.HTTP_404_NOT_FOUND


class TestDoseStatus:
    """Tests for dose status views"""

    @pytest.mark.api
    def test_status_defaults_to_today(self, client: TestClient, db_session, daily_medication):
        slot_id = _slot_id(db_session, daily_medication)

        response = client.get(f"/api/v1/schedules/{slot_id}/status")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"schedule_id": slot_id, "day": "2025-01-15", "status": "pending"}

    @pytest.mark.api
    def test_status_for_past_day_is_missed(self, client: TestClient, db_session, daily_medication):
        slot_id = _slot_id(db_session, daily_medication)

        response = client.get(f"/api/v1/schedules/{slot_id}/status", params={"day": "2025-01-14"})

        assert response.json()["status"] == "missed"

    @pytest.mark.api
    def test_todays_doses(self, client: TestClient, daily_medication, test_user):
        response = client.get(f"/api/v1/schedules/users/{test_user.id}/today")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert len(data) == 1
        assert data[0]["medication_name"] == "Metformin"
        assert data[0]["status"] == "pending"

    @pytest.mark.api
    def test_todays_doses_unknown_user(self, client: TestClient):
        response = client.get("/api/v1/schedules/users/999/today")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestAdherence:
    """Tests for adherence statistics"""

    @pytest.mark.api
    def test_adherence_rate(self, client: TestClient, db_session, daily_medication):
        slot_id = _slot_id(db_session, daily_medication)
        for action in (HistoryAction.TAKEN, HistoryAction.TAKEN, HistoryAction.TAKEN, HistoryAction.SKIPPED):
            db_session.add(MedicationHistory(
                medication_id=daily_medication.id, schedule_id=slot_id,
                scheduled_for=datetime(2025, 1, 14, 8, 0), action=action
            ))
        db_session.commit()

        response = client.get(f"/api/v1/schedules/medications/{daily_medication.id}/adherence")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 4
        assert data["taken"] == 3
        assert data["adherence_rate"] == 75.0
