"""
Fadetrack Backend: Reminder Tests
=================================

The email API is replaced by an httpx.MockTransport; due-ness is tested by
passing an explicit `now`.
"""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from fadetrack.exceptions import ServiceMisconfiguredError
from fadetrack.schemas.account import ReminderCreate
from fadetrack.services.reminder_service import REMINDER_SUBJECT, ReminderService


def email_transport(fail_for=()):
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert request.headers["Authorization"] == "Bearer re_test"
        assert request.url.path == "/emails"
        if body["to"] in fail_for:
            return httpx.Response(422, json={"message": "invalid recipient"})
        sent.append(body)
        return httpx.Response(200, json={"id": f"email_{len(sent)}"})

    return httpx.MockTransport(handler), sent


class TestReminderService:

    def setup_method(self):
        self.service = ReminderService(
            api_key="re_test", base_url="https://email.test", from_email="reminders@fadetrack.app"
        )

    @pytest.mark.asyncio
    async def test_status_reports_next_due(self, db_session):
        reminder = await self.service.create_reminder(
            db_session, ReminderCreate(user_email="alex@example.com", reminder_days=14)
        )
        now = datetime.now(timezone.utc)

        [status] = await self.service.status(db_session, now)

        assert status.id == reminder.id
        assert status.is_due is False
        assert status.days_until_due == 14

    @pytest.mark.asyncio
    async def test_sends_only_due_reminders(self, db_session):
        await self.service.create_reminder(
            db_session, ReminderCreate(user_email="alex@example.com", reminder_days=7)
        )
        await self.service.create_reminder(
            db_session, ReminderCreate(user_email="sam@example.com", reminder_days=30)
        )
        transport, sent = email_transport()
        later = datetime.now(timezone.utc) + timedelta(days=8)

        result = await self.service.send_due(db_session, now=later, transport=transport)

        assert result.status == "Reminders sent"
        assert result.sent == 1
        assert [m["to"] for m in sent] == ["alex@example.com"]
        assert sent[0]["subject"] == REMINDER_SUBJECT
        assert sent[0]["from"] == "reminders@fadetrack.app"

        # Stamped as sent, so the same run time finds nothing left to send
        again = await self.service.send_due(db_session, now=later, transport=transport)
        assert again.sent == 0

    @pytest.mark.asyncio
    async def test_failed_send_stays_due(self, db_session):
        await self.service.create_reminder(
            db_session, ReminderCreate(user_email="bounce@example.com", reminder_days=1)
        )
        transport, _ = email_transport(fail_for={"bounce@example.com"})
        later = datetime.now(timezone.utc) + timedelta(days=2)

        result = await self.service.send_due(db_session, now=later, transport=transport)

        assert result.status == "Reminders sent with errors"
        assert result.failed == 1
        assert result.errors == ["bounce@example.com: HTTP 422"]
        [status] = await self.service.status(db_session, later)
        assert status.is_due is True
        assert status.last_sent_at is None

    @pytest.mark.asyncio
    async def test_missing_api_key(self, db_session):
        service = ReminderService(api_key="", base_url="https://email.test")
        with pytest.raises(ServiceMisconfiguredError):
            await service.send_due(db_session)


class TestReminderRoutes:

    @pytest.mark.asyncio
    async def test_crud(self, test_client):
        created = await test_client.post(
            "/api/reminders", json={"user_email": "alex@example.com", "reminder_days": 21}
        )
        assert created.status_code == 201
        reminder_id = created.json()["id"]

        listed = await test_client.get("/api/reminders", params={"email": "alex@example.com"})
        assert [r["id"] for r in listed.json()["reminders"]] == [reminder_id]

        check = await test_client.get("/api/checkReminders")
        assert check.json()["reminders"][0]["is_due"] is False

        wrong_owner = await test_client.request(
            "DELETE", "/api/reminders", json={"id": reminder_id, "user_email": "sam@example.com"}
        )
        assert wrong_owner.status_code == 404

        deleted = await test_client.request(
            "DELETE", "/api/reminders", json={"id": reminder_id, "user_email": "alex@example.com"}
        )
        assert deleted.status_code == 200

    @pytest.mark.asyncio
    async def test_invalid_cadence(self, test_client):
        response = await test_client.post(
            "/api/reminders", json={"user_email": "alex@example.com", "reminder_days": 0}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_send_without_credentials(self, test_client):
        response = await test_client.post("/api/sendReminders")
        assert response.status_code == 500
        assert "missing RESEND_API_KEY" in response.json()["message"]
