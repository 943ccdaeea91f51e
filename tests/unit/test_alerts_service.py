"""
Unit tests for alert lifecycle rules.
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from app.services.alerts import (
    MAX_ESCALATION_LEVEL,
    AlertStateError,
    acknowledge_alert,
    escalate_alert,
    next_escalation_level,
    resolve_alert,
    response_minutes,
)

CREATED = datetime(2025, 9, 3, 8, 0, tzinfo=UTC)


def make_alert(**overrides):
    alert = {
        "id": uuid4(),
        "status": "active",
        "escalation_level": 1,
        "created_at": CREATED,
    }
    alert.update(overrides)
    return alert


class TestAlertHelpers:
    def test_response_minutes_rounds_down(self):
        assert response_minutes(CREATED, CREATED + timedelta(minutes=12, seconds=59)) == 12

    def test_response_minutes_never_negative(self):
        assert response_minutes(CREATED, CREATED - timedelta(minutes=5)) == 0

    def test_escalation_increments(self):
        assert next_escalation_level(1) == 2

    def test_escalation_is_capped(self):
        assert next_escalation_level(MAX_ESCALATION_LEVEL) == MAX_ESCALATION_LEVEL


class TestAlertTransitions:
    """Test status transitions against a mocked connection."""

    @pytest.mark.asyncio
    async def test_resolve_stores_response_time(self, mock_conn):
        alert = make_alert()
        resolved_at = CREATED + timedelta(minutes=45)
        mock_conn.fetchrow.return_value = {"id": alert["id"], "status": "resolved"}

        result = await resolve_alert(mock_conn, alert, uuid4(), resolved_at)

        args = mock_conn.fetchrow.call_args[0]
        assert args[2] == resolved_at
        assert args[3] == 45
        assert result["id"] == str(alert["id"])

    @pytest.mark.asyncio
    async def test_resolved_alert_cannot_be_resolved_again(self, mock_conn):
        with pytest.raises(AlertStateError):
            await resolve_alert(mock_conn, make_alert(status="resolved"), uuid4(), CREATED)

        mock_conn.fetchrow.assert_not_called()

    @pytest.mark.asyncio
    async def test_resolved_alert_cannot_be_acknowledged(self, mock_conn):
        with pytest.raises(AlertStateError):
            await acknowledge_alert(mock_conn, make_alert(status="resolved"), uuid4())

    @pytest.mark.asyncio
    async def test_escalate_uses_next_level(self, mock_conn):
        mock_conn.fetchrow.return_value = {"id": uuid4(), "status": "escalated"}

        await escalate_alert(mock_conn, make_alert(escalation_level=MAX_ESCALATION_LEVEL))

        assert mock_conn.fetchrow.call_args[0][1] == MAX_ESCALATION_LEVEL

    @pytest.mark.asyncio
    async def test_resolved_alert_cannot_be_escalated(self, mock_conn):
        with pytest.raises(AlertStateError):
            await escalate_alert(mock_conn, make_alert(status="resolved"))
