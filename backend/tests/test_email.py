"""
Tests for the transactional email templates.
"""

from types import SimpleNamespace

import pytest

from tour_booking.services import email_service


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    async def send_email(to, subject, html):
        sent.append({"to": to, "subject": subject, "html": html})
        return {"success": True, "message_id": "dev-1"}

    monkeypatch.setattr(email_service, "send_email", send_email)
    return sent


def make_booking(**overrides):
    values = {
        "booking_reference": "ST-ABC123-0F0F0F",
        "booking_date": None,
        "total_price": 300,
        "passenger_count": 2,
        "cancellation_reason": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


USER = SimpleNamespace(name="<script>alert(1)</script>", email="test@example.com")
TRIP = SimpleNamespace(title="Sun & <b>Sand</b>", duration_days=3, currency="USD")


@pytest.mark.asyncio
async def test_confirmation_escapes_user_values(outbox):
    await email_service.send_booking_confirmation(make_booking(), USER, TRIP)

    html = outbox[0]["html"]
    assert "<script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    assert "Sun &amp; &lt;b&gt;Sand&lt;/b&gt;" in html
    assert "ST-ABC123-0F0F0F" in html


@pytest.mark.asyncio
async def test_cancellation_escapes_reason(outbox):
    booking = make_booking(cancellation_reason='<img src=x onerror="steal()">')
    await email_service.send_booking_cancellation(booking, USER, TRIP)

    html = outbox[0]["html"]
    assert "<img" not in html
    assert "&lt;img src=x onerror=&quot;steal()&quot;&gt;" in html


@pytest.mark.asyncio
async def test_reminder_and_welcome_escape_names(outbox):
    await email_service.send_booking_reminder(make_booking(), USER, TRIP, days_until_trip=3)
    await email_service.send_welcome_email(USER)

    assert all("<script>" not in message["html"] for message in outbox)
    assert outbox[0]["subject"] == "Your trip starts in 3 days - Sun & <b>Sand</b>"
