"""
Unit tests for the resource ownership check.
"""

import uuid

import pytest

from tour_booking.core.exceptions import ForbiddenError
from tour_booking.core.permissions import Actor, check_access, ensure_access

OWNER_ID = uuid.uuid4()


def test_owner_is_allowed():
    decision = check_access(Actor(id=OWNER_ID), OWNER_ID)
    assert decision
    assert decision.reason == "owner"


def test_admin_is_allowed_on_anything():
    decision = check_access(Actor(id=uuid.uuid4(), role="ADMIN"), OWNER_ID, "cancel")
    assert decision.allowed
    assert decision.reason == "admin"


@pytest.mark.parametrize("role", ["USER", "SUPPORT"])
def test_non_owner_is_denied(role):
    decision = check_access(Actor(id=uuid.uuid4(), role=role), OWNER_ID, "cancel")
    assert not decision
    assert decision.reason == "You can only cancel your own bookings"


def test_ensure_access_raises_forbidden():
    with pytest.raises(ForbiddenError) as exc_info:
        ensure_access(Actor(id=uuid.uuid4()), OWNER_ID, "update")
    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "You can only update your own bookings"
