"""
Resource-level authorization.

Route dependencies gate on role (`require_roles`); this module answers the
per-resource question "may this actor do X to something owned by Y". All
ownership rules live here so handlers and services do not re-derive them.
"""

import uuid
from dataclasses import dataclass

from tour_booking.core.exceptions import ForbiddenError
from tour_booking.models.user import User


@dataclass(frozen=True)
class Actor:
    id: uuid.UUID
    role: str = "USER"

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=user.role)


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


def check_access(actor: Actor, owner_id: uuid.UUID, action: str = "view") -> AccessDecision:
    """Admins may act on anything; everyone else only on what they own."""
    if actor.is_admin:
        return AccessDecision(True, "admin")
    if actor.id == owner_id:
        return AccessDecision(True, "owner")
    return AccessDecision(False, f"You can only {action} your own bookings")


def ensure_access(actor: Actor, owner_id: uuid.UUID, action: str = "view") -> AccessDecision:
    decision = check_access(actor, owner_id, action)
    if not decision.allowed:
        raise ForbiddenError(decision.reason)
    return decision
