"""
Shared route dependencies: the calling actor and the audit recorder.
"""

import uuid
from typing import Any, Optional

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tour_booking.core.permissions import Actor
from tour_booking.core.security import get_current_user
from tour_booking.db.session import get_session_factory
from tour_booking.models.user import User
from tour_booking.services.audit_service import log_action


async def get_actor(user: User = Depends(get_current_user)) -> Actor:
    return Actor.from_user(user)


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class AuditRecorder:
    """Schedules audit rows as background tasks tagged with the caller's IP and user agent."""

    def __init__(
        self,
        request: Request,
        background_tasks: BackgroundTasks,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self.background_tasks = background_tasks
        self.session_factory = session_factory
        self.ip_address = client_ip(request)
        self.user_agent = request.headers.get("user-agent")

    def record(
        self,
        actor_id: Optional[uuid.UUID],
        action: str,
        target_type: str,
        target_id: Any = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        self.background_tasks.add_task(
            log_action,
            self.session_factory,
            actor_id,
            action,
            target_type,
            target_id,
            metadata,
            self.ip_address,
            self.user_agent,
        )


async def get_audit_recorder(
    request: Request,
    background_tasks: BackgroundTasks,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AuditRecorder:
    return AuditRecorder(request, background_tasks, session_factory)
