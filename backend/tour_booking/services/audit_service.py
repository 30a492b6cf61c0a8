"""
Append-only audit trail.

`log_action` is scheduled by routes as a FastAPI background task, after the
response has been sent. It opens its own session (the request session is
closed by then) and never raises: a failed audit write is logged, counted
and dropped.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from tour_booking.core.logging import get_logger
from tour_booking.core.metrics import audit_failures
from tour_booking.models.audit_log import AuditLog

logger = get_logger(__name__)


class AuditActions:
    USER_REGISTERED = "USER_REGISTERED"
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
    PASSWORD_RESET = "PASSWORD_RESET"
    USER_CREATED_BY_ADMIN = "USER_CREATED_BY_ADMIN"

    TRIP_CREATED = "TRIP_CREATED"
    TRIP_UPDATED = "TRIP_UPDATED"
    TRIP_DELETED = "TRIP_DELETED"
    TRIP_PUBLISHED = "TRIP_PUBLISHED"
    TRIP_UNPUBLISHED = "TRIP_UNPUBLISHED"
    TRIP_AVAILABILITY_OVERRIDDEN = "TRIP_AVAILABILITY_OVERRIDDEN"

    BOOKING_CREATED = "BOOKING_CREATED"
    BOOKING_CONFIRMED = "BOOKING_CONFIRMED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    BOOKING_DELETED = "BOOKING_DELETED"


async def log_action(
    session_factory: async_sessionmaker[AsyncSession],
    actor_id: Optional[uuid.UUID],
    action: str,
    target_type: str,
    target_id: Optional[Any] = None,
    metadata: Optional[dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> None:
    try:
        async with session_factory() as session:
            session.add(
                AuditLog(
                    actor_id=actor_id,
                    action=action,
                    target_type=target_type,
                    target_id=str(target_id) if target_id is not None else None,
                    details=metadata or {},
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
            )
            await session.commit()
        logger.debug("audit_logged", action=action, target_type=target_type, target_id=str(target_id))
    except Exception as e:
        audit_failures.inc()
        logger.error("audit_log_failed", action=action, target_id=str(target_id), error=str(e))


async def get_audit_logs(
    db: AsyncSession,
    page: int = 1,
    limit: int = 50,
    actor_id: Optional[uuid.UUID] = None,
    action: Optional[str] = None,
    target_type: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> tuple[list[AuditLog], int]:
    """Audit entries, newest first, with optional filters."""
    query = select(AuditLog)
    if actor_id:
        query = query.where(AuditLog.actor_id == actor_id)
    if action:
        query = query.where(AuditLog.action == action)
    if target_type:
        query = query.where(AuditLog.target_type == target_type)
    if start_date:
        query = query.where(AuditLog.timestamp >= start_date)
    if end_date:
        query = query.where(AuditLog.timestamp <= end_date)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()

    result = await db.execute(
        query.options(selectinload(AuditLog.actor))
        .order_by(AuditLog.timestamp.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total
