"""
User model with secure password storage.
Users are never hard-deleted; deactivation flips `is_active`.
"""

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, String, Uuid
from sqlalchemy.orm import relationship

from tour_booking.db.base import Base, TimestampMixin

ROLES = ("USER", "ADMIN", "SUPPORT")


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(32), nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="USER")
    is_active = Column(Boolean, default=True, nullable=False)
    profile_photo = Column(String(500), nullable=True)

    # Relationships
    bookings = relationship("Booking", back_populates="user", passive_deletes=True)
    refresh_tokens = relationship("RefreshToken", back_populates="user", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("role IN ('USER', 'ADMIN', 'SUPPORT')", name="check_user_role"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
