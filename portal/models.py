import uuid
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .clock import utcnow
from .database import Base


def generate_id():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


class UserRole(str, Enum):
    USER = "user"
    JUNIOR_ADVISOR = "junior_advisor"
    ADVISOR = "advisor"
    ADMIN = "admin"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Bookings in these states no longer occupy slot capacity
TERMINAL_BOOKING_STATUSES = (BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value)


role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "permission_id",
        String(36),
        ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("granted_at", DateTime, default=utcnow, nullable=False),
)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    role = Column(String(50), nullable=False, default=UserRole.USER.value)
    is_active = Column(Boolean, default=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    refresh_tokens = relationship(
        "RefreshToken", back_populates="user", cascade="all, delete-orphan"
    )
    permission_overrides = relationship(
        "UserPermission",
        back_populates="user",
        foreign_keys="UserPermission.user_id",
        cascade="all, delete-orphan",
    )
    bookings = relationship("Booking", back_populates="user")

    @property
    def status(self) -> str:
        return "active" if self.is_active else "inactive"


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    # SHA-256 of the opaque token, the token itself is never stored
    token_hash = Column(String(64), unique=True, index=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    is_revoked = Column(Boolean, default=False, nullable=False)
    revoked_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="refresh_tokens")


class Permission(Base):
    __tablename__ = "permissions"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), unique=True, index=True, nullable=False)  # e.g. "leads.own.read"
    resource = Column(String(255), nullable=False)
    action = Column(String(20), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    roles = relationship("Role", secondary=role_permissions, back_populates="permissions")


class Role(Base):
    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(50), unique=True, index=True, nullable=False)
    display_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    permissions = relationship("Permission", secondary=role_permissions, back_populates="roles")


class UserPermission(Base):
    """Direct per-user grant (is_granted=True) or denial (is_granted=False)"""

    __tablename__ = "user_permissions"
    __table_args__ = (UniqueConstraint("user_id", "permission_id", name="uq_user_permission"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    permission_id = Column(
        String(36), ForeignKey("permissions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    is_granted = Column(Boolean, default=True, nullable=False)
    granted_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    granted_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    reason = Column(Text, nullable=True)

    user = relationship("User", back_populates="permission_overrides", foreign_keys=[user_id])
    granter = relationship("User", foreign_keys=[granted_by])
    permission = relationship("Permission")

    def is_expired(self, now=None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utcnow()) >= self.expires_at


class Timeslot(Base):
    __tablename__ = "timeslots"
    __table_args__ = (
        CheckConstraint("max_bookings >= 1", name="ck_timeslot_max_bookings"),
        CheckConstraint(
            "current_bookings >= 0 AND current_bookings <= max_bookings",
            name="ck_timeslot_capacity",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    advisor_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=True)
    starts_at = Column(DateTime, index=True, nullable=False)
    duration_minutes = Column(Integer, default=60, nullable=False)
    max_bookings = Column(Integer, default=1, nullable=False)
    # Denormalized count of bookings not in a terminal state
    current_bookings = Column(Integer, default=0, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    bookings = relationship("Booking", back_populates="timeslot")

    @property
    def remaining_capacity(self) -> int:
        return max(0, self.max_bookings - self.current_bookings)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    timeslot_id = Column(String(36), ForeignKey("timeslots.id"), index=True, nullable=False)
    booking_reference = Column(String(32), unique=True, nullable=False)
    status = Column(String(20), default=BookingStatus.PENDING.value, index=True, nullable=False)
    notes = Column(Text, nullable=True)
    booked_at = Column(DateTime, default=utcnow, nullable=False)
    cancelled_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="bookings")
    timeslot = relationship("Timeslot", back_populates="bookings")

    @property
    def is_active(self) -> bool:
        return self.status not in TERMINAL_BOOKING_STATUSES
