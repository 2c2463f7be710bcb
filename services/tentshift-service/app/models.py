import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TentType(str, enum.Enum):
    BLACK = "Black"
    BLUE = "Blue"
    WHITE = "White"


class Role(str, enum.Enum):
    CAPTAIN = "Captain"
    MEMBER = "Member"


class AvailabilityStatus(str, enum.Enum):
    AVAILABLE = "available"
    MAYBE = "maybe"
    UNAVAILABLE = "unavailable"


def _values(enum_cls):
    return [m.value for m in enum_cls]


class Tent(Base):
    __tablename__ = "tents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    join_code = Column(String, unique=True, nullable=False, index=True)
    tent_type = Column(
        Enum(TentType, name="tent_type", values_callable=_values),
        nullable=False,
        default=TentType.BLACK,
    )
    image_url = Column(String, nullable=True)
    created_by = Column(Uuid, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    members = relationship("Profile", back_populates="tent", order_by="Profile.full_name")


class Profile(Base):
    __tablename__ = "profiles"

    # same id as the auth provider's user (token "sub")
    id = Column(Uuid, primary_key=True)
    full_name = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    tent_id = Column(Uuid, ForeignKey("tents.id"), nullable=True, index=True)
    role = Column(
        Enum(Role, name="role", values_callable=_values),
        nullable=False,
        default=Role.MEMBER,
    )

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    tent = relationship("Tent", back_populates="members")


class Shift(Base):
    __tablename__ = "shifts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tent_id = Column(Uuid, ForeignKey("tents.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    required_count = Column(Integer, nullable=False, default=2)
    is_grace = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    assignments = relationship(
        "Assignment",
        back_populates="shift",
        cascade="all, delete-orphan",
    )


class Assignment(Base):
    __tablename__ = "assignments"
    __table_args__ = (UniqueConstraint("shift_id", "user_id", name="uq_assignments_shift_user"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    shift_id = Column(Uuid, ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    shift = relationship("Shift", back_populates="assignments")
    user = relationship("Profile")


class Availability(Base):
    __tablename__ = "availabilities"
    __table_args__ = (
        Index("ix_availabilities_user_id_start_time", "user_id", "start_time"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    tent_id = Column(Uuid, ForeignKey("tents.id", ondelete="CASCADE"), nullable=False, index=True)

    # half-open [start_time, end_time), naive UTC
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(
        Enum(AvailabilityStatus, name="availability_status", values_callable=_values),
        nullable=False,
    )

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
