"""
Event model
"""

import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.core.db import Base


class PackageType(str, enum.Enum):
    classic = "classic"
    premium = "premium"
    vip = "vip"


class ApprovalStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class EventStatus(str, enum.Enum):
    upcoming = "upcoming"
    done = "done"
    cancelled = "cancelled"


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    package_type = Column(SQLEnum(PackageType), nullable=False)
    total_invite_quota = Column(Integer, nullable=False)

    approval_status = Column(SQLEnum(ApprovalStatus), nullable=False, default=ApprovalStatus.pending, index=True)
    status = Column(SQLEnum(EventStatus), nullable=False, default=EventStatus.upcoming, index=True)

    invitation_card_asset_ref = Column(String(512), nullable=True)
    staged_card_asset_ref = Column(String(512), nullable=True)  # uploaded ahead of bulk approval
    admin_notes = Column(Text, nullable=True)
    reviewed_by = Column(String(64), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejected_at = Column(DateTime, nullable=True)

    host_name = Column(String(100), nullable=True)
    event_date = Column(DateTime, nullable=True, index=True)

    guest_list_confirmed_at = Column(DateTime, nullable=True)
    guest_list_reopen_count = Column(Integer, nullable=False, default=0)

    payment_completed_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    version = Column(Integer, nullable=False)

    # Relationships
    collaborators = relationship(
        "Collaborator", back_populates="event", cascade="all, delete-orphan", order_by="Collaborator.id"
    )
    guests = relationship("Guest", back_populates="event", cascade="all, delete-orphan", order_by="Guest.id")

    __mapper_args__ = {"version_id_col": version}

    @property
    def allows_collaboration(self) -> bool:
        return self.package_type in (PackageType.premium, PackageType.vip)
