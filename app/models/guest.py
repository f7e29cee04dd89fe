"""
Guest model
"""

import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.core.db import Base


class AddedByRole(str, enum.Enum):
    owner = "owner"
    collaborator = "collaborator"


class Guest(Base):
    __tablename__ = "guests"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    added_by_role = Column(SQLEnum(AddedByRole), nullable=False, default=AddedByRole.owner)
    added_by_user_id = Column(String(64), nullable=False)
    collaborator_id = Column(Integer, ForeignKey("collaborators.id"), nullable=True, index=True)

    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=False)  # normalized +<country code><number>
    accompanying_count = Column(Integer, nullable=False, default=1)

    whatsapp_message_sent = Column(Boolean, nullable=False, default=False)
    whatsapp_message_sent_at = Column(DateTime, nullable=True)

    added_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    event = relationship("Event", back_populates="guests")
    collaborator = relationship("Collaborator", back_populates="guests")

    __table_args__ = (UniqueConstraint("event_id", "phone", name="uq_guest_event_phone"),)
