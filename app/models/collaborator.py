"""
Collaborator model: a slice of an event's quota delegated by the owner
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base


class Collaborator(Base):
    __tablename__ = "collaborators"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    allocated_quota = Column(Integer, nullable=False, default=0)

    can_add_guests = Column(Boolean, nullable=False, default=True)
    can_edit_guests = Column(Boolean, nullable=False, default=True)
    can_delete_guests = Column(Boolean, nullable=False, default=True)

    contact_name = Column(String(100), nullable=True)
    contact_email = Column(String(255), nullable=True)
    added_by = Column(String(64), nullable=False)
    added_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    event = relationship("Event", back_populates="collaborators")
    guests = relationship("Guest", back_populates="collaborator")

    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_collaborator_event_user"),)
