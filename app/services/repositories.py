"""
Repository layer: lookups shared by the engine services.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import NotFound
from app.models import ApprovalStatus, Collaborator, Event, Guest


# -------- Event repository --------

class EventRepo:
    @staticmethod
    def get_by_id(db: Session, event_id: int) -> Event:
        event = db.query(Event).filter(Event.id == event_id).first()
        if not event:
            raise NotFound("Event")
        return event

    @staticmethod
    def get_for_update(db: Session, event_id: int) -> Event:
        event = (
            db.query(Event)
            .filter(Event.id == event_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not event:
            raise NotFound("Event")
        return event

    @staticmethod
    def list_owned(db: Session, user_id: str) -> List[Event]:
        return db.query(Event).filter(Event.owner_id == user_id).order_by(Event.created_at.desc()).all()

    @staticmethod
    def list_collaborated(db: Session, user_id: str) -> List[Event]:
        return (
            db.query(Event)
            .join(Collaborator, Collaborator.event_id == Event.id)
            .filter(Collaborator.user_id == user_id)
            .order_by(Event.created_at.desc())
            .all()
        )

    @staticmethod
    def list_paginated(
        db: Session,
        approval_status: Optional[ApprovalStatus] = None,
        page: int = 1,
        per_page: int = 50,
    ) -> Tuple[List[Event], int]:
        query = db.query(Event)
        if approval_status is not None:
            query = query.filter(Event.approval_status == approval_status)
        total = query.count()
        events = query.order_by(Event.created_at.desc()).offset((page - 1) * per_page).limit(per_page).all()
        return events, total

    @staticmethod
    def count_by_approval_status(db: Session) -> Dict[str, int]:
        rows = db.query(Event.approval_status, func.count(Event.id)).group_by(Event.approval_status).all()
        counts = {status.value: 0 for status in ApprovalStatus}
        for status, count in rows:
            counts[status.value] = count
        return counts


# -------- Guest repository --------

class GuestRepo:
    @staticmethod
    def find_in_event(event: Event, guest_id: int) -> Guest:
        for guest in event.guests:
            if guest.id == guest_id:
                return guest
        raise NotFound("Guest")

    @staticmethod
    def find_by_phone(event: Event, phone: str, exclude: Optional[Guest] = None) -> Optional[Guest]:
        for guest in event.guests:
            if guest is not exclude and guest.phone == phone:
                return guest
        return None


# -------- Collaborator repository --------

class CollaboratorRepo:
    @staticmethod
    def find_in_event(event: Event, collaborator_id: int) -> Collaborator:
        for collaborator in event.collaborators:
            if collaborator.id == collaborator_id:
                return collaborator
        raise NotFound("Collaborator")

    @staticmethod
    def find_by_user(event: Event, user_id: str) -> Optional[Collaborator]:
        for collaborator in event.collaborators:
            if collaborator.user_id == user_id:
                return collaborator
        return None
