"""
Event lifecycle: creation on payment, cancellation, completion and listings
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.errors import InviteEngineError, ValidationError, WorkflowStateError
from app.models import ApprovalStatus, Event, EventStatus, PackageType
from app.services.access_control import require_owner, resolve_role
from app.services.collaborator_service import CollaboratorService
from app.services.event_lock import event_transaction
from app.services.quota_ledger import QuotaLedger
from app.services.repositories import EventRepo

logger = logging.getLogger(__name__)


def _parse_package_type(value: Any) -> PackageType:
    try:
        return PackageType(value)
    except ValueError:
        raise ValidationError(
            f"Unknown package type '{value}'",
            details={"allowed": [p.value for p in PackageType]},
        )


def serialize_event(event: Event) -> Dict[str, Any]:
    return {
        "id": event.id,
        "owner_id": event.owner_id,
        "package_type": event.package_type.value,
        "total_invite_quota": event.total_invite_quota,
        "approval_status": event.approval_status.value,
        "status": event.status.value,
        "host_name": event.host_name,
        "event_date": event.event_date.isoformat() if event.event_date else None,
        "invitation_card_asset_ref": event.invitation_card_asset_ref,
        "admin_notes": event.admin_notes,
        "guest_list_confirmed": event.guest_list_confirmed_at is not None,
        "payment_completed_at": event.payment_completed_at.isoformat() if event.payment_completed_at else None,
        "created_at": event.created_at.isoformat() if event.created_at else None,
    }


class EventService:

    @staticmethod
    def create_event(
        db: Session,
        owner_id: str,
        package_type: Any,
        total_invite_quota: int,
        host_name: Optional[str] = None,
        event_date: Optional[datetime] = None,
    ) -> Event:
        """Called once the payment provider confirms the purchase"""
        owner_id = (owner_id or "").strip()
        if not owner_id:
            raise ValidationError("Owner id is required")
        if isinstance(total_invite_quota, bool) or not isinstance(total_invite_quota, int) or total_invite_quota < 0:
            raise ValidationError("Total invite quota must be a whole number of zero or more")

        now = datetime.utcnow()
        event = Event(
            owner_id=owner_id,
            package_type=_parse_package_type(package_type),
            total_invite_quota=total_invite_quota,
            approval_status=ApprovalStatus.pending,
            status=EventStatus.upcoming,
            host_name=host_name,
            event_date=event_date,
            guest_list_reopen_count=0,
            payment_completed_at=now,
        )
        db.add(event)
        db.commit()
        db.refresh(event)

        logger.info(
            f"Event {event.id} created for owner {owner_id} "
            f"({event.package_type.value}, {total_invite_quota} invitations)"
        )
        return event

    @staticmethod
    def cancel_event(db: Session, actor_id: str, event_id: int) -> Event:
        with event_transaction(db, event_id) as event:
            require_owner(resolve_role(actor_id, event), "cancel the event")
            if event.status != EventStatus.upcoming:
                raise WorkflowStateError(f"Only upcoming events can be cancelled (current: {event.status.value})")
            event.status = EventStatus.cancelled

        logger.info(f"Event {event_id} cancelled by owner {actor_id}")
        return event

    @staticmethod
    def complete_past_events(db: Session, now: Optional[datetime] = None) -> int:
        """Move upcoming events whose date has passed to done"""
        now = now or datetime.utcnow()
        due_ids = [
            row.id
            for row in db.query(Event.id).filter(
                Event.status == EventStatus.upcoming,
                Event.event_date.isnot(None),
                Event.event_date <= now,
            )
        ]

        completed = 0
        for event_id in due_ids:
            try:
                with event_transaction(db, event_id) as event:
                    if event.status != EventStatus.upcoming:
                        continue
                    event.status = EventStatus.done
                completed += 1
            except InviteEngineError as exc:
                logger.warning(f"Could not complete event {event_id}: {exc.message}")

        if completed:
            logger.info(f"Automatically marked {completed} events as done")
        return completed

    @staticmethod
    def event_overview(db: Session, actor_id: str, event_id: int) -> Dict[str, Any]:
        """Event details plus the ledger as the caller is allowed to see it"""
        event = EventRepo.get_by_id(db, event_id)
        role = resolve_role(actor_id, event)
        data = serialize_event(event)
        data["role"] = role.to_dict()
        if role.is_owner:
            data["ledger"] = QuotaLedger.snapshot(event).to_dict()
        else:
            data["ledger"] = {
                "allocated_quota": role.allocated_quota,
                "used_quota": role.used_quota,
                "remaining": QuotaLedger.remaining_for(role, event),
            }
        return data

    @staticmethod
    def list_events_for_user(db: Session, user_id: str) -> Dict[str, List[Dict[str, Any]]]:
        owned = EventRepo.list_owned(db, user_id)
        collaborated = EventRepo.list_collaborated(db, user_id)
        return {
            "owned_events": [serialize_event(e) for e in owned],
            "collaborated_events": [serialize_event(e) for e in collaborated],
        }

    @staticmethod
    def list_events(
        db: Session,
        approval_status: Optional[str] = None,
        page: int = 1,
        per_page: int = 50,
    ) -> Tuple[List[Event], int]:
        status = None
        if approval_status:
            try:
                status = ApprovalStatus(approval_status)
            except ValueError:
                raise ValidationError(f"Unknown approval status '{approval_status}'")
        return EventRepo.list_paginated(db, status, page, per_page)

    @staticmethod
    def approval_stats(db: Session) -> Dict[str, int]:
        counts = EventRepo.count_by_approval_status(db)
        counts["total"] = sum(counts.values())
        return counts

    @staticmethod
    def admin_guest_roster(db: Session, event_id: int) -> Dict[str, Any]:
        """Guest list of an event as an admin reviews it.

        A VIP list stays hidden until the owner confirms it; ``actual_guest_count``
        and the ledger still cover every guest.
        """
        event = EventRepo.get_by_id(db, event_id)
        hidden = event.package_type == PackageType.vip and event.guest_list_confirmed_at is None
        guests = [] if hidden else list(event.guests)
        snapshot = QuotaLedger.snapshot(event)

        by_collaborator = [
            {
                "collaborator_id": c.id,
                "user_id": c.user_id,
                "contact_email": c.contact_email,
                "guests_added": sum(1 for g in guests if g.collaborator is c),
            }
            for c in event.collaborators
        ]

        return {
            "event": serialize_event(event),
            "guests_hidden": hidden,
            "guests": guests,
            "collaborators": [CollaboratorService.describe(event, c) for c in event.collaborators],
            "ledger": snapshot.to_dict(),
            "guest_stats": {
                "total_guests": len(guests),
                "total_invited": sum(g.accompanying_count for g in guests),
                "whatsapp_messages_sent": sum(1 for g in guests if g.whatsapp_message_sent),
                "remaining_invites": snapshot.total - snapshot.used_total,
                "actual_guest_count": len(event.guests),
                "guests_added_by_owner": sum(1 for g in guests if g.collaborator is None),
                "guests_added_by_collaborators": sum(1 for g in guests if g.collaborator is not None),
                "guests_by_collaborator": by_collaborator,
            },
        }
