"""
Guest roster: the guest list of an event, checked against the quota ledger
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import Unauthorized, ValidationError, WorkflowStateError
from app.models import AddedByRole, Event, Guest
from app.services.access_control import ResolvedRole, ensure_event_editable, require_owner, resolve_role
from app.services.event_lock import event_transaction
from app.services.quota_ledger import QuotaLedger
from app.services.repositories import CollaboratorRepo, EventRepo, GuestRepo
from app.utils.phone import allowed_examples, validate_phone


logger = logging.getLogger(__name__)


@dataclass
class GuestPatch:
    """Fields a guest update may change; ``None`` means unchanged"""
    name: Optional[str] = None
    phone: Optional[str] = None
    accompanying_count: Optional[int] = None


class GuestRoster:
    """Service for guest list mutations"""

    # -------- validation --------

    @staticmethod
    def validate_name(name: Optional[str]) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("Guest name is required")
        if len(cleaned) > settings.MAX_GUEST_NAME_LENGTH:
            raise ValidationError(f"Guest name must be at most {settings.MAX_GUEST_NAME_LENGTH} characters")
        return cleaned

    @staticmethod
    def validate_phone(phone: Optional[str]) -> str:
        is_valid, normalized, _ = validate_phone(phone or "")
        if not is_valid:
            raise ValidationError(
                "Phone number is not valid or its country is not supported",
                details={"phone": phone, "examples": allowed_examples()},
            )
        return normalized

    @staticmethod
    def validate_accompanying_count(count: Any) -> int:
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValidationError("Accompanying count must be a whole number")
        if count < 1 or count > settings.MAX_ACCOMPANYING_GUESTS:
            raise ValidationError(
                f"Accompanying count must be between 1 and {settings.MAX_ACCOMPANYING_GUESTS}",
                details={"accompanying_count": count},
            )
        return count

    @staticmethod
    def _ensure_unique_phone(event: Event, phone: str, exclude: Optional[Guest] = None) -> None:
        if GuestRepo.find_by_phone(event, phone, exclude=exclude) is not None:
            raise ValidationError("This guest is already on the list", details={"phone": phone})

    # -------- mutations --------

    @staticmethod
    def add_guest_to_event(
        db: Session,
        role: ResolvedRole,
        event: Event,
        name: str,
        phone: str,
        accompanying_count: int,
    ) -> Guest:
        """Add a guest inside an already-open event transaction"""
        ensure_event_editable(event)
        if event.guest_list_confirmed_at is not None:
            raise WorkflowStateError("The guest list has been confirmed; no new guests can be added")
        if not role.can_add_guests:
            raise Unauthorized("You are not allowed to add guests to this event")

        clean_name = GuestRoster.validate_name(name)
        normalized_phone = GuestRoster.validate_phone(phone)
        count = GuestRoster.validate_accompanying_count(accompanying_count)
        GuestRoster._ensure_unique_phone(event, normalized_phone)

        QuotaLedger.try_reserve(role, event, count)

        guest = Guest(
            added_by_role=AddedByRole.owner if role.is_owner else AddedByRole.collaborator,
            added_by_user_id=role.user_id,
            name=clean_name,
            phone=normalized_phone,
            accompanying_count=count,
            whatsapp_message_sent=False,
        )
        if not role.is_owner:
            guest.collaborator = CollaboratorRepo.find_in_event(event, role.collaborator_id)
        event.guests.append(guest)
        db.add(guest)
        return guest

    @staticmethod
    def add_guest(
        db: Session,
        actor_id: str,
        event_id: int,
        name: str,
        phone: str,
        accompanying_count: int,
    ) -> Tuple[Guest, int]:
        """Add a guest; returns the guest and the actor's remaining capacity"""
        with event_transaction(db, event_id) as event:
            role = resolve_role(actor_id, event)
            guest = GuestRoster.add_guest_to_event(db, role, event, name, phone, accompanying_count)
            remaining = QuotaLedger.remaining_for(role, event)

        logger.info(f"Guest {guest.id} added to event {event_id} by {role.kind.value} {actor_id}")
        return guest, remaining

    @staticmethod
    def _editable_guest(role: ResolvedRole, event: Event, guest_id: int, action: str) -> Guest:
        guest = GuestRepo.find_in_event(event, guest_id)
        if not role.owns_guest(guest):
            raise Unauthorized(f"You can only {action} guests you added yourself")
        return guest

    @staticmethod
    def update_guest(
        db: Session,
        actor_id: str,
        event_id: int,
        guest_id: int,
        patch: GuestPatch,
    ) -> Guest:
        with event_transaction(db, event_id) as event:
            role = resolve_role(actor_id, event)
            ensure_event_editable(event)
            if not role.can_edit_guests:
                raise Unauthorized("You are not allowed to edit guests of this event")
            guest = GuestRoster._editable_guest(role, event, guest_id, "edit")

            if patch.name is not None:
                guest.name = GuestRoster.validate_name(patch.name)

            if patch.phone is not None:
                normalized_phone = GuestRoster.validate_phone(patch.phone)
                GuestRoster._ensure_unique_phone(event, normalized_phone, exclude=guest)
                guest.phone = normalized_phone

            if patch.accompanying_count is not None:
                new_count = GuestRoster.validate_accompanying_count(patch.accompanying_count)
                # The old count already occupies the ledger; only the difference is reserved
                QuotaLedger.try_reserve(role, event, new_count - guest.accompanying_count)
                guest.accompanying_count = new_count

            guest.updated_at = datetime.utcnow()

        logger.info(f"Guest {guest_id} updated on event {event_id} by {actor_id}")
        return guest

    @staticmethod
    def remove_guest(db: Session, actor_id: str, event_id: int, guest_id: int) -> Dict[str, Any]:
        """Remove a guest and free their slots at the actor's scope.

        A guest whose invitation was already dispatched counts as withdrawn; the
        slot is reusable for a replacement guest right away.
        """
        with event_transaction(db, event_id) as event:
            role = resolve_role(actor_id, event)
            ensure_event_editable(event)
            if not role.can_delete_guests:
                raise Unauthorized("You are not allowed to remove guests from this event")
            guest = GuestRoster._editable_guest(role, event, guest_id, "remove")

            was_dispatched = bool(guest.whatsapp_message_sent)
            freed = guest.accompanying_count
            if guest.collaborator is not None:
                guest.collaborator.guests.remove(guest)
            event.guests.remove(guest)
            db.delete(guest)
            remaining = QuotaLedger.remaining_for(role, event)

        if was_dispatched:
            logger.warning(f"Dispatched guest {guest_id} withdrew from event {event_id}; {freed} slots reopened")
        else:
            logger.info(f"Guest {guest_id} removed from event {event_id} by {actor_id}")

        return {
            "guest_id": guest_id,
            "was_dispatched": was_dispatched,
            "freed": freed,
            "remaining": remaining,
        }

    @staticmethod
    def list_guests(db: Session, actor_id: str, event_id: int) -> Tuple[ResolvedRole, List[Guest]]:
        event = EventRepo.get_by_id(db, event_id)
        role = resolve_role(actor_id, event)
        return role, [g for g in event.guests if role.can_view_guest(g)]

    @staticmethod
    def confirm_guest_list(db: Session, actor_id: str, event_id: int) -> Event:
        """Owner freezes the list: no further additions until an admin reopens it"""
        with event_transaction(db, event_id) as event:
            require_owner(resolve_role(actor_id, event), "confirm the guest list")
            ensure_event_editable(event)
            if event.guest_list_confirmed_at is not None:
                raise WorkflowStateError("The guest list is already confirmed")
            if not event.guests:
                raise ValidationError("An empty guest list cannot be confirmed")
            event.guest_list_confirmed_at = datetime.utcnow()

        logger.info(f"Guest list confirmed for event {event_id} ({len(event.guests)} guests)")
        return event
