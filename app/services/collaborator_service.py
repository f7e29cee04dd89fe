"""
Collaborator management: owner-side allocation of quota slices
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import PackageTierUnsupported, QuotaExceeded, ValidationError
from app.models import AddedByRole, Collaborator, Event, PackageType
from app.services.access_control import ensure_event_editable, require_owner, resolve_role
from app.services.event_lock import event_transaction
from app.services.quota_ledger import QuotaLedger
from app.services.repositories import CollaboratorRepo, EventRepo

logger = logging.getLogger(__name__)

PERMISSION_FIELDS = ("can_add_guests", "can_edit_guests", "can_delete_guests")


def max_collaborators(package_type: PackageType) -> int:
    if package_type == PackageType.vip:
        return settings.MAX_COLLABORATORS_VIP
    if package_type == PackageType.premium:
        return settings.MAX_COLLABORATORS_PREMIUM
    return 0


def _validate_allocation(allocated_quota: Any) -> int:
    if isinstance(allocated_quota, bool) or not isinstance(allocated_quota, int) or allocated_quota < 0:
        raise ValidationError("Allocated quota must be a whole number of zero or more")
    return allocated_quota


def _apply_permissions(collaborator: Collaborator, permissions: Optional[Dict[str, bool]]) -> None:
    for key, value in (permissions or {}).items():
        if key not in PERMISSION_FIELDS:
            raise ValidationError(f"Unknown permission '{key}'")
        if value is not None:
            setattr(collaborator, key, bool(value))


class CollaboratorService:

    @staticmethod
    def add_collaborator(
        db: Session,
        actor_id: str,
        event_id: int,
        user_id: str,
        allocated_quota: int,
        permissions: Optional[Dict[str, bool]] = None,
        contact_name: Optional[str] = None,
        contact_email: Optional[str] = None,
    ) -> Collaborator:
        with event_transaction(db, event_id) as event:
            # Tier gate comes first: classic events have no collaborator concept at all
            if not event.allows_collaboration:
                raise PackageTierUnsupported(
                    "The classic package does not support collaborators; upgrade to premium or VIP"
                )
            role = resolve_role(actor_id, event)
            require_owner(role, "manage collaborators")
            ensure_event_editable(event)

            user_id = (user_id or "").strip()
            if not user_id:
                raise ValidationError("Collaborator user id is required")
            if user_id == event.owner_id:
                raise ValidationError("The event owner cannot be added as a collaborator")
            if CollaboratorRepo.find_by_user(event, user_id) is not None:
                raise ValidationError("This user is already a collaborator on this event")

            limit = max_collaborators(event.package_type)
            if len(event.collaborators) >= limit:
                raise PackageTierUnsupported(
                    f"The {event.package_type.value} package allows at most {limit} collaborators"
                )

            quota = _validate_allocation(allocated_quota)
            QuotaLedger.try_reserve(role, event, quota)

            collaborator = Collaborator(
                user_id=user_id,
                allocated_quota=quota,
                can_add_guests=True,
                can_edit_guests=True,
                can_delete_guests=True,
                contact_name=contact_name,
                contact_email=contact_email,
                added_by=actor_id,
            )
            _apply_permissions(collaborator, permissions)
            event.collaborators.append(collaborator)
            db.add(collaborator)

        logger.info(f"Collaborator {user_id} added to event {event_id} with {quota} invitations")
        return collaborator

    @staticmethod
    def update_collaborator(
        db: Session,
        actor_id: str,
        event_id: int,
        collaborator_id: int,
        allocated_quota: Optional[int] = None,
        permissions: Optional[Dict[str, bool]] = None,
    ) -> Collaborator:
        with event_transaction(db, event_id) as event:
            role = resolve_role(actor_id, event)
            require_owner(role, "manage collaborators")
            ensure_event_editable(event)
            collaborator = CollaboratorRepo.find_in_event(event, collaborator_id)

            if allocated_quota is not None:
                new_quota = _validate_allocation(allocated_quota)
                used = QuotaLedger.used_by_collaborator(event, collaborator)
                if new_quota < used:
                    # Never truncate guests to fit a smaller slice
                    raise QuotaExceeded(
                        remaining=collaborator.allocated_quota - used,
                        requested=collaborator.allocated_quota - new_quota,
                        message=f"The collaborator has already used {used} invitations; "
                                f"the allocation cannot be lowered to {new_quota}",
                    )
                QuotaLedger.try_reserve(role, event, new_quota - collaborator.allocated_quota)
                collaborator.allocated_quota = new_quota

            _apply_permissions(collaborator, permissions)

        logger.info(f"Collaborator {collaborator_id} on event {event_id} updated by {actor_id}")
        return collaborator

    @staticmethod
    def remove_collaborator(db: Session, actor_id: str, event_id: int, collaborator_id: int) -> Dict[str, Any]:
        """Remove a collaborator; their guests move into the owner's pool"""
        with event_transaction(db, event_id) as event:
            role = resolve_role(actor_id, event)
            require_owner(role, "manage collaborators")
            ensure_event_editable(event)
            collaborator = CollaboratorRepo.find_in_event(event, collaborator_id)

            reassigned = 0
            for guest in event.guests:
                if guest.collaborator is collaborator:
                    guest.collaborator = None
                    guest.added_by_role = AddedByRole.owner
                    reassigned += 1
            released = collaborator.allocated_quota
            user_id = collaborator.user_id
            event.collaborators.remove(collaborator)
            db.delete(collaborator)
            owner_remaining = QuotaLedger.owner_remaining(event)

        logger.info(
            f"Collaborator {user_id} removed from event {event_id}; "
            f"{reassigned} guests reassigned to the owner"
        )
        return {
            "collaborator_id": collaborator_id,
            "reassigned_guests": reassigned,
            "released_quota": released,
            "owner_remaining": owner_remaining,
        }

    @staticmethod
    def list_collaborators(db: Session, actor_id: str, event_id: int) -> List[Dict[str, Any]]:
        event = EventRepo.get_by_id(db, event_id)
        require_owner(resolve_role(actor_id, event), "view collaborators")
        return [CollaboratorService.describe(event, c) for c in event.collaborators]

    @staticmethod
    def describe(event: Event, collaborator: Collaborator) -> Dict[str, Any]:
        used = QuotaLedger.used_by_collaborator(event, collaborator)
        return {
            "id": collaborator.id,
            "user_id": collaborator.user_id,
            "contact_name": collaborator.contact_name,
            "contact_email": collaborator.contact_email,
            "allocated_quota": collaborator.allocated_quota,
            "used_quota": used,
            "remaining": collaborator.allocated_quota - used,
            "permissions": {field: getattr(collaborator, field) for field in PERMISSION_FIELDS},
            "added_at": collaborator.added_at.isoformat() if collaborator.added_at else None,
        }
