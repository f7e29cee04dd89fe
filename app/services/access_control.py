"""
Collaborator access control.

``resolve_role`` turns (user, event) into a small capability value once per
request; every later check is plain data inspection on that value.
"""

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.core.errors import Unauthorized, WorkflowStateError
from app.models import ApprovalStatus, Event, EventStatus, Guest
from app.services.repositories import CollaboratorRepo, EventRepo


class RoleKind(str, enum.Enum):
    owner = "owner"
    collaborator = "collaborator"


@dataclass(frozen=True)
class ResolvedRole:
    kind: RoleKind
    user_id: str
    collaborator_id: Optional[int] = None
    allocated_quota: Optional[int] = None
    used_quota: Optional[int] = None
    can_add_guests: bool = True
    can_edit_guests: bool = True
    can_delete_guests: bool = True

    @property
    def is_owner(self) -> bool:
        return self.kind == RoleKind.owner

    @property
    def can_manage_collaborators(self) -> bool:
        return self.is_owner

    def owns_guest(self, guest: Guest) -> bool:
        """Owner owns owner-added guests; a collaborator owns only their own"""
        if self.is_owner:
            return guest.collaborator is None
        return guest.collaborator is not None and guest.collaborator.id == self.collaborator_id

    def can_view_guest(self, guest: Guest) -> bool:
        return self.is_owner or self.owns_guest(guest)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "role": self.kind.value,
            "user_id": self.user_id,
            "permissions": {
                "can_add_guests": self.can_add_guests,
                "can_edit_guests": self.can_edit_guests,
                "can_delete_guests": self.can_delete_guests,
                "can_manage_collaborators": self.can_manage_collaborators,
                "can_view_full_event": self.is_owner,
            },
        }
        if not self.is_owner:
            data["collaborator_id"] = self.collaborator_id
            data["allocated_quota"] = self.allocated_quota
            data["used_quota"] = self.used_quota
        return data


def resolve_role(user_id: str, event: Event) -> ResolvedRole:
    """Resolve the caller's role on an event or raise ``Unauthorized``"""
    if user_id and user_id == event.owner_id:
        return ResolvedRole(kind=RoleKind.owner, user_id=user_id)

    collaborator = CollaboratorRepo.find_by_user(event, user_id) if user_id else None
    if collaborator is None:
        raise Unauthorized("You do not have access to this event")

    used = sum(g.accompanying_count for g in event.guests if g.collaborator is collaborator)
    return ResolvedRole(
        kind=RoleKind.collaborator,
        user_id=user_id,
        collaborator_id=collaborator.id,
        allocated_quota=collaborator.allocated_quota,
        used_quota=used,
        can_add_guests=collaborator.can_add_guests,
        can_edit_guests=collaborator.can_edit_guests,
        can_delete_guests=collaborator.can_delete_guests,
    )


def resolve_role_for_event(db: Session, user_id: str, event_id: int) -> ResolvedRole:
    event = EventRepo.get_by_id(db, event_id)
    return resolve_role(user_id, event)


def require_owner(role: ResolvedRole, action: str = "perform this action") -> None:
    if not role.is_owner:
        raise Unauthorized(f"Only the event owner can {action}")


def ensure_event_editable(event: Event) -> None:
    """Guests and collaborators may change only on live, non-rejected events"""
    if event.approval_status == ApprovalStatus.rejected:
        raise WorkflowStateError("The event was rejected and can no longer be changed")
    if event.status != EventStatus.upcoming:
        raise WorkflowStateError(f"The event is {event.status.value} and can no longer be changed")
