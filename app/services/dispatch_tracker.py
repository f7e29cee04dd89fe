"""
Dispatch tracking: which guests have been handed their invitation message.

Only bookkeeping lives here. Composing the message and delivering it is the
job of the messaging client that calls ``mark_dispatched`` afterwards.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

from sqlalchemy.orm import Session

from app.core.errors import Unauthorized, WorkflowStateError
from app.models import ApprovalStatus, Event, EventStatus
from app.services.access_control import resolve_role
from app.services.event_lock import event_transaction
from app.services.repositories import EventRepo, GuestRepo

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    guest_id: int
    sent_at: datetime
    already_dispatched: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "guest_id": self.guest_id,
            "whatsapp_message_sent": True,
            "whatsapp_message_sent_at": self.sent_at.isoformat(),
            "already_dispatched": self.already_dispatched,
        }


class DispatchTracker:

    @staticmethod
    def ensure_ready(event: Event) -> None:
        if event.approval_status != ApprovalStatus.approved:
            raise WorkflowStateError(
                "Invitations are not ready: the event has not been approved yet",
                details={"approval_status": event.approval_status.value},
            )
        if event.status != EventStatus.upcoming:
            raise WorkflowStateError(f"The event is {event.status.value}; invitations can no longer be sent")

    @staticmethod
    def mark_dispatched(db: Session, actor_id: str, event_id: int, guest_id: int) -> DispatchResult:
        """Record that a guest's invitation went out.

        Idempotent: a repeated call changes nothing and returns the original
        timestamp with ``already_dispatched`` set.
        """
        with event_transaction(db, event_id) as event:
            role = resolve_role(actor_id, event)
            DispatchTracker.ensure_ready(event)
            guest = GuestRepo.find_in_event(event, guest_id)
            if not role.is_owner and not role.owns_guest(guest):
                raise Unauthorized("You can only mark your own guests as invited")

            if guest.whatsapp_message_sent:
                result = DispatchResult(guest.id, guest.whatsapp_message_sent_at, True)
            else:
                now = datetime.utcnow()
                guest.whatsapp_message_sent = True
                guest.whatsapp_message_sent_at = now
                guest.updated_at = now
                result = DispatchResult(guest.id, now, False)

        if not result.already_dispatched:
            logger.info(f"Guest {guest_id} of event {event_id} marked dispatched by {actor_id}")
        return result

    @staticmethod
    def dispatch_summary(db: Session, actor_id: str, event_id: int) -> Dict[str, Any]:
        """Sent/unsent totals over the guests the actor can see"""
        event = EventRepo.get_by_id(db, event_id)
        role = resolve_role(actor_id, event)
        visible = [g for g in event.guests if role.can_view_guest(g)]
        sent = [g for g in visible if g.whatsapp_message_sent]
        unsent = [g for g in visible if not g.whatsapp_message_sent]

        return {
            "ready": event.approval_status == ApprovalStatus.approved and event.status == EventStatus.upcoming,
            "total_guests": len(visible),
            "sent_count": len(sent),
            "unsent_count": len(unsent),
            "sent_invitations": sum(g.accompanying_count for g in sent),
            "unsent_invitations": sum(g.accompanying_count for g in unsent),
            "pending_outreach": [
                {"id": g.id, "name": g.name, "phone": g.phone, "accompanying_count": g.accompanying_count}
                for g in unsent
            ],
        }
