"""
Quota ledger: a derived view of how many invitation slots remain.

Nothing here is stored. Remaining capacity is recomputed from the event's
collaborators and guests every time it is needed, so removing a guest or
lowering an accompanying count frees capacity without any release call.

    owner_remaining        = total - sum(allocations) - sum(owner guests)
    collaborator_remaining = allocation - sum(guests added by that collaborator)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from app.core.errors import QuotaExceeded
from app.models import Collaborator, Event
from app.services.access_control import ResolvedRole

logger = logging.getLogger(__name__)


@dataclass
class CollaboratorUsage:
    collaborator_id: int
    user_id: str
    allocated: int
    used: int

    @property
    def remaining(self) -> int:
        return self.allocated - self.used

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collaborator_id": self.collaborator_id,
            "user_id": self.user_id,
            "allocated_quota": self.allocated,
            "used_quota": self.used,
            "remaining": self.remaining,
        }


@dataclass
class LedgerSnapshot:
    total: int
    allocated_to_collaborators: int
    used_by_owner: int
    collaborators: List[CollaboratorUsage] = field(default_factory=list)

    @property
    def owner_remaining(self) -> int:
        return self.total - self.allocated_to_collaborators - self.used_by_owner

    @property
    def used_total(self) -> int:
        return self.used_by_owner + sum(c.used for c in self.collaborators)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_invite_quota": self.total,
            "allocated_to_collaborators": self.allocated_to_collaborators,
            "used_by_owner": self.used_by_owner,
            "owner_remaining": self.owner_remaining,
            "used_total": self.used_total,
            "collaborators": [c.to_dict() for c in self.collaborators],
        }


class QuotaLedger:
    """Capacity checks for every guest-count and allocation mutation"""

    @staticmethod
    def used_by_owner(event: Event) -> int:
        return sum(g.accompanying_count for g in event.guests if g.collaborator is None)

    @staticmethod
    def used_by_collaborator(event: Event, collaborator: Collaborator) -> int:
        return sum(g.accompanying_count for g in event.guests if g.collaborator is collaborator)

    @staticmethod
    def owner_remaining(event: Event) -> int:
        allocated = sum(c.allocated_quota for c in event.collaborators)
        return event.total_invite_quota - allocated - QuotaLedger.used_by_owner(event)

    @staticmethod
    def collaborator_remaining(event: Event, collaborator: Collaborator) -> int:
        return collaborator.allocated_quota - QuotaLedger.used_by_collaborator(event, collaborator)

    @staticmethod
    def snapshot(event: Event) -> LedgerSnapshot:
        usages = [
            CollaboratorUsage(
                collaborator_id=c.id,
                user_id=c.user_id,
                allocated=c.allocated_quota,
                used=QuotaLedger.used_by_collaborator(event, c),
            )
            for c in event.collaborators
        ]
        return LedgerSnapshot(
            total=event.total_invite_quota,
            allocated_to_collaborators=sum(c.allocated_quota for c in event.collaborators),
            used_by_owner=QuotaLedger.used_by_owner(event),
            collaborators=usages,
        )

    @staticmethod
    def remaining_for(role: ResolvedRole, event: Event) -> int:
        if role.is_owner:
            return QuotaLedger.owner_remaining(event)
        for collaborator in event.collaborators:
            if collaborator.id == role.collaborator_id:
                return QuotaLedger.collaborator_remaining(event, collaborator)
        # Collaborator record vanished after the role was resolved
        return 0

    @staticmethod
    def try_reserve(role: ResolvedRole, event: Event, delta: int) -> None:
        """Accept ``delta`` more units at the actor's scope or raise ``QuotaExceeded``"""
        if delta <= 0:
            return
        remaining = QuotaLedger.remaining_for(role, event)
        if delta > remaining:
            logger.warning(
                f"Reservation refused on event {event.id}: {role.kind.value} {role.user_id} "
                f"requested {delta}, {remaining} remaining"
            )
            raise QuotaExceeded(remaining=remaining, requested=delta)

    @staticmethod
    def assert_consistent(event: Event) -> None:
        """Refuse to commit any state in which some scope is overdrawn"""
        snapshot = QuotaLedger.snapshot(event)
        if snapshot.owner_remaining < 0:
            raise QuotaExceeded(
                remaining=snapshot.owner_remaining,
                requested=0,
                message="Owner quota would be overdrawn",
            )
        for usage in snapshot.collaborators:
            if usage.remaining < 0:
                raise QuotaExceeded(
                    remaining=usage.remaining,
                    requested=0,
                    message=f"Collaborator {usage.user_id} quota would be overdrawn",
                )
