"""
Administrative approval of paid events.

    pending --approve--> approved   (terminal)
    pending --reject---> rejected   (terminal)

Approval needs an invitation card image. Guests can be prepared while the
event is pending, but dispatch only opens once it is approved.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import InviteEngineError, ValidationError, WorkflowStateError
from app.models import ApprovalStatus, Event
from app.services.asset_store import AssetStore, InvitationCardAsset
from app.services.event_lock import event_transaction

logger = logging.getLogger(__name__)


@dataclass
class BulkApprovalItem:
    event_id: int
    success: bool
    error_code: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "success": self.success,
            "error_code": self.error_code,
            "message": self.message,
        }


def _ensure_pending(event: Event) -> None:
    if event.approval_status != ApprovalStatus.pending:
        raise WorkflowStateError(
            f"The event is not awaiting approval (current status: {event.approval_status.value})",
            details={"approval_status": event.approval_status.value},
        )


def _mark_approved(event: Event, admin_id: str, card_ref: str, notes: Optional[str]) -> None:
    event.approval_status = ApprovalStatus.approved
    event.invitation_card_asset_ref = card_ref
    event.staged_card_asset_ref = None
    event.reviewed_by = admin_id
    event.approved_at = datetime.utcnow()
    if notes:
        event.admin_notes = notes.strip()


class ApprovalWorkflow:

    @staticmethod
    def approve(
        db: Session,
        admin_id: str,
        event_id: int,
        card: Optional[InvitationCardAsset],
        notes: Optional[str] = None,
    ) -> Event:
        extension = AssetStore.validate_card(card)

        card_ref = None
        try:
            with event_transaction(db, event_id) as event:
                _ensure_pending(event)
                card_ref = AssetStore.save_card(event_id, card, extension)
                previous_staged = event.staged_card_asset_ref
                _mark_approved(event, admin_id, card_ref, notes)
        except Exception:
            # The approval did not commit; do not leave an orphaned file behind
            if card_ref:
                AssetStore.delete(card_ref)
            raise

        if previous_staged and previous_staged != card_ref:
            AssetStore.delete(previous_staged)
        logger.info(f"Event {event_id} approved by admin {admin_id}")
        return event

    @staticmethod
    def reject(db: Session, admin_id: str, event_id: int, reason: Optional[str]) -> Event:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A rejection reason is required")

        with event_transaction(db, event_id) as event:
            _ensure_pending(event)
            event.approval_status = ApprovalStatus.rejected
            event.reviewed_by = admin_id
            event.rejected_at = datetime.utcnow()
            event.admin_notes = reason

        logger.info(f"Event {event_id} rejected by admin {admin_id}")
        return event

    @staticmethod
    def stage_invitation_card(db: Session, admin_id: str, event_id: int, card: Optional[InvitationCardAsset]) -> Event:
        """Attach a card to a pending event so it can be approved in bulk later"""
        extension = AssetStore.validate_card(card)

        card_ref = None
        try:
            with event_transaction(db, event_id) as event:
                _ensure_pending(event)
                card_ref = AssetStore.save_card(event_id, card, extension)
                previous = event.staged_card_asset_ref
                event.staged_card_asset_ref = card_ref
        except Exception:
            if card_ref:
                AssetStore.delete(card_ref)
            raise

        if previous:
            AssetStore.delete(previous)
        logger.info(f"Invitation card staged for event {event_id} by admin {admin_id}")
        return event

    @staticmethod
    def bulk_approve(
        db: Session,
        admin_id: str,
        event_ids: List[int],
        notes: Optional[str] = None,
    ) -> List[BulkApprovalItem]:
        """Approve each event independently using its staged card.

        One event failing never undoes another; every id gets its own result.
        """
        if not event_ids:
            raise ValidationError("At least one event id is required")

        results: List[BulkApprovalItem] = []
        seen = set()
        for event_id in event_ids:
            if event_id in seen:
                continue
            seen.add(event_id)
            try:
                with event_transaction(db, event_id) as event:
                    _ensure_pending(event)
                    if not event.staged_card_asset_ref:
                        raise ValidationError("No invitation card has been uploaded for this event")
                    _mark_approved(event, admin_id, event.staged_card_asset_ref, notes)
                results.append(BulkApprovalItem(event_id=event_id, success=True))
            except InviteEngineError as exc:
                results.append(
                    BulkApprovalItem(event_id=event_id, success=False, error_code=exc.code, message=exc.message)
                )

        approved = sum(1 for item in results if item.success)
        logger.info(f"Bulk approval by admin {admin_id}: {approved}/{len(results)} events approved")
        return results

    @staticmethod
    def reopen_guest_list(db: Session, admin_id: str, event_id: int) -> Event:
        with event_transaction(db, event_id) as event:
            if event.guest_list_confirmed_at is None:
                raise WorkflowStateError("The guest list is not confirmed")
            event.guest_list_confirmed_at = None
            event.guest_list_reopen_count = (event.guest_list_reopen_count or 0) + 1

        logger.info(f"Guest list of event {event_id} reopened by admin {admin_id}")
        return event
