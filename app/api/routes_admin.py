"""
Admin API routes - requires authentication
"""

from typing import Optional
from fastapi import APIRouter, Depends, UploadFile, File, Query, Form
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.schemas.event import RejectRequest, BulkApproveRequest
from app.schemas.guest import GuestResponse
from app.services.approval_workflow import ApprovalWorkflow
from app.services.asset_store import InvitationCardAsset
from app.services.event_service import EventService, serialize_event
from app.services.repositories import EventRepo
from app.services.quota_ledger import QuotaLedger
from app.utils.security import get_admin_id
from app.utils.responses import success_response

router = APIRouter()

async def _read_card(card_file: Optional[UploadFile]) -> Optional[InvitationCardAsset]:
    if card_file is None:
        return None
    return InvitationCardAsset(
        filename=card_file.filename or "",
        content_type=card_file.content_type or "",
        data=await card_file.read()
    )

@router.get("/events")
async def list_events(
    approval_status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    admin_id: str = Depends(get_admin_id)
):
    """List events, optionally filtered by approval status"""
    events, total = EventService.list_events(db, approval_status, page, per_page)
    return success_response(
        message="Events retrieved successfully",
        data={
            "events": [serialize_event(e) for e in events],
            "pagination": {
                "page": page,
                "per_page": per_page,
                "total": total,
                "pages": (total + per_page - 1) // per_page
            }
        }
    )

@router.get("/events/stats")
async def approval_stats(
    db: Session = Depends(get_db),
    admin_id: str = Depends(get_admin_id)
):
    """Event counts per approval status"""
    return success_response(
        message="Approval statistics retrieved",
        data=EventService.approval_stats(db)
    )

@router.get("/events/{event_id}")
async def get_event_details(
    event_id: int,
    db: Session = Depends(get_db),
    admin_id: str = Depends(get_admin_id)
):
    """Full event record with the quota ledger"""
    event = EventRepo.get_by_id(db, event_id)
    data = serialize_event(event)
    data["ledger"] = QuotaLedger.snapshot(event).to_dict()
    data["guest_count"] = len(event.guests)
    return success_response(message="Event details retrieved", data=data)

@router.get("/events/{event_id}/guests")
async def get_event_guests(
    event_id: int,
    db: Session = Depends(get_db),
    admin_id: str = Depends(get_admin_id)
):
    """Guest roster with who added each guest and dispatch counts"""
    roster = EventService.admin_guest_roster(db, event_id)
    roster["guests"] = [
        GuestResponse.model_validate(g).model_dump(mode="json") for g in roster["guests"]
    ]
    return success_response(message="Event guests retrieved", data=roster)

@router.post("/events/{event_id}/approve")
async def approve_event(
    event_id: int,
    invitation_card: Optional[UploadFile] = File(None),
    notes: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    admin_id: str = Depends(get_admin_id)
):
    """Approve a pending event with its invitation card"""
    card = await _read_card(invitation_card)
    event = ApprovalWorkflow.approve(db, admin_id, event_id, card, notes)
    return success_response(message="Event approved successfully", data=serialize_event(event))

@router.post("/events/{event_id}/reject")
async def reject_event(
    event_id: int,
    request: RejectRequest,
    db: Session = Depends(get_db),
    admin_id: str = Depends(get_admin_id)
):
    """Reject a pending event with a reason"""
    event = ApprovalWorkflow.reject(db, admin_id, event_id, request.reason)
    return success_response(message="Event rejected", data=serialize_event(event))

@router.post("/events/{event_id}/invitation-card")
async def stage_invitation_card(
    event_id: int,
    invitation_card: UploadFile = File(...),
    db: Session = Depends(get_db),
    admin_id: str = Depends(get_admin_id)
):
    """Upload a card ahead of bulk approval"""
    card = await _read_card(invitation_card)
    event = ApprovalWorkflow.stage_invitation_card(db, admin_id, event_id, card)
    return success_response(
        message="Invitation card uploaded",
        data={"event_id": event.id, "staged_card_asset_ref": event.staged_card_asset_ref}
    )

@router.post("/events/bulk-approve")
async def bulk_approve(
    request: BulkApproveRequest,
    db: Session = Depends(get_db),
    admin_id: str = Depends(get_admin_id)
):
    """Approve several events, each in its own transaction"""
    results = ApprovalWorkflow.bulk_approve(db, admin_id, request.event_ids, request.notes)
    approved = sum(1 for r in results if r.success)
    return success_response(
        message=f"{approved} of {len(results)} events approved",
        data={
            "results": [r.to_dict() for r in results],
            "approved": approved,
            "failed": len(results) - approved
        }
    )

@router.post("/events/{event_id}/guest-list/reopen")
async def reopen_guest_list(
    event_id: int,
    db: Session = Depends(get_db),
    admin_id: str = Depends(get_admin_id)
):
    """Reopen a confirmed guest list for further additions"""
    event = ApprovalWorkflow.reopen_guest_list(db, admin_id, event_id)
    return success_response(
        message="Guest list reopened",
        data={"event_id": event.id, "reopen_count": event.guest_list_reopen_count}
    )

@router.post("/events/complete-past")
async def complete_past_events(
    db: Session = Depends(get_db),
    admin_id: str = Depends(get_admin_id)
):
    """Mark upcoming events whose date has passed as done"""
    completed = EventService.complete_past_events(db)
    return success_response(message=f"{completed} events marked as done", data={"completed": completed})
