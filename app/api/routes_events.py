"""
Owner and collaborator API routes - caller identified by X-User-Id
"""

from fastapi import APIRouter, Depends, UploadFile, File
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.core.errors import ValidationError
from app.models import Guest
from app.schemas.collaborator import CollaboratorCreate, CollaboratorUpdate
from app.schemas.guest import GuestCreate, GuestUpdate, GuestResponse
from app.services.access_control import resolve_role_for_event
from app.services.collaborator_service import CollaboratorService
from app.services.dispatch_tracker import DispatchTracker
from app.services.event_service import EventService, serialize_event
from app.services.excel_service import ExcelService
from app.services.guest_roster import GuestPatch, GuestRoster
from app.services.repositories import EventRepo
from app.utils.security import get_current_user_id
from app.utils.responses import success_response

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

def guest_to_dict(guest: Guest) -> dict:
    return GuestResponse.model_validate(guest).model_dump(mode="json")

@router.get("")
async def list_my_events(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Events the caller owns or collaborates on"""
    events = EventService.list_events_for_user(db, user_id)
    return success_response(
        message="Events retrieved successfully",
        data={
            **events,
            "summary": {
                "owned_events": len(events["owned_events"]),
                "collaborated_events": len(events["collaborated_events"])
            }
        }
    )

@router.get("/{event_id}")
async def get_event(
    event_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Event details with the ledger as seen by the caller"""
    return success_response(
        message="Event details retrieved",
        data=EventService.event_overview(db, user_id, event_id)
    )

@router.get("/{event_id}/role")
async def get_role(
    event_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Resolve the caller's role and capabilities on an event"""
    role = resolve_role_for_event(db, user_id, event_id)
    return success_response(message="Role resolved", data=role.to_dict())

@router.post("/{event_id}/cancel")
async def cancel_event(
    event_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Cancel an upcoming event (owner only)"""
    event = EventService.cancel_event(db, user_id, event_id)
    return success_response(message="Event cancelled successfully", data=serialize_event(event))

# -------- Guests --------

@router.get("/{event_id}/guests")
async def list_guests(
    event_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """List the guests visible to the caller"""
    role, guests = GuestRoster.list_guests(db, user_id, event_id)
    return success_response(
        message="Guests retrieved successfully",
        data={
            "role": role.kind.value,
            "guests": [guest_to_dict(g) for g in guests],
            "total_invitations": sum(g.accompanying_count for g in guests)
        }
    )

@router.post("/{event_id}/guests")
async def add_guest(
    event_id: int,
    guest_data: GuestCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Add a guest within the caller's quota"""
    guest, remaining = GuestRoster.add_guest(
        db,
        user_id,
        event_id,
        name=guest_data.name,
        phone=guest_data.phone,
        accompanying_count=guest_data.accompanying_count
    )
    return success_response(
        message="Guest added successfully",
        data={"guest": guest_to_dict(guest), "remaining_invites": remaining},
        status_code=201
    )

@router.post("/{event_id}/guests/confirm")
async def confirm_guest_list(
    event_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Confirm the final guest list (owner only)"""
    event = GuestRoster.confirm_guest_list(db, user_id, event_id)
    return success_response(
        message="Guest list confirmed",
        data={
            "confirmed_at": event.guest_list_confirmed_at.isoformat(),
            "guest_count": len(event.guests)
        }
    )

@router.get("/{event_id}/guests/template.xlsx")
async def download_guest_template(
    event_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Download Excel template for guest import"""
    resolve_role_for_event(db, user_id, event_id)
    return Response(
        content=ExcelService.create_template(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename=guest_template_{event_id}.xlsx"}
    )

@router.post("/{event_id}/guests/import")
async def import_guests(
    event_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Import guests from an Excel sheet"""
    if not file.filename or not file.filename.endswith(('.xlsx', '.xls')):
        raise ValidationError(
            "Invalid file format. Please upload an Excel file (.xlsx or .xls)",
            details={"filename": file.filename}
        )

    file_content = await file.read()
    result = ExcelService.import_guests(db, user_id, event_id, file_content)
    return success_response(
        message=f"{result['imported_count']} guests imported",
        data=result
    )

@router.get("/{event_id}/guests/export.xlsx")
async def export_guests(
    event_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Export the caller's visible guests with dispatch state"""
    excel_content = ExcelService.export_guests(db, user_id, event_id)
    return Response(
        content=excel_content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename=guests_{event_id}.xlsx"}
    )

@router.patch("/{event_id}/guests/{guest_id}")
async def update_guest(
    event_id: int,
    guest_id: int,
    guest_update: GuestUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Update guest information"""
    guest = GuestRoster.update_guest(
        db,
        user_id,
        event_id,
        guest_id,
        GuestPatch(
            name=guest_update.name,
            phone=guest_update.phone,
            accompanying_count=guest_update.accompanying_count
        )
    )
    return success_response(message="Guest updated successfully", data=guest_to_dict(guest))

@router.delete("/{event_id}/guests/{guest_id}")
async def remove_guest(
    event_id: int,
    guest_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Remove a guest and free their invitations"""
    result = GuestRoster.remove_guest(db, user_id, event_id, guest_id)
    return success_response(message="Guest removed successfully", data=result)

# -------- Dispatch --------

@router.post("/{event_id}/guests/{guest_id}/dispatch")
async def mark_dispatched(
    event_id: int,
    guest_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Mark that the guest's invitation message was handed off"""
    result = DispatchTracker.mark_dispatched(db, user_id, event_id, guest_id)
    message = "Invitation was already marked as sent" if result.already_dispatched else "Invitation marked as sent"
    return success_response(message=message, data=result.to_dict())

@router.get("/{event_id}/dispatch")
async def dispatch_summary(
    event_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Sent/unsent totals for the caller's guests"""
    return success_response(
        message="Dispatch summary retrieved",
        data=DispatchTracker.dispatch_summary(db, user_id, event_id)
    )

# -------- Collaborators --------

@router.get("/{event_id}/collaborators")
async def list_collaborators(
    event_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """List collaborators with their quota usage (owner only)"""
    collaborators = CollaboratorService.list_collaborators(db, user_id, event_id)
    event = EventRepo.get_by_id(db, event_id)
    return success_response(
        message="Collaborators retrieved successfully",
        data={
            "collaborators": collaborators,
            "total_allocated": sum(c["allocated_quota"] for c in collaborators),
            "total_invite_quota": event.total_invite_quota
        }
    )

@router.post("/{event_id}/collaborators")
async def add_collaborator(
    event_id: int,
    collaborator_data: CollaboratorCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Delegate part of the quota to a collaborator (owner only)"""
    permissions = collaborator_data.permissions.model_dump() if collaborator_data.permissions else None
    collaborator = CollaboratorService.add_collaborator(
        db,
        user_id,
        event_id,
        user_id=collaborator_data.user_id,
        allocated_quota=collaborator_data.allocated_quota,
        permissions=permissions,
        contact_name=collaborator_data.contact_name,
        contact_email=collaborator_data.contact_email
    )
    event = EventRepo.get_by_id(db, event_id)
    return success_response(
        message="Collaborator added successfully",
        data=CollaboratorService.describe(event, collaborator),
        status_code=201
    )

@router.patch("/{event_id}/collaborators/{collaborator_id}")
async def update_collaborator(
    event_id: int,
    collaborator_id: int,
    collaborator_update: CollaboratorUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Change a collaborator's allocation or permissions (owner only)"""
    permissions = collaborator_update.permissions.model_dump() if collaborator_update.permissions else None
    collaborator = CollaboratorService.update_collaborator(
        db,
        user_id,
        event_id,
        collaborator_id,
        allocated_quota=collaborator_update.allocated_quota,
        permissions=permissions
    )
    event = EventRepo.get_by_id(db, event_id)
    return success_response(
        message="Collaborator updated successfully",
        data=CollaboratorService.describe(event, collaborator)
    )

@router.delete("/{event_id}/collaborators/{collaborator_id}")
async def remove_collaborator(
    event_id: int,
    collaborator_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Remove a collaborator; their guests move to the owner (owner only)"""
    result = CollaboratorService.remove_collaborator(db, user_id, event_id, collaborator_id)
    return success_response(message="Collaborator removed successfully", data=result)
