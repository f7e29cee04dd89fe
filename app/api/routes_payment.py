"""
Payment service callback - creates the event once a package is paid
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.schemas.event import EventCreate
from app.services.event_service import EventService, serialize_event
from app.utils.security import verify_payment_token
from app.utils.responses import success_response

router = APIRouter()

@router.post("/events")
async def create_paid_event(
    event_data: EventCreate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_payment_token)
):
    """Create an event awaiting approval for a completed purchase"""
    event = EventService.create_event(
        db,
        owner_id=event_data.owner_id,
        package_type=event_data.package_type,
        total_invite_quota=event_data.total_invite_quota,
        host_name=event_data.host_name,
        event_date=event_data.event_date
    )
    return success_response(
        message="Event created successfully",
        data=serialize_event(event),
        status_code=201
    )
