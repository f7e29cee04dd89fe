"""
Event-related Pydantic schemas
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel

from app.models import PackageType

class EventCreate(BaseModel):
    """Sent by the payment service once a package purchase clears"""
    owner_id: str
    package_type: PackageType
    total_invite_quota: int
    host_name: Optional[str] = None
    event_date: Optional[datetime] = None

class RejectRequest(BaseModel):
    reason: Optional[str] = None

class BulkApproveRequest(BaseModel):
    event_ids: List[int]
    notes: Optional[str] = None
