"""
Guest-related Pydantic schemas
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from app.models import AddedByRole

class GuestCreate(BaseModel):
    """Schema for adding a guest"""
    name: str
    phone: str
    accompanying_count: int = 1

class GuestUpdate(BaseModel):
    """Schema for updating a guest"""
    name: Optional[str] = None
    phone: Optional[str] = None
    accompanying_count: Optional[int] = None

class GuestResponse(BaseModel):
    """Guest response schema"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    phone: str
    accompanying_count: int
    added_by_role: AddedByRole
    added_by_user_id: str
    collaborator_id: Optional[int] = None
    whatsapp_message_sent: bool
    whatsapp_message_sent_at: Optional[datetime] = None
    added_at: datetime
    updated_at: datetime
