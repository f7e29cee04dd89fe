"""
Collaborator-related Pydantic schemas
"""

from typing import Optional
from pydantic import BaseModel, EmailStr

class CollaboratorPermissions(BaseModel):
    can_add_guests: Optional[bool] = None
    can_edit_guests: Optional[bool] = None
    can_delete_guests: Optional[bool] = None

class CollaboratorCreate(BaseModel):
    """Schema for adding a collaborator"""
    user_id: str
    allocated_quota: int
    contact_name: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    permissions: Optional[CollaboratorPermissions] = None

class CollaboratorUpdate(BaseModel):
    """Schema for changing a collaborator's slice or permissions"""
    allocated_quota: Optional[int] = None
    permissions: Optional[CollaboratorPermissions] = None
