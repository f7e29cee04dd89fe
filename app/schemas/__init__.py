"""
Pydantic schemas package
"""

from .common import *
from .event import *
from .guest import *
from .collaborator import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "EventCreate",
    "RejectRequest",
    "BulkApproveRequest",
    "GuestCreate",
    "GuestUpdate",
    "GuestResponse",
    "CollaboratorPermissions",
    "CollaboratorCreate",
    "CollaboratorUpdate",
]
