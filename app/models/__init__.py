"""
Database models package
"""

from .event import Event, PackageType, ApprovalStatus, EventStatus
from .collaborator import Collaborator
from .guest import Guest, AddedByRole

__all__ = [
    "Event",
    "PackageType",
    "ApprovalStatus",
    "EventStatus",
    "Collaborator",
    "Guest",
    "AddedByRole",
]
