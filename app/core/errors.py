"""
Engine error taxonomy.

Every error here is recoverable: the mutation that raised it is rolled back and
the caller receives enough detail to correct the input. The API layer turns
these into the standard error envelope (see ``app.utils.responses``).
"""

from typing import Any, Optional


class InviteEngineError(Exception):
    """Base class for all engine errors"""

    code = "engine_error"
    status_code = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(InviteEngineError):
    """Malformed input: phone, accompanying count, reason, card image"""

    code = "validation_error"
    status_code = 422


class QuotaExceeded(InviteEngineError):
    """A reservation would leave an actor's remaining capacity below zero"""

    code = "quota_exceeded"
    status_code = 409

    def __init__(self, remaining: int, requested: int, message: Optional[str] = None):
        if message is None:
            message = f"Only {max(remaining, 0)} invitations remaining, {requested} requested"
        super().__init__(message, details={"remaining": remaining, "requested": requested})
        self.remaining = remaining
        self.requested = requested


class Unauthorized(InviteEngineError):
    code = "unauthorized"
    status_code = 403


class PackageTierUnsupported(InviteEngineError):
    code = "package_tier_unsupported"
    status_code = 403


class NotFound(InviteEngineError):
    code = "not_found"
    status_code = 404

    def __init__(self, resource: str = "Resource", details: Optional[Any] = None):
        super().__init__(f"{resource} not found", details)
        self.resource = resource


class WorkflowStateError(InviteEngineError):
    """Operation not allowed in the event's current approval or lifecycle state"""

    code = "invalid_state"
    status_code = 409


class ConcurrentModification(InviteEngineError):
    code = "concurrent_modification"
    status_code = 409
