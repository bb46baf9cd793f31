"""
Error kinds raised by the service layer.

Each kind carries the HTTP status the API boundary renders it with; the
message is user-facing and is returned verbatim in the failure envelope.
"""
from typing import Optional


class GearGuardError(Exception):
    status_code = 500

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message}


class ValidationError(GearGuardError):
    """Missing or malformed input."""

    status_code = 400


class NotFound(GearGuardError):
    """A referenced row does not exist."""

    status_code = 404


class Conflict(GearGuardError):
    """Uniqueness, exclusive assignment or lifecycle state conflict."""

    status_code = 409


class InvariantViolation(GearGuardError):
    """A delete is blocked by dependent rows."""

    status_code = 400


class Forbidden(GearGuardError):
    status_code = 403


class Unauthorized(GearGuardError):
    status_code = 401
