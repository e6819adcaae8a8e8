"""
Error hierarchy for the demonlist core.

Every failure a command can report is a subclass of :class:`DemonlistError`.
Each error carries an HTTP-like ``status`` so outer surfaces can map it without
knowing the concrete type, and ``to_dict()`` renders a stable payload.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from demonlist.domain.models import RecordStatus
    from demonlist.permissions import PermissionsSet


class DemonlistError(Exception):
    """Base error for everything the command layer reports."""

    status: int = 500
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)

    def details(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "status": self.status,
            "message": str(self),
            "data": self.details(),
        }


# Authorization


class Unauthorized(DemonlistError):
    status = 401
    message = "Authorization required"


class MissingPermissions(DemonlistError):
    status = 403
    message = "You do not have the permissions required to perform this action"

    def __init__(self, required: "PermissionsSet") -> None:
        self.required = required
        names = ", ".join(sorted(str(flag.name) for flag in required))
        super().__init__(f"{self.message} (requires any of: {names})")

    def details(self) -> Dict[str, Any]:
        return {"required": sorted(str(flag.name) for flag in self.required)}


class PreconditionFailed(DemonlistError):
    status = 412
    message = "The entity has been modified since it was last read"


class InvalidState(DemonlistError):
    """Internal contract violation inside the core."""

    status = 500
    message = "The server reached an invalid state"


# Storage


class ModelNotFound(DemonlistError):
    status = 404

    def __init__(self, model: str, identified_by: Any) -> None:
        self.model = model
        self.identified_by = str(identified_by)
        super().__init__(f"No {model} identified by '{self.identified_by}' found")

    def details(self) -> Dict[str, Any]:
        return {"model": self.model, "identified_by": self.identified_by}


class ConnectionUnavailable(DemonlistError):
    status = 503
    message = "Could not acquire a database connection"


class DatabaseError(DemonlistError):
    status = 500
    message = "A database error occurred"


# Submissions


class BannedFromSubmissions(DemonlistError):
    status = 403
    message = "You have been banned from submitting records"


class PlayerBanned(DemonlistError):
    status = 403
    message = "The player has been banned from having records on the list"


class SubmitLegacy(DemonlistError):
    status = 403
    message = "Records for legacy demons are not accepted"


class Non100Extended(DemonlistError):
    status = 403
    message = "Records for extended list demons must have 100% progress"


class InvalidProgress(DemonlistError):
    status = 422

    def __init__(self, requirement: int) -> None:
        self.requirement = requirement
        super().__init__(f"Progress must be between {requirement} and 100")

    def details(self) -> Dict[str, Any]:
        return {"requirement": self.requirement}


class SubmissionExists(DemonlistError):
    status = 422

    def __init__(self, status: "RecordStatus", existing: int) -> None:
        self.record_status = status
        self.existing = existing
        super().__init__(
            f"A matching record ({existing}) with status '{status.value}' already exists"
        )

    def details(self) -> Dict[str, Any]:
        return {"status": self.record_status.value, "existing": self.existing}


# Accounts


class InvalidUsername(DemonlistError):
    status = 422
    message = "Usernames must be at least 3 characters long and have no surrounding whitespace"


class InvalidPassword(DemonlistError):
    status = 422
    message = "Passwords must be at least 10 characters long"


class NameTaken(DemonlistError):
    status = 409
    message = "The chosen name is already in use"


# Field validation


class InvalidName(DemonlistError):
    status = 422
    message = "Names must not be empty or padded with whitespace"


class InvalidPosition(DemonlistError):
    status = 422

    def __init__(self, maximal: int) -> None:
        self.maximal = maximal
        super().__init__(f"Position must be between 1 and {maximal}")

    def details(self) -> Dict[str, Any]:
        return {"maximal": self.maximal}


class InvalidRequirement(DemonlistError):
    status = 422
    message = "Record requirement must be between 0 and 100"


class InvalidVideo(DemonlistError):
    status = 422
    message = "The given video URL is malformed or from an unsupported host"


class InvalidDisplayName(DemonlistError):
    status = 422
    message = "Display names must be at least 3 characters long and have no surrounding whitespace"


class InvalidChannel(DemonlistError):
    status = 422
    message = "Channel links must be absolute http(s) URLs"


__all__ = [
    "DemonlistError",
    "Unauthorized",
    "MissingPermissions",
    "PreconditionFailed",
    "InvalidState",
    "ModelNotFound",
    "ConnectionUnavailable",
    "DatabaseError",
    "BannedFromSubmissions",
    "PlayerBanned",
    "SubmitLegacy",
    "Non100Extended",
    "InvalidProgress",
    "SubmissionExists",
    "InvalidUsername",
    "InvalidPassword",
    "NameTaken",
    "InvalidName",
    "InvalidPosition",
    "InvalidRequirement",
    "InvalidVideo",
    "InvalidDisplayName",
    "InvalidChannel",
]
