"""
Domain models for the demonlist core.

Row-backed entities (players, demons, submitters, records, users) and the
ephemeral inputs (submissions, registrations) that commands consume. Entities are
frozen: a changed entity is always a new copy produced by the patch protocol.
"""
from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, Field

from demonlist.permissions import LIST_TEAM, PermissionsSet, from_bits, has_any

_FROZEN = {
    "frozen": True,
    "populate_by_name": True,
    "arbitrary_types_allowed": False,
}


class RecordStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class Player(BaseModel):
    """A player that can hold records."""

    id: int = Field(..., description="Primary key.")
    name: str = Field(..., description="Unique, case-insensitive name.")
    banned: bool = Field(False, description="Banned players cannot have records.")

    model_config = _FROZEN


class EmbeddedDemon(BaseModel):
    """The part of a demon that is shown alongside its records."""

    name: str
    position: int

    model_config = _FROZEN


class Demon(BaseModel):
    """A demon on the list, identified by its name."""

    name: str = Field(..., description="Natural key.")
    position: int = Field(..., description="1-based list position.")
    requirement: int = Field(..., ge=0, le=100, description="Minimal record progress.")
    video: Optional[str] = Field(None, description="Canonical verification video URL.")
    verifier: Player
    publisher: Player

    model_config = _FROZEN

    def embedded(self) -> EmbeddedDemon:
        return EmbeddedDemon(name=self.name, position=self.position)


class Submitter(BaseModel):
    """An anonymous submitter, identified by the IP records were submitted from."""

    id: int
    ip: str
    banned: bool = False

    model_config = _FROZEN


class Record(BaseModel):
    id: int = Field(..., description="Primary key.")
    progress: int = Field(..., ge=0, le=100)
    video: Optional[str] = None
    status: RecordStatus = RecordStatus.SUBMITTED
    player: Player
    submitter: int = Field(..., description="ID of the submitter that created the record.")
    demon: EmbeddedDemon

    model_config = _FROZEN


class User(BaseModel):
    id: int
    name: str
    permissions: int = Field(0, ge=0, description="Granted permissions as a bit mask.")
    display_name: Optional[str] = None
    youtube_channel: Optional[str] = None
    password_hash: str = Field(..., exclude=True, repr=False)

    model_config = _FROZEN

    def permission_set(self) -> PermissionsSet:
        return from_bits(self.permissions)

    def has_any(self, required: PermissionsSet) -> bool:
        return has_any(self.permission_set(), required)

    def list_team_member(self) -> bool:
        return self.has_any(LIST_TEAM)


class Submission(BaseModel):
    """
    Unpersisted claim of progress on a demon.

    With ``verify_only`` set, the submission is checked but never stored.
    """

    progress: int
    player: str
    demon: str
    video: Optional[str] = None
    verify_only: bool = False

    model_config = _FROZEN


class Registration(BaseModel):
    name: str
    password: str = Field(..., repr=False)

    model_config = _FROZEN


__all__ = [
    "RecordStatus",
    "Player",
    "EmbeddedDemon",
    "Demon",
    "Submitter",
    "Record",
    "User",
    "Submission",
    "Registration",
]
