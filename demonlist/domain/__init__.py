"""
Domain package for the demonlist core.

Exports the entity models and submission inputs used across commands and stores.
Keep this package focused on data definitions and validation concerns.
"""

from demonlist.domain.models import (
    Demon,
    EmbeddedDemon,
    Player,
    Record,
    RecordStatus,
    Registration,
    Submission,
    Submitter,
    User,
)

__all__ = [
    "Demon",
    "EmbeddedDemon",
    "Player",
    "Record",
    "RecordStatus",
    "Registration",
    "Submission",
    "Submitter",
    "User",
]
