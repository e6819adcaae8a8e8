"""Partial-update payloads, one per patchable entity kind."""

from demonlist.patches.base import PatchPayload
from demonlist.patches.demon import PatchDemon
from demonlist.patches.player import PatchPlayer
from demonlist.patches.record import PatchRecord
from demonlist.patches.user import PatchMe, PatchUser

__all__ = [
    "PatchPayload",
    "PatchDemon",
    "PatchPlayer",
    "PatchRecord",
    "PatchUser",
    "PatchMe",
]
