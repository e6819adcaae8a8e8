"""
Permission flags and permission sets.

A user's granted permissions are persisted as an integer bit mask. Operations
declare the set of permissions they require; holding ANY one of them is enough.
"""

from __future__ import annotations

import enum
from typing import FrozenSet, Iterable


class Permission(enum.IntFlag):
    EXTENDED_ACCESS = 0x1
    LIST_HELPER = 0x2
    LIST_MODERATOR = 0x4
    LIST_ADMINISTRATOR = 0x8
    LEADERBOARD_MODERATOR = 0x10
    LEADERBOARD_ADMINISTRATOR = 0x20
    MODERATOR = 0x2000
    ADMINISTRATOR = 0x4000


PermissionsSet = FrozenSet[Permission]

ALL_PERMISSIONS = tuple(Permission)


def perms(*flags: Permission) -> PermissionsSet:
    """Build a permission set from individual flags."""
    return frozenset(flags)


def from_bits(bits: int) -> PermissionsSet:
    """Decode a persisted bit mask into the set of flags it grants."""
    return frozenset(flag for flag in ALL_PERMISSIONS if bits & flag.value)


def to_bits(flags: Iterable[Permission]) -> int:
    mask = 0
    for flag in flags:
        mask |= flag.value
    return mask


def has_any(granted: PermissionsSet, required: PermissionsSet) -> bool:
    """True if ``granted`` intersects ``required``."""
    return not granted.isdisjoint(required)


LIST_TEAM = perms(Permission.LIST_HELPER, Permission.LIST_MODERATOR, Permission.LIST_ADMINISTRATOR)
LIST_MODERATION = perms(Permission.LIST_MODERATOR, Permission.LIST_ADMINISTRATOR)
USER_MODERATION = perms(Permission.MODERATOR, Permission.ADMINISTRATOR)
ADMINISTRATION = perms(Permission.ADMINISTRATOR)


__all__ = [
    "Permission",
    "PermissionsSet",
    "perms",
    "from_bits",
    "to_bits",
    "has_any",
    "LIST_TEAM",
    "LIST_MODERATION",
    "USER_MODERATION",
    "ADMINISTRATION",
]
