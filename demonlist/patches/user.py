"""
Partial updates of user accounts.

:class:`PatchUser` is what moderators apply to other accounts. :class:`PatchMe` is
a user's update of their own profile; it requires no permissions, and changing the
password through it draws a fresh salt, which invalidates every token issued
before.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Dict, FrozenSet, Optional
from urllib.parse import urlparse

from pydantic import Field

from demonlist.context import RequestContext
from demonlist.domain.models import User
from demonlist.errors import InvalidChannel, InvalidDisplayName, InvalidPassword
from demonlist.patches.base import PatchPayload
from demonlist.permissions import ADMINISTRATION, USER_MODERATION, PermissionsSet, from_bits, to_bits

if TYPE_CHECKING:
    from demonlist.worker_pool import WorkerSession

MIN_DISPLAY_NAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 10


def validate_display_name(display_name: Optional[str]) -> Optional[str]:
    if display_name is None:
        return None
    if len(display_name) < MIN_DISPLAY_NAME_LENGTH or display_name != display_name.strip():
        raise InvalidDisplayName()
    return display_name


def validate_channel(channel: Optional[str]) -> Optional[str]:
    if channel is None:
        return None
    parsed = urlparse(channel.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidChannel()
    return parsed.geturl()


def validate_password(password: Optional[str]) -> str:
    if password is None or len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidPassword()
    return password


def _persist_user(updated: User, session: "WorkerSession") -> User:
    with session.transaction():
        session.stores.users.update(updated)
    return updated


class PatchUser(PatchPayload):
    display_name: Optional[str] = None
    youtube_channel: Optional[str] = None
    permissions: Optional[int] = None

    nullable: ClassVar[FrozenSet[str]] = frozenset({"display_name", "youtube_channel"})

    field_permissions: ClassVar[Dict[str, PermissionsSet]] = {
        "display_name": USER_MODERATION,
        "youtube_channel": USER_MODERATION,
        "permissions": ADMINISTRATION,
    }

    def validate_fields(
        self, target: User, ctx: RequestContext, session: "WorkerSession"
    ) -> Dict[str, Any]:
        fields = self.model_fields_set
        updates: Dict[str, Any] = {}
        if "display_name" in fields:
            updates["display_name"] = validate_display_name(self.display_name)
        if "youtube_channel" in fields:
            updates["youtube_channel"] = validate_channel(self.youtube_channel)
        if "permissions" in fields:
            # Unknown bits are dropped
            updates["permissions"] = to_bits(from_bits(self.permissions or 0))
        return updates

    def persist(self, original: User, updated: User, session: "WorkerSession") -> User:
        return _persist_user(updated, session)


class PatchMe(PatchPayload):
    password: Optional[str] = Field(None, repr=False)
    display_name: Optional[str] = None
    youtube_channel: Optional[str] = None

    nullable: ClassVar[FrozenSet[str]] = frozenset({"display_name", "youtube_channel"})

    def validate_fields(
        self, target: User, ctx: RequestContext, session: "WorkerSession"
    ) -> Dict[str, Any]:
        fields = self.model_fields_set
        updates: Dict[str, Any] = {}
        if "password" in fields:
            updates["password_hash"] = session.credentials.hash_password(
                validate_password(self.password)
            )
        if "display_name" in fields:
            updates["display_name"] = validate_display_name(self.display_name)
        if "youtube_channel" in fields:
            updates["youtube_channel"] = validate_channel(self.youtube_channel)
        return updates

    def persist(self, original: User, updated: User, session: "WorkerSession") -> User:
        return _persist_user(updated, session)

    def __str__(self) -> str:
        return ", ".join(
            f"{name}={'***' if name == 'password' else repr(value)}"
            for name, value in self.present().items()
        )


__all__ = [
    "PatchUser",
    "PatchMe",
    "validate_display_name",
    "validate_channel",
    "validate_password",
]
