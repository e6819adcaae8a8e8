"""Partial updates of players."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Dict, Optional

from demonlist.context import RequestContext
from demonlist.domain.models import Player
from demonlist.errors import NameTaken
from demonlist.patches.base import PatchPayload, validate_name
from demonlist.permissions import LIST_MODERATION, PermissionsSet

if TYPE_CHECKING:
    from demonlist.worker_pool import WorkerSession


class PatchPlayer(PatchPayload):
    name: Optional[str] = None
    banned: Optional[bool] = None

    field_permissions: ClassVar[Dict[str, PermissionsSet]] = {
        "name": LIST_MODERATION,
        "banned": LIST_MODERATION,
    }

    def validate_fields(
        self, target: Player, ctx: RequestContext, session: "WorkerSession"
    ) -> Dict[str, Any]:
        updates: Dict[str, Any] = {}
        if "name" in self.model_fields_set:
            name = validate_name(self.name)
            existing = session.stores.players.find_by_name(name)
            if existing is not None and existing.id != target.id:
                raise NameTaken()
            updates["name"] = name
        if "banned" in self.model_fields_set:
            updates["banned"] = self.banned
        return updates

    def persist(self, original: Player, updated: Player, session: "WorkerSession") -> Player:
        with session.transaction():
            session.stores.players.update(updated)
        return updated


__all__ = ["PatchPlayer"]
