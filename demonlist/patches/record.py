"""Partial updates of records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Dict, FrozenSet, Optional

from demonlist.context import RequestContext
from demonlist.domain.models import Record, RecordStatus
from demonlist.errors import InvalidProgress, ModelNotFound
from demonlist.patches.base import PatchPayload, resolve_player
from demonlist.permissions import LIST_MODERATION, LIST_TEAM, PermissionsSet

if TYPE_CHECKING:
    from demonlist.worker_pool import WorkerSession


class PatchRecord(PatchPayload):
    progress: Optional[int] = None
    video: Optional[str] = None
    status: Optional[RecordStatus] = None
    player: Optional[str] = None
    demon: Optional[str] = None

    nullable: ClassVar[FrozenSet[str]] = frozenset({"video"})

    # Helpers may review records; everything else is moderation.
    field_permissions: ClassVar[Dict[str, PermissionsSet]] = {
        "progress": LIST_MODERATION,
        "video": LIST_MODERATION,
        "status": LIST_TEAM,
        "player": LIST_MODERATION,
        "demon": LIST_MODERATION,
    }

    def validate_fields(
        self, target: Record, ctx: RequestContext, session: "WorkerSession"
    ) -> Dict[str, Any]:
        fields = self.model_fields_set
        updates: Dict[str, Any] = {}

        demon_name = target.demon.name
        if "demon" in fields:
            demon_name = self.demon or ""

        if fields & {"progress", "demon"}:
            demon = session.stores.demons.find_by_name(demon_name)
            if demon is None:
                raise ModelNotFound("Demon", demon_name)
            progress = self.progress if "progress" in fields else target.progress
            if progress is None or not demon.requirement <= progress <= 100:
                raise InvalidProgress(demon.requirement)
            updates["progress"] = progress
            updates["demon"] = demon.embedded()

        if "video" in fields:
            updates["video"] = session.video.validate(self.video) if self.video is not None else None

        if "status" in fields:
            updates["status"] = self.status

        if "player" in fields:
            updates["player"] = resolve_player(session, self.player)

        return updates

    def persist(self, original: Record, updated: Record, session: "WorkerSession") -> Record:
        with session.transaction():
            session.stores.records.update(updated)
        return updated


__all__ = ["PatchRecord"]
