"""Partial updates of demons."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Dict, FrozenSet, Optional

from demonlist.context import RequestContext
from demonlist.domain.models import Demon
from demonlist.errors import InvalidPosition, InvalidRequirement, NameTaken
from demonlist.patches.base import PatchPayload, resolve_player, validate_name
from demonlist.permissions import LIST_MODERATION, PermissionsSet
from demonlist.utils.logging import get_logger

if TYPE_CHECKING:
    from demonlist.worker_pool import WorkerSession

log = get_logger(__name__)


class PatchDemon(PatchPayload):
    name: Optional[str] = None
    position: Optional[int] = None
    video: Optional[str] = None
    requirement: Optional[int] = None
    verifier: Optional[str] = None
    publisher: Optional[str] = None

    nullable: ClassVar[FrozenSet[str]] = frozenset({"video"})

    field_permissions: ClassVar[Dict[str, PermissionsSet]] = {
        field: LIST_MODERATION
        for field in ("name", "position", "video", "requirement", "verifier", "publisher")
    }

    def validate_fields(
        self, target: Demon, ctx: RequestContext, session: "WorkerSession"
    ) -> Dict[str, Any]:
        demons = session.stores.demons
        fields = self.model_fields_set
        updates: Dict[str, Any] = {}

        if "name" in fields:
            name = validate_name(self.name)
            existing = demons.find_by_name(name)
            if existing is not None and existing.name != target.name:
                raise NameTaken()
            updates["name"] = name

        if "position" in fields:
            maximal = demons.count()
            if self.position is None or not 1 <= self.position <= maximal:
                raise InvalidPosition(maximal)
            updates["position"] = self.position

        if "requirement" in fields:
            if self.requirement is None or not 0 <= self.requirement <= 100:
                raise InvalidRequirement()
            updates["requirement"] = self.requirement

        if "video" in fields:
            updates["video"] = session.video.validate(self.video) if self.video is not None else None

        if "verifier" in fields:
            updates["verifier"] = resolve_player(session, self.verifier)
        if "publisher" in fields:
            updates["publisher"] = resolve_player(session, self.publisher)

        return updates

    def persist(self, original: Demon, updated: Demon, session: "WorkerSession") -> Demon:
        demons = session.stores.demons
        with session.transaction():
            if updated.position != original.position:
                log.info(
                    f"Moving demon '{original.name}' from {original.position} to {updated.position}"
                )
                demons.move(original.name, original.position, updated.position)
            demons.update(original.name, updated)
        return updated


__all__ = ["PatchDemon"]
