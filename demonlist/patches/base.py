"""
Partial-update payloads.

A payload only carries the fields the caller sent: presence is tracked through
pydantic's ``model_fields_set``, so an absent field and an explicit ``null`` are
different things (the latter clears a nullable column).

Each concrete payload implements the patch contract for one entity kind:

- ``field_permissions``: the permissions each field requires (any one suffices)
- ``validate_fields``: check every present field against the current store state and
  return the resolved values to assign
- ``apply``: assign the resolved values onto an in-memory copy of the entity
- ``persist``: write the updated entity inside one storage transaction
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any, ClassVar, Dict, FrozenSet, List, Optional, TypeVar

from pydantic import BaseModel, model_validator

from demonlist.context import RequestContext
from demonlist.domain.models import Player
from demonlist.errors import InvalidName, ModelNotFound
from demonlist.permissions import PermissionsSet

if TYPE_CHECKING:
    from demonlist.worker_pool import WorkerSession

E = TypeVar("E", bound=BaseModel)


class PatchPayload(BaseModel, abc.ABC):
    field_permissions: ClassVar[Dict[str, PermissionsSet]] = {}
    # Fields that may be explicitly set to null
    nullable: ClassVar[FrozenSet[str]] = frozenset()

    model_config = {"frozen": True, "extra": "forbid"}

    @model_validator(mode="after")
    def _reject_nulls(self) -> "PatchPayload":
        for name in self.model_fields_set:
            if getattr(self, name) is None and name not in self.nullable:
                raise ValueError(f"'{name}' cannot be null")
        return self

    def present(self) -> Dict[str, Any]:
        """The fields the caller sent, by name."""
        return {name: getattr(self, name) for name in sorted(self.model_fields_set)}

    def required_permissions(self) -> PermissionsSet:
        """Union of the permissions required by the present fields."""
        required: PermissionsSet = frozenset()
        for name in self.model_fields_set:
            required = required | self.field_permissions.get(name, frozenset())
        return required

    def permission_groups(self) -> List[PermissionsSet]:
        """Distinct non-empty requirement sets of the present fields."""
        groups: List[PermissionsSet] = []
        for name in sorted(self.model_fields_set):
            group = self.field_permissions.get(name, frozenset())
            if group and group not in groups:
                groups.append(group)
        return groups

    @abc.abstractmethod
    def validate_fields(
        self, target: E, ctx: RequestContext, session: "WorkerSession"
    ) -> Dict[str, Any]:
        """Validate the present fields; return the values to assign."""

    def apply(self, target: E, updates: Dict[str, Any]) -> E:
        return target.model_copy(update=updates)

    @abc.abstractmethod
    def persist(self, original: E, updated: E, session: "WorkerSession") -> E:
        """Write ``updated`` (previously ``original``) to storage."""

    def __str__(self) -> str:
        return ", ".join(f"{name}={value!r}" for name, value in self.present().items())


def validate_name(name: Optional[str]) -> str:
    if not name or name != name.strip():
        raise InvalidName()
    return name


def resolve_player(session: "WorkerSession", name: Optional[str]) -> Player:
    """The existing player called ``name``."""
    player = session.stores.players.find_by_name(name) if name else None
    if player is None:
        raise ModelNotFound("Player", name)
    return player


__all__ = ["PatchPayload", "validate_name", "resolve_player"]
