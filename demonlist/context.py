"""
Request context for commands.

A request is first described without a connection (:class:`RequestData`); once a
worker picks the command up it binds the description to its checked-out
connection, producing a :class:`RequestContext`. Both come in two variants:

- *Internal*: system-initiated, trusted; permission and precondition checks pass.
- *External*: carries the caller's IP, the authenticated user (if any) and the
  optional If-Match precondition supplied by the caller.

A context never outlives the command it was bound for.
"""

from __future__ import annotations

import abc
import dataclasses
import hashlib
import json
from dataclasses import dataclass
from typing import Any, FrozenSet, Mapping, Optional, Union

from pydantic import BaseModel

from demonlist.domain.models import User
from demonlist.errors import InvalidState, MissingPermissions, PreconditionFailed, Unauthorized
from demonlist.permissions import PermissionsSet


def precondition_hash(entity: Union[BaseModel, Mapping[str, Any]]) -> str:
    """
    Compute the concurrency token of an entity.

    The token is a SHA-256 digest over the canonical JSON rendering of the entity,
    so identical content yields identical tokens across processes and restarts.
    """
    payload = entity.model_dump(mode="json") if isinstance(entity, BaseModel) else dict(entity)
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class IfMatch:
    """Parsed If-Match precondition: either ``*`` or a set of entity tags."""

    tags: FrozenSet[str] = frozenset()
    wildcard: bool = False

    @classmethod
    def parse(cls, header: str) -> "IfMatch":
        value = header.strip()
        if value == "*":
            return cls(wildcard=True)
        tags = set()
        for chunk in value.split(","):
            tag = chunk.strip()
            if tag.startswith("W/"):
                tag = tag[2:]
            tag = tag.strip('"')
            if tag:
                tags.add(tag)
        return cls(tags=frozenset(tags))

    @classmethod
    def for_entity(cls, entity: Union[BaseModel, Mapping[str, Any]]) -> "IfMatch":
        return cls(tags=frozenset({precondition_hash(entity)}))

    def met(self, etag: str) -> bool:
        return self.wildcard or etag in self.tags


class RequestContext(abc.ABC):
    """A request bound to the connection of the worker executing it."""

    connection: Any

    @abc.abstractmethod
    def check_permissions(self, required: PermissionsSet) -> None:
        """Raise unless the caller holds any of ``required``."""

    @abc.abstractmethod
    def check_if_match(self, entity: Union[BaseModel, Mapping[str, Any]]) -> None:
        """Raise unless the caller's precondition matches ``entity``."""

    @abc.abstractmethod
    def is_list_moderator(self) -> bool:
        ...


@dataclass(frozen=True)
class InternalContext(RequestContext):
    connection: Any

    def check_permissions(self, required: PermissionsSet) -> None:
        return None

    def check_if_match(self, entity: Union[BaseModel, Mapping[str, Any]]) -> None:
        return None

    def is_list_moderator(self) -> bool:
        return True


@dataclass(frozen=True)
class ExternalContext(RequestContext):
    ip: str
    user: Optional[User]
    if_match: Optional[IfMatch]
    connection: Any

    def check_permissions(self, required: PermissionsSet) -> None:
        if not required:
            return
        if self.user is None:
            raise Unauthorized()
        if not self.user.has_any(required):
            raise MissingPermissions(required)

    def check_if_match(self, entity: Union[BaseModel, Mapping[str, Any]]) -> None:
        if self.if_match is None:
            raise InvalidState(
                "Checked precondition on a request that did not declare one"
            )
        if not self.if_match.met(precondition_hash(entity)):
            raise PreconditionFailed()

    def is_list_moderator(self) -> bool:
        return self.user is not None and self.user.list_team_member()


class RequestData(abc.ABC):
    """Connection-less description of who issued a command."""

    @property
    @abc.abstractmethod
    def declares_precondition(self) -> bool:
        ...

    @abc.abstractmethod
    def bind(self, connection: Any) -> RequestContext:
        ...


@dataclass(frozen=True)
class InternalRequest(RequestData):
    @property
    def declares_precondition(self) -> bool:
        return False

    def bind(self, connection: Any) -> RequestContext:
        return InternalContext(connection=connection)


@dataclass(frozen=True)
class ExternalRequest(RequestData):
    ip: str
    user: Optional[User] = None
    if_match: Optional[IfMatch] = None

    @classmethod
    def from_headers(cls, ip: str, if_match: Optional[str] = None) -> "ExternalRequest":
        return cls(ip=ip, if_match=IfMatch.parse(if_match) if if_match else None)

    @property
    def declares_precondition(self) -> bool:
        return self.if_match is not None

    def with_user(self, user: User) -> "ExternalRequest":
        return dataclasses.replace(self, user=user)

    def with_if_match(self, condition: Optional[IfMatch]) -> "ExternalRequest":
        return dataclasses.replace(self, if_match=condition)

    def bind(self, connection: Any) -> RequestContext:
        return ExternalContext(
            ip=self.ip, user=self.user, if_match=self.if_match, connection=connection
        )


INTERNAL = InternalRequest()


__all__ = [
    "precondition_hash",
    "IfMatch",
    "RequestContext",
    "InternalContext",
    "ExternalContext",
    "RequestData",
    "InternalRequest",
    "ExternalRequest",
    "INTERNAL",
]
