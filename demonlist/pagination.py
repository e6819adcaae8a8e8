"""
Keyset pagination.

A pagination object is both the filter and the window of a listing request: the
filter fields select the result set, ``after``/``before`` (exclusive bounds on the
sort key) and ``limit`` select the window. Navigation links are themselves
pagination objects, rendered as url-encoded query strings:

- ``first``: no bounds (the window starting at the smallest key)
- ``last``: ``before`` one past the largest key (the window ending at it)
- ``next``: ``after`` the last key of the current window, if more rows follow
- ``prev``: ``before`` the first key of the current window, if rows precede it

Empty result sets produce no links at all.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Generic, List, Optional, Protocol, TypeVar
from urllib.parse import urlencode

from pydantic import BaseModel, Field

from demonlist.context import RequestContext
from demonlist.domain.models import RecordStatus
from demonlist.permissions import USER_MODERATION, PermissionsSet

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

DEFAULT_LIMIT = 50
MAX_LIMIT = 100

_WINDOW_FIELDS = frozenset({"limit", "after", "before"})


class Pagination(BaseModel):
    """Base class of all listing requests."""

    kind: ClassVar[str] = ""
    key: ClassVar[str] = "id"
    required_permissions: ClassVar[PermissionsSet] = frozenset()

    limit: int = Field(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)
    after: Optional[int] = None
    before: Optional[int] = None

    model_config = {"frozen": True, "extra": "forbid"}

    def filters(self) -> Dict[str, Any]:
        """The filter fields that are set, by name."""
        return {
            name: value
            for name, value in self.model_dump(mode="json", exclude_none=True).items()
            if name not in _WINDOW_FIELDS
        }

    def restrict(self, ctx: RequestContext) -> "Pagination":
        """Narrow the request to what the caller may see."""
        return self

    def window(self, after: Optional[int] = None, before: Optional[int] = None) -> "Pagination":
        return self.model_copy(update={"after": after, "before": before})

    def key_of(self, entity: Any) -> int:
        return getattr(entity, self.key)

    def query_string(self) -> str:
        values = self.model_dump(mode="json", exclude_none=True)
        return urlencode(sorted(values.items()))


class PlayerPagination(Pagination):
    kind: ClassVar[str] = "players"

    name: Optional[str] = None
    banned: Optional[bool] = None


class DemonPagination(Pagination):
    kind: ClassVar[str] = "demons"
    key: ClassVar[str] = "position"

    verifier: Optional[int] = None
    publisher: Optional[int] = None


class RecordPagination(Pagination):
    kind: ClassVar[str] = "records"

    status: Optional[RecordStatus] = None
    player: Optional[int] = None
    demon: Optional[str] = None

    def restrict(self, ctx: RequestContext) -> "Pagination":
        if ctx.is_list_moderator():
            return self
        return self.model_copy(update={"status": RecordStatus.APPROVED})


class UserPagination(Pagination):
    kind: ClassVar[str] = "users"
    required_permissions: ClassVar[PermissionsSet] = USER_MODERATION

    name: Optional[str] = None
    has_permissions: Optional[int] = None


class KeysetSource(Protocol[T_co]):
    """The five keyset queries the engine runs against one filtered result set."""

    def first_key(self) -> Optional[int]:
        ...

    def last_key(self) -> Optional[int]:
        ...

    def key_after(self, key: int) -> Optional[int]:
        ...

    def key_before(self, key: int) -> Optional[int]:
        ...

    def page(self, after: Optional[int], before: Optional[int], limit: int) -> List[T_co]:
        """Rows inside the window, ascending by key."""
        ...


@dataclass(frozen=True)
class Links:
    """Navigation descriptor; each link is an encoded query string or None."""

    first: Optional[str] = None
    prev: Optional[str] = None
    next: Optional[str] = None
    last: Optional[str] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {"first": self.first, "prev": self.prev, "next": self.next, "last": self.last}

    def header(self) -> str:
        """RFC5988-style rendering, absent links omitted."""
        return ",".join(
            f"<{query}>; rel={rel}" for rel, query in self.as_dict().items() if query is not None
        )


@dataclass(frozen=True)
class Page(Generic[T]):
    items: List[T] = field(default_factory=list)
    links: Links = field(default_factory=Links)


def paginate(pagination: Pagination, source: KeysetSource[T]) -> Page[T]:
    items = source.page(pagination.after, pagination.before, pagination.limit)

    first_key = source.first_key()
    last_key = source.last_key()
    if first_key is None or last_key is None:
        return Page(items=items, links=Links())

    if items:
        lower: Optional[int] = pagination.key_of(items[0])
        upper: Optional[int] = pagination.key_of(items[-1])
    else:
        # Empty window inside a non-empty set: navigate relative to its bounds
        lower = pagination.after + 1 if pagination.after is not None else pagination.before
        upper = pagination.before - 1 if pagination.before is not None else pagination.after

    next_link = prev_link = None
    if upper is not None and source.key_after(upper) is not None:
        next_link = pagination.window(after=upper).query_string()
    if lower is not None and source.key_before(lower) is not None:
        prev_link = pagination.window(before=lower).query_string()

    links = Links(
        first=pagination.window().query_string(),
        prev=prev_link,
        next=next_link,
        last=pagination.window(before=last_key + 1).query_string(),
    )
    return Page(items=items, links=links)


__all__ = [
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "Pagination",
    "PlayerPagination",
    "DemonPagination",
    "RecordPagination",
    "UserPagination",
    "KeysetSource",
    "Links",
    "Page",
    "paginate",
]
