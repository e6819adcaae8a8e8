"""Listing command running a keyset pagination against the entity stores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from demonlist.commands.abstract import Command
from demonlist.context import RequestData
from demonlist.pagination import Page, Pagination, paginate
from demonlist.utils.logging import get_logger

if TYPE_CHECKING:
    from demonlist.worker_pool import WorkerSession

log = get_logger(__name__)


@dataclass(frozen=True)
class Paginate(Command[Page[Any]]):
    request: RequestData
    pagination: Pagination

    def handle(self, session: "WorkerSession") -> Page[Any]:
        ctx = self.request.bind(session.connection)
        ctx.check_permissions(self.pagination.required_permissions)

        pagination = self.pagination.restrict(ctx)
        log.debug(
            f"[PAGINATE] {pagination.kind}: {pagination.query_string()}",
            extra={"kind": pagination.kind},
        )
        return paginate(pagination, session.stores.keyset(pagination))


__all__ = ["Paginate"]
