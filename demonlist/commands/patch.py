"""
Generic patch commands.

A patch runs in three steps:

1. Authorization: every present field's required permissions are checked, then
   the caller's If-Match precondition against the target's pre-patch hash.
2. Validation: the payload validates its fields against the current store state
   and the result is applied to an in-memory copy of the target. Any failure
   aborts the patch before anything is written.
3. Persistence: the payload writes the copy inside a single transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel

from demonlist.commands.abstract import Command
from demonlist.context import INTERNAL, RequestContext, RequestData
from demonlist.domain.models import User
from demonlist.patches.base import PatchPayload
from demonlist.patches.user import PatchMe
from demonlist.utils.logging import get_logger

if TYPE_CHECKING:
    from demonlist.worker_pool import WorkerSession

E = TypeVar("E", bound=BaseModel)

log = get_logger(__name__)


def _validate_and_persist(
    target: E, patch: PatchPayload, ctx: RequestContext, session: "WorkerSession"
) -> E:
    updates = patch.validate_fields(target, ctx, session)
    updated = patch.apply(target, updates)
    return patch.persist(target, updated, session)


@dataclass(frozen=True)
class Patch(Command[E]):
    """
    Apply ``patch`` to ``target`` on behalf of ``request``.

    Parameters
    ----------
    request : RequestData
        The caller; bound to the worker's connection when the command runs.
    target : BaseModel
        The entity as the caller last read it.
    patch : PatchPayload
        The fields to change.
    """

    request: RequestData
    target: E
    patch: PatchPayload

    def handle(self, session: "WorkerSession") -> E:
        ctx = self.request.bind(session.connection)
        # Fields are authorized one by one: holding any permission of one field's
        # group must not unlock the fields of another group.
        for required in self.patch.permission_groups():
            ctx.check_permissions(required)
        ctx.check_if_match(self.target)

        kind = type(self.target).__name__
        log.info(f"[PATCH] {kind} with {self.patch}", extra={"model": kind})
        return _validate_and_persist(self.target, self.patch, ctx, session)


@dataclass(frozen=True)
class PatchCurrentUser(Command[User]):
    """
    A user's patch of their own account.

    The precondition is only checked when the request declared one, since the
    acting user is the freshly authenticated target itself.
    """

    user: User
    patch: PatchMe
    request: RequestData = field(default=INTERNAL)

    def handle(self, session: "WorkerSession") -> User:
        ctx = self.request.bind(session.connection)
        if self.request.declares_precondition:
            ctx.check_if_match(self.user)

        log.info(
            f"[PATCH] user {self.user.name} (self) with {self.patch}",
            extra={"user": self.user.id},
        )
        return _validate_and_persist(self.user, self.patch, ctx, session)


__all__ = ["Patch", "PatchCurrentUser"]
