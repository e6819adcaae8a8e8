"""
Lookup and lifecycle commands for single entities.

Players and submitters are created on first lookup; every other missing entity
is reported as :class:`~demonlist.errors.ModelNotFound`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Tuple

from demonlist.commands.abstract import Command
from demonlist.context import RequestData
from demonlist.domain.models import Demon, Player, Record, Submitter, User
from demonlist.errors import ModelNotFound
from demonlist.permissions import ADMINISTRATION, LIST_MODERATION
from demonlist.utils.logging import get_logger

if TYPE_CHECKING:
    from demonlist.worker_pool import WorkerSession

log = get_logger(__name__)


@dataclass(frozen=True)
class SubmitterByIp(Command[Submitter]):
    """The submitter behind ``ip``, created if it was never seen before."""

    ip: str

    def handle(self, session: "WorkerSession") -> Submitter:
        log.debug("Retrieving submitter by IP, creating if not exists")
        submitters = session.stores.submitters
        submitter = submitters.find_by_ip(self.ip)
        if submitter is None:
            submitter = submitters.insert(self.ip)
            log.info("Registered new submitter", extra={"submitter": submitter.id})
        return submitter


@dataclass(frozen=True)
class PlayerByName(Command[Player]):
    """The player called ``name``, created if no such player exists."""

    name: str

    def handle(self, session: "WorkerSession") -> Player:
        log.debug(f"Retrieving player '{self.name}', creating if not exists")
        players = session.stores.players
        player = players.find_by_name(self.name)
        if player is None:
            player = players.insert(self.name)
            log.info(f"Created player '{player.name}'", extra={"player": player.id})
        return player


@dataclass(frozen=True)
class DemonByName(Command[Demon]):
    name: str

    def handle(self, session: "WorkerSession") -> Demon:
        log.debug(f"Retrieving demon '{self.name}'")
        demon = session.stores.demons.find_by_name(self.name)
        if demon is None:
            raise ModelNotFound("Demon", self.name)
        return demon


@dataclass(frozen=True)
class ResolveSubmissionData(Command[Tuple[Player, Demon]]):
    """Resolve the player and demon named by a submission, in that order."""

    player: str
    demon: str

    def handle(self, session: "WorkerSession") -> Tuple[Player, Demon]:
        player = session.dispatch(PlayerByName(self.player))
        demon = session.dispatch(DemonByName(self.demon))
        return player, demon


@dataclass(frozen=True)
class RecordById(Command[Record]):
    id: int

    def handle(self, session: "WorkerSession") -> Record:
        record = session.stores.records.find_by_key(self.id)
        if record is None:
            raise ModelNotFound("Record", self.id)
        return record


@dataclass(frozen=True)
class DeleteRecordById(Command[None]):
    request: RequestData
    id: int

    def handle(self, session: "WorkerSession") -> None:
        ctx = self.request.bind(session.connection)
        ctx.check_permissions(LIST_MODERATION)
        log.info(f"Deleting record with ID {self.id}", extra={"record": self.id})
        if not session.stores.records.delete_by_key(self.id):
            raise ModelNotFound("Record", self.id)


@dataclass(frozen=True)
class UserById(Command[User]):
    id: int

    def handle(self, session: "WorkerSession") -> User:
        user = session.stores.users.find_by_key(self.id)
        if user is None:
            raise ModelNotFound("User", self.id)
        return user


@dataclass(frozen=True)
class UserByName(Command[User]):
    name: str

    def handle(self, session: "WorkerSession") -> User:
        user = session.stores.users.find_by_name(self.name)
        if user is None:
            raise ModelNotFound("User", self.name)
        return user


@dataclass(frozen=True)
class DeleteUserById(Command[None]):
    request: RequestData
    id: int

    def handle(self, session: "WorkerSession") -> None:
        ctx = self.request.bind(session.connection)
        ctx.check_permissions(ADMINISTRATION)
        log.info(f"Deleting user with ID {self.id}", extra={"user": self.id})
        if not session.stores.users.delete_by_key(self.id):
            raise ModelNotFound("User", self.id)


__all__ = [
    "SubmitterByIp",
    "PlayerByName",
    "DemonByName",
    "ResolveSubmissionData",
    "RecordById",
    "DeleteRecordById",
    "UserById",
    "UserByName",
    "DeleteUserById",
]
