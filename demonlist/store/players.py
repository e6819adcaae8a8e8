"""Stores for players and submitters."""

from __future__ import annotations

from typing import Optional

from demonlist.domain.models import Player, Submitter
from demonlist.store.base import PostgresStore, Row


class PlayerStore(PostgresStore[Player]):
    table = "players"
    select = "SELECT t.id, t.name, t.banned FROM players t"

    def _to_model(self, row: Row) -> Player:
        return Player(**row)

    def find_by_name(self, name: str) -> Optional[Player]:
        return self._find("lower(t.name) = lower(%s)", (name,))

    def insert(self, name: str) -> Player:
        key = self._insert_returning_key({"name": name})
        return Player(id=key, name=name)

    def update(self, player: Player) -> None:
        self._update(player.id, {"name": player.name, "banned": player.banned})


class SubmitterStore(PostgresStore[Submitter]):
    table = "submitters"
    select = "SELECT t.id, t.ip, t.banned FROM submitters t"

    def _to_model(self, row: Row) -> Submitter:
        return Submitter(id=row["id"], ip=str(row["ip"]), banned=row["banned"])

    def find_by_ip(self, ip: str) -> Optional[Submitter]:
        return self._find("t.ip = %s", (ip,))

    def insert(self, ip: str) -> Submitter:
        key = self._insert_returning_key({"ip": ip})
        return Submitter(id=key, ip=ip)


__all__ = ["PlayerStore", "SubmitterStore"]
