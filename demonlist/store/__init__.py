"""
Entity stores for the demonlist core.

Every store is bound to the connection of the worker executing the current
command. :func:`postgres_stores` is the default store factory handed to the
worker pool.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from psycopg import Connection

from demonlist.pagination import KeysetSource, Pagination
from demonlist.store.demons import DemonStore
from demonlist.store.keyset import PostgresKeysetSource
from demonlist.store.players import PlayerStore, SubmitterStore
from demonlist.store.records import RecordStore
from demonlist.store.users import UserStore


@dataclass(frozen=True)
class Stores:
    players: PlayerStore
    demons: DemonStore
    submitters: SubmitterStore
    records: RecordStore
    users: UserStore

    def keyset(self, pagination: Pagination) -> KeysetSource[Any]:
        store = {
            "players": self.players,
            "demons": self.demons,
            "records": self.records,
            "users": self.users,
        }[pagination.kind]
        return PostgresKeysetSource(store, pagination)


def postgres_stores(connection: Connection) -> Stores:
    return Stores(
        players=PlayerStore(connection),
        demons=DemonStore(connection),
        submitters=SubmitterStore(connection),
        records=RecordStore(connection),
        users=UserStore(connection),
    )


__all__ = [
    "Stores",
    "postgres_stores",
    "PlayerStore",
    "DemonStore",
    "SubmitterStore",
    "RecordStore",
    "UserStore",
    "PostgresKeysetSource",
]
