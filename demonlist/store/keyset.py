"""Postgres implementation of the keyset queries behind pagination."""

from __future__ import annotations

from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

from psycopg import sql

from demonlist.pagination import Pagination
from demonlist.store.base import PostgresStore

M = TypeVar("M")

# Filter field -> SQL condition, per pagination kind
FILTER_CONDITIONS: Dict[str, Dict[str, str]] = {
    "players": {
        "name": "lower(t.name) = lower(%s)",
        "banned": "t.banned = %s",
    },
    "demons": {
        "verifier": "t.verifier = %s",
        "publisher": "t.publisher = %s",
    },
    "records": {
        "status": "t.status = %s",
        "player": "t.player = %s",
        "demon": "t.demon = %s",
    },
    "users": {
        "name": "t.name = %s",
        "has_permissions": "(t.permissions & %s) <> 0",
    },
}


class PostgresKeysetSource(Generic[M]):
    def __init__(self, store: PostgresStore[M], pagination: Pagination) -> None:
        self._store = store
        self._key = pagination.key
        conditions = FILTER_CONDITIONS[pagination.kind]
        self._filters: List[Tuple[str, Any]] = [
            (conditions[name], value) for name, value in sorted(pagination.filters().items())
        ]

    def _query(
        self, extra: Sequence[Tuple[str, Any]], descending: bool, limit: int
    ) -> Tuple[sql.Composed, List[Any]]:
        clauses = [*self._filters, *extra]
        where = " AND ".join(condition for condition, _ in clauses) or "TRUE"
        order = "DESC" if descending else "ASC"
        query = sql.SQL("{} WHERE {} ORDER BY {} {} LIMIT {}").format(
            sql.SQL(self._store.select),
            sql.SQL(where),
            sql.SQL("t.") + sql.Identifier(self._key),
            sql.SQL(order),
            sql.Literal(limit),
        )
        return query, [value for _, value in clauses]

    def _boundary(self, extra: Sequence[Tuple[str, Any]], descending: bool) -> Optional[int]:
        query, params = self._query(extra, descending, 1)
        row = self._store._fetchone(query, params)
        return row[self._key] if row is not None else None

    def first_key(self) -> Optional[int]:
        return self._boundary((), descending=False)

    def last_key(self) -> Optional[int]:
        return self._boundary((), descending=True)

    def key_after(self, key: int) -> Optional[int]:
        return self._boundary([(f"t.{self._key} > %s", key)], descending=False)

    def key_before(self, key: int) -> Optional[int]:
        return self._boundary([(f"t.{self._key} < %s", key)], descending=True)

    def page(self, after: Optional[int], before: Optional[int], limit: int) -> List[M]:
        extra: List[Tuple[str, Any]] = []
        if after is not None:
            extra.append((f"t.{self._key} > %s", after))
        if before is not None:
            extra.append((f"t.{self._key} < %s", before))
        # Only an upper bound: the window ends right before it
        descending = after is None and before is not None
        query, params = self._query(extra, descending, limit)
        rows = [self._store._to_model(row) for row in self._store._fetchall(query, params)]
        return list(reversed(rows)) if descending else rows


__all__ = ["PostgresKeysetSource", "FILTER_CONDITIONS"]
