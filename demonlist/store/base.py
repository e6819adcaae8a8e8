"""
Base class for the Postgres entity stores.

A store is bound to one connection (the connection the executing worker holds)
and maps rows to domain models. Stores never manage transactions themselves;
callers that need atomicity wrap their calls in ``connection.transaction()``.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Generic, List, Optional, Sequence, TypeVar

from psycopg import Connection, sql
from psycopg.rows import dict_row

M = TypeVar("M")

Row = Dict[str, Any]


class PostgresStore(Generic[M]):
    table: ClassVar[str]
    key: ClassVar[str] = "id"
    # SELECT ... FROM ... producing the columns ``_to_model`` expects; must alias
    # ``table`` as ``t``.
    select: ClassVar[str]

    def __init__(self, connection: Connection) -> None:
        self._conn = connection

    # Query helpers

    def _fetchone(self, query: Any, params: Sequence[Any] = ()) -> Optional[Row]:
        with self._conn.cursor(row_factory=dict_row) as cur:
            cur.execute(query, params)
            return cur.fetchone()

    def _fetchall(self, query: Any, params: Sequence[Any] = ()) -> List[Row]:
        with self._conn.cursor(row_factory=dict_row) as cur:
            cur.execute(query, params)
            return cur.fetchall()

    def _execute(self, query: Any, params: Sequence[Any] = ()) -> int:
        with self._conn.cursor() as cur:
            cur.execute(query, params)
            return cur.rowcount

    def _select_where(self, condition: str) -> sql.Composed:
        return sql.SQL("{} WHERE {}").format(sql.SQL(self.select), sql.SQL(condition))

    def _find(self, condition: str, params: Sequence[Any]) -> Optional[M]:
        row = self._fetchone(self._select_where(condition), params)
        return self._to_model(row) if row is not None else None

    def _to_model(self, row: Row) -> M:  # pragma: no cover - interface only
        raise NotImplementedError

    # Common operations

    def find_by_key(self, key: Any) -> Optional[M]:
        return self._find(f"t.{self.key} = %s", (key,))

    def delete_by_key(self, key: Any) -> bool:
        query = sql.SQL("DELETE FROM {} WHERE {} = %s").format(
            sql.Identifier(self.table), sql.Identifier(self.key)
        )
        return self._execute(query, (key,)) > 0

    def _insert_returning_key(self, values: Dict[str, Any]) -> Any:
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING {}").format(
            sql.Identifier(self.table),
            sql.SQL(", ").join(sql.Identifier(column) for column in values),
            sql.SQL(", ").join(sql.Placeholder() for _ in values),
            sql.Identifier(self.key),
        )
        row = self._fetchone(query, list(values.values()))
        assert row is not None
        return row[self.key]

    def _update(self, key: Any, values: Dict[str, Any]) -> int:
        query = sql.SQL("UPDATE {} SET {} WHERE {} = %s").format(
            sql.Identifier(self.table),
            sql.SQL(", ").join(
                sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder())
                for column in values
            ),
            sql.Identifier(self.key),
        )
        return self._execute(query, [*values.values(), key])


__all__ = ["PostgresStore", "Row"]
