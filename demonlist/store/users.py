"""Store for user accounts."""

from __future__ import annotations

from typing import Optional

from demonlist.domain.models import User
from demonlist.store.base import PostgresStore, Row


class UserStore(PostgresStore[User]):
    table = "users"
    select = (
        "SELECT t.id, t.name, t.permissions, t.display_name, t.youtube_channel, t.password_hash "
        "FROM users t"
    )

    def _to_model(self, row: Row) -> User:
        return User(**row)

    def find_by_name(self, name: str) -> Optional[User]:
        return self._find("t.name = %s", (name,))

    def insert(self, name: str, password_hash: str) -> User:
        key = self._insert_returning_key({"name": name, "password_hash": password_hash})
        return User(id=key, name=name, password_hash=password_hash)

    def update(self, user: User) -> None:
        self._update(
            user.id,
            {
                "name": user.name,
                "permissions": user.permissions,
                "display_name": user.display_name,
                "youtube_channel": user.youtube_channel,
                "password_hash": user.password_hash,
            },
        )


__all__ = ["UserStore"]
