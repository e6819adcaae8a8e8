"""Store for demons, including the position reshuffling of the ranked list."""

from __future__ import annotations

from typing import Optional

from demonlist.domain.models import Demon, Player
from demonlist.store.base import PostgresStore, Row


class DemonStore(PostgresStore[Demon]):
    table = "demons"
    key = "name"
    select = (
        "SELECT t.name, t.position, t.requirement, t.video, "
        "v.id AS verifier_id, v.name AS verifier_name, v.banned AS verifier_banned, "
        "p.id AS publisher_id, p.name AS publisher_name, p.banned AS publisher_banned "
        "FROM demons t "
        "JOIN players v ON v.id = t.verifier "
        "JOIN players p ON p.id = t.publisher"
    )

    def _to_model(self, row: Row) -> Demon:
        return Demon(
            name=row["name"],
            position=row["position"],
            requirement=row["requirement"],
            video=row["video"],
            verifier=Player(
                id=row["verifier_id"], name=row["verifier_name"], banned=row["verifier_banned"]
            ),
            publisher=Player(
                id=row["publisher_id"], name=row["publisher_name"], banned=row["publisher_banned"]
            ),
        )

    def find_by_name(self, name: str) -> Optional[Demon]:
        return self._find("lower(t.name) = lower(%s)", (name,))

    def count(self) -> int:
        row = self._fetchone("SELECT count(*) AS count FROM demons")
        return row["count"] if row else 0

    def insert(
        self,
        name: str,
        position: int,
        requirement: int,
        verifier: Player,
        publisher: Player,
        video: Optional[str] = None,
    ) -> Demon:
        self._insert_returning_key(
            {
                "name": name,
                "position": position,
                "requirement": requirement,
                "video": video,
                "verifier": verifier.id,
                "publisher": publisher.id,
            }
        )
        return Demon(
            name=name,
            position=position,
            requirement=requirement,
            video=video,
            verifier=verifier,
            publisher=publisher,
        )

    def move(self, name: str, old: int, new: int) -> None:
        """
        Move the demon ``name`` from position ``old`` to ``new``, shifting every
        demon in between by one towards the vacated slot.

        The shifted range is negated first so no intermediate state violates the
        uniqueness of positions.
        """
        if old == new:
            return
        if new < old:
            lower, upper, delta = new, old - 1, 1
        else:
            lower, upper, delta = old + 1, new, -1

        self._execute("UPDATE demons SET position = 0 WHERE name = %s", (name,))
        self._execute(
            "UPDATE demons SET position = -position WHERE position BETWEEN %s AND %s",
            (lower, upper),
        )
        self._execute(
            "UPDATE demons SET position = -position + %s WHERE position BETWEEN %s AND %s",
            (delta, -upper, -lower),
        )
        self._execute("UPDATE demons SET position = %s WHERE name = %s", (new, name))

    def update(self, original_name: str, demon: Demon) -> None:
        self._update(
            original_name,
            {
                "name": demon.name,
                "position": demon.position,
                "requirement": demon.requirement,
                "video": demon.video,
                "verifier": demon.verifier.id,
                "publisher": demon.publisher.id,
            },
        )


__all__ = ["DemonStore"]
