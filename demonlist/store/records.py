"""Store for records."""

from __future__ import annotations

from typing import Optional

from demonlist.domain.models import EmbeddedDemon, Player, Record, RecordStatus
from demonlist.store.base import PostgresStore, Row


class RecordStore(PostgresStore[Record]):
    table = "records"
    select = (
        "SELECT t.id, t.progress, t.video, t.status, t.submitter, "
        "pl.id AS player_id, pl.name AS player_name, pl.banned AS player_banned, "
        "d.name AS demon_name, d.position AS demon_position "
        "FROM records t "
        "JOIN players pl ON pl.id = t.player "
        "JOIN demons d ON d.name = t.demon"
    )

    def _to_model(self, row: Row) -> Record:
        return Record(
            id=row["id"],
            progress=row["progress"],
            video=row["video"],
            status=RecordStatus(row["status"]),
            submitter=row["submitter"],
            player=Player(id=row["player_id"], name=row["player_name"], banned=row["player_banned"]),
            demon=EmbeddedDemon(name=row["demon_name"], position=row["demon_position"]),
        )

    def find_existing(
        self, player_id: int, demon_name: str, video: Optional[str] = None
    ) -> Optional[Record]:
        """
        The record a new submission would duplicate.

        Matches records of the same player on the same demon and, if a video is
        given, any record using that video. Exact video matches win, then the
        highest progress.
        """
        if video is None:
            query = self._select_where("t.player = %s AND t.demon = %s ORDER BY t.progress DESC LIMIT 1")
            row = self._fetchone(query, (player_id, demon_name))
        else:
            query = self._select_where(
                "(t.player = %s AND t.demon = %s) OR t.video = %s "
                "ORDER BY (t.video IS NOT DISTINCT FROM %s) DESC, t.progress DESC LIMIT 1"
            )
            row = self._fetchone(query, (player_id, demon_name, video, video))
        return self._to_model(row) if row is not None else None

    def lock_submissions(self, player_id: int, demon_name: str, video: Optional[str] = None) -> None:
        """
        Serialize submissions for the same player and demon (and video) until the
        surrounding transaction ends.
        """
        self._execute("SELECT pg_advisory_xact_lock(%s::int, hashtext(%s))", (player_id, demon_name))
        if video is not None:
            self._execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (video,))

    def insert(
        self,
        progress: int,
        video: Optional[str],
        player: Player,
        submitter: int,
        demon: EmbeddedDemon,
        status: RecordStatus = RecordStatus.SUBMITTED,
    ) -> Record:
        key = self._insert_returning_key(
            {
                "progress": progress,
                "video": video,
                "status": status.value,
                "player": player.id,
                "submitter": submitter,
                "demon": demon.name,
            }
        )
        return Record(
            id=key,
            progress=progress,
            video=video,
            status=status,
            player=player,
            submitter=submitter,
            demon=demon,
        )

    def update(self, record: Record) -> None:
        self._update(
            record.id,
            {
                "progress": record.progress,
                "video": record.video,
                "status": record.status.value,
                "player": record.player.id,
                "demon": record.demon.name,
            },
        )


__all__ = ["RecordStore"]
