"""
Submission reconciliation.

Decides whether a submission becomes a new record, and what happens to a record
it would duplicate. Checks run in a fixed order: submitter ban, player and demon
resolution, video validation, player ban, list position, progress and finally
duplicate detection. A banned submitter therefore never reaches video
validation, and validation errors take precedence over duplicate errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from demonlist.commands.abstract import Command
from demonlist.commands.lookup import ResolveSubmissionData
from demonlist.domain.models import Record, RecordStatus, Submission, Submitter
from demonlist.errors import (
    BannedFromSubmissions,
    InvalidProgress,
    Non100Extended,
    PlayerBanned,
    SubmissionExists,
    SubmitLegacy,
)
from demonlist.utils.logging import get_logger

if TYPE_CHECKING:
    from demonlist.worker_pool import WorkerSession

log = get_logger(__name__)


@dataclass(frozen=True)
class ProcessSubmission(Command[Optional[Record]]):
    """
    Reconcile ``submission`` against the stored records.

    Returns
    -------
    Record or None
        The created record, or ``None`` for a ``verify_only`` submission that
        passed every check.
    """

    submission: Submission
    submitter: Submitter

    def handle(self, session: "WorkerSession") -> Optional[Record]:
        submission = self.submission
        settings = session.settings

        if self.submitter.banned:
            raise BannedFromSubmissions()

        player, demon = session.dispatch(
            ResolveSubmissionData(submission.player, submission.demon)
        )

        video = None
        if submission.video is not None:
            video = session.video.validate(submission.video)

        if player.banned:
            raise PlayerBanned()

        if demon.position > settings.extended_list_size:
            raise SubmitLegacy()

        if demon.position > settings.list_size and submission.progress != 100:
            raise Non100Extended()

        if submission.progress > 100 or submission.progress < demon.requirement:
            raise InvalidProgress(demon.requirement)

        records = session.stores.records

        if submission.verify_only:
            self._check_duplicates(records, player.id, demon.name, video)
            log.debug("Submission passed verification", extra={"submitter": self.submitter.id})
            return None

        with session.transaction():
            # Concurrent submissions of the same record wait here, so the
            # duplicate lookup below sees whatever the other one inserted
            records.lock_submissions(player.id, demon.name, video)
            existing = self._check_duplicates(records, player.id, demon.name, video)

            # Unreviewed duplicates are replaced, approved ones stay for audit
            if existing is not None and existing.status == RecordStatus.SUBMITTED:
                log.info(
                    f"Replacing unreviewed record {existing.id}",
                    extra={"record": existing.id},
                )
                records.delete_by_key(existing.id)

            record = records.insert(
                progress=submission.progress,
                video=video,
                player=player,
                submitter=self.submitter.id,
                demon=demon.embedded(),
                status=RecordStatus.SUBMITTED,
            )

        log.info(
            f"Submitted record {record.id}: {player.name} on {demon.name} ({record.progress}%)",
            extra={"record": record.id, "submitter": self.submitter.id},
        )
        return record

    def _check_duplicates(
        self, records: Any, player_id: int, demon_name: str, video: Optional[str]
    ) -> Optional[Record]:
        """The record this submission improves on, if any; raises if it improves nothing."""
        existing = records.find_existing(player_id, demon_name, video)
        if existing is None:
            return None
        if existing.status == RecordStatus.REJECTED or existing.progress >= self.submission.progress:
            log.info(
                f"Submission duplicates record {existing.id} ({existing.status.value})",
                extra={"record": existing.id, "submitter": self.submitter.id},
            )
            raise SubmissionExists(existing.status, existing.id)
        return existing


__all__ = ["ProcessSubmission"]
