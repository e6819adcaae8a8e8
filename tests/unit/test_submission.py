from __future__ import annotations

import pytest

from demonlist.commands import ProcessSubmission, SubmitterByIp
from demonlist.domain.models import RecordStatus, Submission
from demonlist.errors import (
    BannedFromSubmissions,
    InvalidProgress,
    InvalidVideo,
    ModelNotFound,
    Non100Extended,
    PlayerBanned,
    SubmissionExists,
    SubmitLegacy,
)

SUBMITTER_IP = "192.0.2.10"
VIDEO = "https://www.youtube.com/watch?v=abcdef"
CANONICAL_VIDEO = "https://youtube.com/watch?v=abcdef"


@pytest.fixture
def submitter(session):
    return session.dispatch(SubmitterByIp(SUBMITTER_IP))


@pytest.fixture
def player(stores):
    return stores.players.insert("Zoink")


def _submit(session, submitter, progress=80, player="Zoink", demon="Bloodbath", **kwargs):
    submission = Submission(progress=progress, player=player, demon=demon, **kwargs)
    return session.dispatch(ProcessSubmission(submission, submitter))


def _existing(stores, player, demon, progress, status, video=None):
    record = stores.records.insert(progress, video, player, 1, demon.embedded())
    if status != RecordStatus.SUBMITTED:
        record = record.model_copy(update={"status": status})
        stores.records.update(record)
    return record


def test_submitter_is_created_once(session, stores) -> None:
    first = session.dispatch(SubmitterByIp(SUBMITTER_IP))
    second = session.dispatch(SubmitterByIp(SUBMITTER_IP))

    assert first == second
    assert len(stores.submitters.all()) == 1


def test_new_submission_creates_a_submitted_record(session, stores, connection, submitter, list_demons) -> None:
    record = _submit(session, submitter, progress=75, video=VIDEO)

    assert record is not None
    assert record.status == RecordStatus.SUBMITTED
    assert record.progress == 75
    assert record.video == CANONICAL_VIDEO
    assert record.submitter == submitter.id
    assert record.demon == list_demons[0].embedded()
    assert stores.records.find_by_key(record.id) == record
    assert connection.transactions == 1


def test_unknown_player_is_created(session, stores, submitter, list_demons) -> None:
    record = _submit(session, submitter, player="Brand New")

    assert stores.players.find_by_name("Brand New") == record.player


def test_unknown_demon_is_rejected(session, submitter, list_demons) -> None:
    with pytest.raises(ModelNotFound) as excinfo:
        _submit(session, submitter, demon="Does Not Exist")

    assert excinfo.value.details() == {"model": "Demon", "identified_by": "Does Not Exist"}


def test_banned_submitter_is_rejected_before_anything_else(session, stores, video, list_demons) -> None:
    banned = stores.submitters.insert("192.0.2.66", banned=True)

    with pytest.raises(BannedFromSubmissions):
        _submit(session, banned, player="Never Created", demon="Does Not Exist", video="not a url")

    assert video.calls == []
    assert stores.players.find_by_name("Never Created") is None


def test_video_errors_propagate(session, submitter, list_demons) -> None:
    with pytest.raises(InvalidVideo):
        _submit(session, submitter, video="https://example.com/watch?v=abcdef")


def test_banned_player_is_rejected(session, stores, submitter, player, list_demons) -> None:
    stores.players.update(player.model_copy(update={"banned": True}))

    with pytest.raises(PlayerBanned):
        _submit(session, submitter)


def test_video_is_validated_before_the_player_ban(session, stores, submitter, player, list_demons) -> None:
    stores.players.update(player.model_copy(update={"banned": True}))

    with pytest.raises(InvalidVideo):
        _submit(session, submitter, video="ftp://youtube.com/x")


def test_legacy_demons_take_no_records(session, submitter, list_demons) -> None:
    with pytest.raises(SubmitLegacy):
        _submit(session, submitter, progress=100, demon="Legacy Demon")


def test_extended_demons_need_full_completions(session, submitter, list_demons) -> None:
    with pytest.raises(Non100Extended):
        _submit(session, submitter, progress=99, demon="Extended Demon")

    record = _submit(session, submitter, progress=100, demon="Extended Demon")
    assert record.progress == 100


@pytest.mark.parametrize("progress", [59, 101, -1])
def test_progress_outside_requirement(session, submitter, list_demons, progress: int) -> None:
    with pytest.raises(InvalidProgress) as excinfo:
        _submit(session, submitter, progress=progress)

    assert excinfo.value.requirement == 60


def test_verify_only_persists_nothing(session, stores, connection, submitter, list_demons) -> None:
    assert _submit(session, submitter, verify_only=True) is None
    assert stores.records.all() == []
    assert connection.transactions == 0


@pytest.mark.parametrize(
    "status, progress",
    [
        (RecordStatus.REJECTED, 10),
        (RecordStatus.APPROVED, 80),
        (RecordStatus.APPROVED, 95),
        (RecordStatus.SUBMITTED, 80),
    ],
)
def test_duplicates_without_improvement(session, stores, submitter, player, list_demons, status, progress) -> None:
    existing = _existing(stores, player, list_demons[0], progress, status)

    with pytest.raises(SubmissionExists) as excinfo:
        _submit(session, submitter, progress=80)

    assert excinfo.value.record_status == status
    assert excinfo.value.existing == existing.id
    assert stores.records.all() == [existing]


def test_unreviewed_duplicate_is_replaced(session, stores, connection, submitter, player, list_demons) -> None:
    existing = _existing(stores, player, list_demons[0], 70, RecordStatus.SUBMITTED)

    record = _submit(session, submitter, progress=90)

    assert stores.records.find_by_key(existing.id) is None
    assert stores.records.all() == [record]
    assert connection.transactions == 1


def test_approved_duplicate_is_kept(session, stores, submitter, player, list_demons) -> None:
    existing = _existing(stores, player, list_demons[0], 70, RecordStatus.APPROVED)

    record = _submit(session, submitter, progress=90)

    assert stores.records.find_by_key(existing.id) == existing
    assert record.status == RecordStatus.SUBMITTED
    assert len(stores.records.all()) == 2


def test_verify_only_leaves_an_improvable_duplicate_alone(session, stores, submitter, player, list_demons) -> None:
    existing = _existing(stores, player, list_demons[0], 70, RecordStatus.SUBMITTED)

    assert _submit(session, submitter, progress=90, verify_only=True) is None
    assert stores.records.all() == [existing]


def test_duplicate_video_of_another_player(session, stores, submitter, list_demons) -> None:
    other = stores.players.insert("Someone Else")
    existing = _existing(
        stores, other, list_demons[0], 100, RecordStatus.APPROVED, video=CANONICAL_VIDEO
    )

    with pytest.raises(SubmissionExists) as excinfo:
        _submit(session, submitter, progress=90, video=VIDEO)

    assert excinfo.value.existing == existing.id


def test_validation_errors_win_over_duplicates(session, stores, submitter, player, list_demons) -> None:
    _existing(stores, player, list_demons[0], 100, RecordStatus.REJECTED)

    with pytest.raises(InvalidProgress):
        _submit(session, submitter, progress=10)


def test_duplicate_lookup_is_serialized(session, stores, connection, submitter, list_demons) -> None:
    record = _submit(session, submitter, progress=80, video=VIDEO)

    assert stores.records.locks == [(record.player.id, "Bloodbath", CANONICAL_VIDEO)]
    assert connection.transactions == 1


def test_verify_only_takes_no_submission_lock(session, stores, submitter, list_demons) -> None:
    _submit(session, submitter, verify_only=True, video=VIDEO)

    assert stores.records.locks == []
