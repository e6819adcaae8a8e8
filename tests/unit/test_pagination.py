from __future__ import annotations

from typing import List

import pytest
from pydantic import ValidationError

from demonlist.commands import Paginate
from demonlist.context import INTERNAL, ExternalRequest
from demonlist.domain.models import Player, RecordStatus
from demonlist.errors import MissingPermissions, Unauthorized
from demonlist.pagination import (
    DemonPagination,
    Links,
    PlayerPagination,
    RecordPagination,
    UserPagination,
    paginate,
)
from demonlist.permissions import Permission

from tests.fakes import MemoryKeysetSource

PAGE_SIZE = 3
PLAYER_COUNT = 10
CALLER_IP = "203.0.113.9"


def _players(count: int = PLAYER_COUNT) -> List[Player]:
    return [Player(id=i, name=f"player{i}") for i in range(1, count + 1)]


def _ids(page) -> List[int]:
    return [item.id for item in page.items]


def test_first_page() -> None:
    page = paginate(PlayerPagination(limit=PAGE_SIZE), MemoryKeysetSource(_players()))

    assert _ids(page) == [1, 2, 3]
    assert page.links == Links(
        first="limit=3",
        prev=None,
        next="after=3&limit=3",
        last="before=11&limit=3",
    )


def test_middle_page() -> None:
    page = paginate(PlayerPagination(limit=PAGE_SIZE, after=3), MemoryKeysetSource(_players()))

    assert _ids(page) == [4, 5, 6]
    assert page.links.prev == "before=4&limit=3"
    assert page.links.next == "after=6&limit=3"


def test_last_page_counts_back_from_the_upper_bound() -> None:
    page = paginate(PlayerPagination(limit=PAGE_SIZE, before=11), MemoryKeysetSource(_players()))

    assert _ids(page) == [8, 9, 10]
    assert page.links.next is None
    assert page.links.prev == "before=8&limit=3"


def test_keys_with_gaps() -> None:
    players = [p for p in _players() if p.id % 2 == 0]

    page = paginate(PlayerPagination(limit=2, after=2), MemoryKeysetSource(players))

    assert _ids(page) == [4, 6]
    assert page.links.next == "after=6&limit=2"
    assert page.links.last == "before=11&limit=2"


def test_empty_result_set_has_no_links() -> None:
    page = paginate(PlayerPagination(limit=PAGE_SIZE), MemoryKeysetSource([]))

    assert page.items == []
    assert page.links == Links()
    assert page.links.header() == ""


def test_window_past_the_end_links_back() -> None:
    page = paginate(PlayerPagination(limit=PAGE_SIZE, after=10), MemoryKeysetSource(_players()))

    assert page.items == []
    assert page.links.next is None
    assert page.links.prev == "before=11&limit=3"
    assert page.links.first == "limit=3"


def test_filters_are_part_of_every_link() -> None:
    pagination = RecordPagination(limit=2, status=RecordStatus.APPROVED, demon="Bloodbath")

    assert pagination.query_string() == "demon=Bloodbath&limit=2&status=approved"
    assert pagination.window(after=5).query_string() == "after=5&demon=Bloodbath&limit=2&status=approved"


def test_link_header_omits_absent_links() -> None:
    links = Links(first="limit=3", next="after=3&limit=3", last="before=11&limit=3")

    assert links.header() == (
        "<limit=3>; rel=first,<after=3&limit=3>; rel=next,<before=11&limit=3>; rel=last"
    )


@pytest.mark.parametrize("kwargs", [{"limit": 0}, {"limit": 101}, {"page": 2}])
def test_invalid_pagination(kwargs) -> None:
    with pytest.raises(ValidationError):
        PlayerPagination(**kwargs)


def test_demons_are_keyed_by_position(session, list_demons) -> None:
    page = session.dispatch(Paginate(INTERNAL, DemonPagination(limit=2, after=1)))

    assert [demon.name for demon in page.items] == ["Sonic Wave", "Cataclysm"]
    assert page.links.next == "after=3&limit=2"
    assert page.links.last == "before=152&limit=2"


@pytest.fixture
def reviewed_records(stores, list_demons):
    player = stores.players.insert("Zoink")
    statuses = [RecordStatus.APPROVED, RecordStatus.SUBMITTED, RecordStatus.REJECTED, RecordStatus.APPROVED]
    records = []
    for status, demon in zip(statuses, list_demons):
        record = stores.records.insert(100, None, player, 1, demon.embedded())
        record = record.model_copy(update={"status": status})
        stores.records.update(record)
        records.append(record)
    return records


def test_anonymous_callers_only_see_approved_records(session, reviewed_records) -> None:
    request = ExternalRequest(ip=CALLER_IP)

    page = session.dispatch(Paginate(request, RecordPagination(status=RecordStatus.SUBMITTED)))

    assert [record.status for record in page.items] == [RecordStatus.APPROVED, RecordStatus.APPROVED]
    assert "status=approved" in page.links.first


def test_list_team_sees_every_record(session, make_user, reviewed_records) -> None:
    helper = make_user("helper", Permission.LIST_HELPER)
    request = ExternalRequest(ip=CALLER_IP, user=helper)

    everything = session.dispatch(Paginate(request, RecordPagination()))
    submitted = session.dispatch(Paginate(request, RecordPagination(status=RecordStatus.SUBMITTED)))

    assert len(everything.items) == len(reviewed_records)
    assert [record.id for record in submitted.items] == [reviewed_records[1].id]


def test_user_listing_requires_user_moderation(session, make_user) -> None:
    helper = make_user("helper", Permission.LIST_HELPER)
    moderator = make_user("moderator", Permission.MODERATOR)

    with pytest.raises(Unauthorized):
        session.dispatch(Paginate(ExternalRequest(ip=CALLER_IP), UserPagination()))
    with pytest.raises(MissingPermissions):
        session.dispatch(Paginate(ExternalRequest(ip=CALLER_IP, user=helper), UserPagination()))

    page = session.dispatch(
        Paginate(
            ExternalRequest(ip=CALLER_IP, user=moderator),
            UserPagination(has_permissions=int(Permission.MODERATOR)),
        )
    )
    assert [user.name for user in page.items] == ["moderator"]
