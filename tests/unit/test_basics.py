import random

from demonlist import config
from demonlist.domain.models import EmbeddedDemon, Player, Record, RecordStatus
from demonlist.errors import InvalidProgress, ModelNotFound, SubmissionExists
from demonlist.permissions import Permission, from_bits, has_any, perms, to_bits
from demonlist.reporter import flatten
from scripts import seed_data


def test_get_settings_defaults(monkeypatch):
    for name in ("DB_HOST", "DB_PORT", "DB_NAME", "WORKER_COUNT", "LIST_SIZE", "EXTENDED_LIST_SIZE"):
        monkeypatch.delenv(name, raising=False)
    settings = config.Settings(_env_file=None)
    assert settings.db_host == "localhost"
    assert settings.db_port == 5432
    assert settings.db_name == "demonlist"
    assert settings.worker_count > 0
    assert settings.list_size < settings.extended_list_size


def test_build_dsn():
    settings = config.Settings(_env_file=None, DB_USER="u", DB_PASSWORD="p", DB_HOST="h", DB_PORT=1, DB_NAME="d")
    assert config.build_dsn(settings) == "postgresql://u:p@h:1/d"


def test_permission_bits_round_trip():
    granted = perms(Permission.LIST_HELPER, Permission.ADMINISTRATOR)
    assert from_bits(to_bits(granted)) == granted
    assert from_bits(0) == frozenset()
    assert has_any(granted, perms(Permission.ADMINISTRATOR, Permission.MODERATOR))
    assert not has_any(granted, perms(Permission.MODERATOR))
    assert not has_any(granted, frozenset())


def test_errors_render_as_dicts():
    assert ModelNotFound("Demon", "Bloodbath").to_dict() == {
        "error": "ModelNotFound",
        "status": 404,
        "message": "No Demon identified by 'Bloodbath' found",
        "data": {"model": "Demon", "identified_by": "Bloodbath"},
    }
    assert InvalidProgress(60).to_dict()["data"] == {"requirement": 60}
    assert SubmissionExists(RecordStatus.APPROVED, 3).details() == {"status": "approved", "existing": 3}


def test_flatten_nested_entities():
    record = Record(
        id=1,
        progress=90,
        player=Player(id=4, name="Zoink"),
        submitter=2,
        demon=EmbeddedDemon(name="Bloodbath", position=1),
    )
    columns = flatten(record)
    assert columns["player.name"] == "Zoink"
    assert "player.id" not in columns
    assert columns["demon.position"] == 1
    assert columns["status"] == "submitted"


def test_seed_data_is_deterministic():
    players = seed_data._generate_players(random.Random(123), 20)
    again = seed_data._generate_players(random.Random(123), 20)
    assert players == again
    assert len({name.lower() for name in players}) == 20

    demons = seed_data._generate_demons(random.Random(123), 10, players=20)
    assert [position for _, position, _, _, _ in demons] == list(range(1, 11))

    records = seed_data._generate_records(random.Random(123), 30, 20, demons, list_size=5)
    assert len({(player, demon) for _, _, player, _, demon in records}) == len(records)
    positions = {name: position for name, position, _, _, _ in demons}
    assert all(progress == 100 for progress, _, _, _, demon in records if positions[demon] > 5)
