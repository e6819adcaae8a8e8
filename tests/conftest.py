"""
Pytest configuration for the demonlist core.

Provides fixtures for:
- Settings and services with test-specific overrides
- In-memory entity stores with the same interface as the Postgres stores
- Fake connections and connection pools that count checkouts and transactions
- Database connection management for integration tests
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Generator, List

import psycopg
import pytest

from demonlist.config import Settings
from demonlist.domain.models import Demon, User
from demonlist.infrastructure.credentials import CredentialService
from demonlist.permissions import Permission, to_bits
from demonlist.worker_pool import Services, WorkerSession

from tests.fakes import FakeConnection, FakePool, MemoryStores, SpyVideoValidator

TEST_SECRET = "test-secret"
TEST_HASH_ITERATIONS = 1_000
TEST_PASSWORD = "correct horse battery"


# Fixtures


@pytest.fixture
def settings() -> Settings:
    return Settings(
        secret_key=TEST_SECRET,
        password_hash_iterations=TEST_HASH_ITERATIONS,
        list_size=75,
        extended_list_size=150,
        worker_count=2,
        pool_timeout_seconds=1.0,
        log_level="DEBUG",
    )


@pytest.fixture
def video() -> SpyVideoValidator:
    return SpyVideoValidator()


@pytest.fixture
def services(settings: Settings, video: SpyVideoValidator) -> Services:
    return Services(
        settings=settings,
        credentials=CredentialService(TEST_SECRET, iterations=TEST_HASH_ITERATIONS),
        video=video,
    )


@pytest.fixture
def stores() -> MemoryStores:
    return MemoryStores()


@pytest.fixture
def pool() -> FakePool:
    return FakePool()


@pytest.fixture
def connection(pool: FakePool) -> FakeConnection:
    return pool.connection_obj


@pytest.fixture
def session(
    pool: FakePool, services: Services, stores: MemoryStores
) -> Generator[WorkerSession, None, None]:
    with WorkerSession(pool, services, store_factory=lambda conn: stores, worker="test") as s:
        yield s


@pytest.fixture
def make_user(stores: MemoryStores, services: Services) -> Callable[..., User]:
    def _make(name: str, *flags: Permission, password: str = TEST_PASSWORD) -> User:
        user = stores.users.insert(name, services.credentials.hash_password(password))
        if flags:
            user = user.model_copy(update={"permissions": to_bits(flags)})
            stores.users.update(user)
        return user

    return _make


@pytest.fixture
def list_demons(stores: MemoryStores) -> List[Demon]:
    """Demons at positions 1, 2, 3, 100 (extended) and 151 (legacy)."""
    verifier = stores.players.insert("Verifier")
    publisher = stores.players.insert("Publisher")
    entries = [
        ("Bloodbath", 1, 60),
        ("Sonic Wave", 2, 55),
        ("Cataclysm", 3, 50),
        ("Extended Demon", 100, 100),
        ("Legacy Demon", 151, 100),
    ]
    return [
        stores.demons.insert(name, position, requirement, verifier, publisher)
        for name, position, requirement in entries
    ]


# Integration


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture for integration tests.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "demonlist"),
        secret_key=TEST_SECRET,
        password_hash_iterations=TEST_HASH_ITERATIONS,
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;")
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_schema_initialized(test_dsn: str, db_connection_available: bool) -> bool:
    """
    Ensure the schema from db/init.sql exists.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    init_sql_path = Path(__file__).parent.parent / "db" / "init.sql"
    with psycopg.connect(test_dsn) as conn:
        conn.execute(init_sql_path.read_text(encoding="utf-8"))
        conn.commit()
    return True


@pytest.fixture(scope="function")
def clean_database(test_dsn: str, db_schema_initialized: bool) -> None:
    """
    Empty every table before a test.

    Yields nothing; the test works against the emptied schema.
    """
    with psycopg.connect(test_dsn) as conn:
        conn.execute("TRUNCATE records, demons, submitters, players, users RESTART IDENTITY CASCADE")
        conn.commit()
