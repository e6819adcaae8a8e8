"""
Seed script for a development demonlist database.

Generates a deterministic set of players, demons and records and loads it into
Postgres with COPY. Optionally registers an administrator account.
"""

from __future__ import annotations

import random
import sys
import time
from typing import List, Optional, Tuple

import typer

from demonlist.config import build_dsn, get_settings
from demonlist.infrastructure.credentials import CredentialService
from demonlist.infrastructure.db_factory import get_sync_connection
from demonlist.permissions import Permission, to_bits

app = typer.Typer(help="Seed a demonlist database with deterministic sample data (COPY).")

_SYLLABLES = ["ba", "ko", "ri", "zen", "tar", "mo", "vel", "nix", "sha", "dra", "lu", "ghi"]
_STATUSES = ["approved", "approved", "approved", "submitted", "rejected"]


def _name(rng: random.Random, parts: int) -> str:
    return "".join(rng.choice(_SYLLABLES) for _ in range(parts)).capitalize()


def _generate_players(rng: random.Random, count: int) -> List[str]:
    names: List[str] = []
    seen = set()
    while len(names) < count:
        name = _name(rng, rng.randint(2, 4))
        if name.lower() not in seen:
            seen.add(name.lower())
            names.append(name)
    return names


def _generate_demons(
    rng: random.Random, count: int, players: int
) -> List[Tuple[str, int, int, int, int]]:
    """``(name, position, requirement, verifier, publisher)`` rows, positions 1..count."""
    demons: List[Tuple[str, int, int, int, int]] = []
    seen = set()
    position = 1
    while len(demons) < count:
        name = _name(rng, rng.randint(2, 3)) + rng.choice(["", " II", " Zero", " Extreme"])
        if name in seen:
            continue
        seen.add(name)
        requirement = rng.choice([40, 50, 55, 60, 70, 100])
        demons.append(
            (name, position, requirement, rng.randint(1, players), rng.randint(1, players))
        )
        position += 1
    return demons


def _generate_records(
    rng: random.Random,
    count: int,
    players: int,
    demons: List[Tuple[str, int, int, int, int]],
    list_size: int,
) -> List[Tuple[int, str, int, int, str]]:
    """``(progress, status, player, submitter, demon)`` rows, one per player and demon."""
    records: List[Tuple[int, str, int, int, str]] = []
    seen = set()
    attempts = 0
    while len(records) < count and attempts < count * 10:
        attempts += 1
        name, position, requirement, _, _ = rng.choice(demons)
        player = rng.randint(1, players)
        if (player, name) in seen:
            continue
        seen.add((player, name))
        progress = 100 if position > list_size else rng.randint(requirement, 100)
        records.append((progress, rng.choice(_STATUSES), player, 1, name))
    return records


def _load(
    dsn: str,
    players: List[str],
    demons: List[Tuple[str, int, int, int, int]],
    records: List[Tuple[int, str, int, int, str]],
) -> None:
    with get_sync_connection(dsn) as conn:
        with conn.cursor() as cur:
            cur.execute("TRUNCATE records, demons, submitters, players RESTART IDENTITY CASCADE")
            with cur.copy("COPY players (name) FROM STDIN") as copy:
                for name in players:
                    copy.write_row((name,))
            with cur.copy(
                "COPY demons (name, position, requirement, verifier, publisher) FROM STDIN"
            ) as copy:
                for row in demons:
                    copy.write_row(row)
            cur.execute("INSERT INTO submitters (ip) VALUES ('127.0.0.1')")
            with cur.copy(
                "COPY records (progress, status, player, submitter, demon) FROM STDIN"
            ) as copy:
                for row in records:
                    copy.write_row(row)
        conn.commit()


def _create_admin(dsn: str, name: str, password: str) -> None:
    settings = get_settings()
    credentials = CredentialService(settings.secret_key, settings.password_hash_iterations)
    permissions = to_bits([Permission.ADMINISTRATOR, Permission.LIST_ADMINISTRATOR])
    with get_sync_connection(dsn) as conn:
        conn.execute(
            "INSERT INTO users (name, permissions, password_hash) VALUES (%s, %s, %s) "
            "ON CONFLICT (name) DO UPDATE SET permissions = EXCLUDED.permissions, "
            "password_hash = EXCLUDED.password_hash",
            (name, permissions, credentials.hash_password(password)),
        )
        conn.commit()


@app.command()
def main(
    players: int = typer.Option(200, "--players", "-p", help="Number of players to generate."),
    demons: int = typer.Option(160, "--demons", "-d", help="Number of demons to generate."),
    records: int = typer.Option(2_000, "--records", "-r", help="Number of records to generate."),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    dsn: Optional[str] = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    admin: Optional[str] = typer.Option(
        None, "--admin", help="Also create (or reset) an administrator with this name."
    ),
    admin_password: Optional[str] = typer.Option(
        None, "--admin-password", help="Password of the administrator account."
    ),
) -> None:
    """
    Generate sample data and load it into Postgres using COPY.
    """
    start = time.perf_counter()
    rng = random.Random(seed)
    settings = get_settings()

    player_rows = _generate_players(rng, players)
    demon_rows = _generate_demons(rng, demons, players)
    record_rows = _generate_records(rng, records, players, demon_rows, settings.list_size)
    typer.echo(
        f"Generated {len(player_rows):,} players, {len(demon_rows):,} demons and "
        f"{len(record_rows):,} records (seed={seed})"
    )

    conn_dsn = dsn or build_dsn()
    _load(conn_dsn, player_rows, demon_rows, record_rows)

    if admin:
        if not admin_password:
            typer.echo("--admin-password is required with --admin", err=True)
            raise typer.Exit(code=2)
        _create_admin(conn_dsn, admin, admin_password)
        typer.echo(f"Administrator '{admin}' ready.")

    typer.echo(f"Seeding completed in {time.perf_counter() - start:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
