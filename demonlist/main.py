from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

import typer

from demonlist.commands import (
    BasicAuth,
    BasicCredentials,
    DeleteRecordById,
    Invalidate,
    IssueToken,
    Paginate,
    ProcessSubmission,
    Register,
    SubmitterByIp,
    TokenAuth,
    TokenCredentials,
)
from demonlist.config import get_settings
from demonlist.context import ExternalRequest
from demonlist.domain.models import RecordStatus, Registration, Submission
from demonlist.errors import DemonlistError
from demonlist.infrastructure.db_factory import get_sync_connection
from demonlist.pagination import DEFAULT_LIMIT, MAX_LIMIT, RecordPagination
from demonlist.reporter import print_entity, print_page
from demonlist.utils.logging import configure_logging
from demonlist.worker_pool import DatabaseWorkerPool

app = typer.Typer(help="Demonlist core CLI.")

DEFAULT_SCHEMA = Path(__file__).resolve().parent.parent / "db" / "init.sql"
LOCAL_IP = "127.0.0.1"


@contextmanager
def _workers() -> Generator[DatabaseWorkerPool, None, None]:
    """Start a worker pool for one CLI invocation, reporting command errors as JSON."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)
    try:
        with DatabaseWorkerPool.from_settings(settings) as workers:
            yield workers
    except DemonlistError as exc:
        typer.echo(json.dumps(exc.to_dict(), indent=2), err=True)
        raise typer.Exit(code=1) from exc


def _request(workers: DatabaseWorkerPool, token: Optional[str], ip: str) -> ExternalRequest:
    request = ExternalRequest(ip=ip)
    if token:
        request = request.with_user(workers.submit(TokenAuth(TokenCredentials(token))))
    return request


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"pool={settings.pool_min_size}..{settings.pool_max_size} workers={settings.worker_count} "
        f"list={settings.list_size} extended={settings.extended_list_size}"
    )


@app.command("init-db")
def init_db(
    schema: Path = typer.Option(
        DEFAULT_SCHEMA,
        "--schema",
        help="SQL file creating the tables.",
        exists=True,
        dir_okay=False,
    ),
    dsn: Optional[str] = typer.Option(None, "--dsn", help="Optional DSN override for Postgres."),
) -> None:
    """
    Create the database schema.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)
    with get_sync_connection(dsn) as conn:
        conn.execute(schema.read_text(encoding="utf-8"))
        conn.commit()
    typer.echo(f"Schema applied from {schema}")


@app.command()
def register(
    name: str = typer.Argument(..., help="Account name."),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
) -> None:
    """
    Register a new user account.
    """
    with _workers() as workers:
        user = workers.submit(Register(Registration(name=name, password=password)))
    print_entity(user, title="Registered user")


@app.command()
def login(
    name: str = typer.Argument(..., help="Account name."),
    password: str = typer.Option(..., prompt=True, hide_input=True),
) -> None:
    """
    Authenticate with name and password and print an access token.
    """
    with _workers() as workers:
        user = workers.submit(BasicAuth(BasicCredentials(name, password)))
        token = workers.submit(IssueToken(user))
    typer.echo(token)


@app.command()
def invalidate(
    name: str = typer.Argument(..., help="Account name."),
    password: str = typer.Option(..., prompt=True, hide_input=True),
) -> None:
    """
    Invalidate every access token issued to an account.
    """
    with _workers() as workers:
        workers.submit(Invalidate(BasicCredentials(name, password)))
    typer.echo("All access tokens invalidated.")


@app.command()
def submit(
    player: str = typer.Argument(..., help="Player name."),
    demon: str = typer.Argument(..., help="Demon name."),
    progress: int = typer.Argument(..., help="Progress in percent."),
    video: Optional[str] = typer.Option(None, "--video", help="Video proof URL."),
    ip: str = typer.Option(LOCAL_IP, "--ip", help="IP address the submission is made from."),
    verify_only: bool = typer.Option(
        False, "--verify-only", help="Only check the submission; store nothing."
    ),
) -> None:
    """
    Submit a record.
    """
    submission = Submission(
        progress=progress, player=player, demon=demon, video=video, verify_only=verify_only
    )
    with _workers() as workers:
        submitter = workers.submit(SubmitterByIp(ip))
        record = workers.submit(ProcessSubmission(submission, submitter))
    if record is None:
        typer.echo("Submission would be accepted.")
    else:
        print_entity(record, title="Submitted record")


@app.command()
def records(
    status: Optional[RecordStatus] = typer.Option(None, "--status", help="Filter by status."),
    player: Optional[int] = typer.Option(None, "--player", help="Filter by player ID."),
    demon: Optional[str] = typer.Option(None, "--demon", help="Filter by demon name."),
    limit: int = typer.Option(
        DEFAULT_LIMIT, "--limit", "-l", min=1, max=MAX_LIMIT, help="Page size."
    ),
    after: Optional[int] = typer.Option(None, "--after", help="Only records with a larger ID."),
    before: Optional[int] = typer.Option(None, "--before", help="Only records with a smaller ID."),
    token: Optional[str] = typer.Option(None, "--token", envvar="DEMONLIST_TOKEN"),
) -> None:
    """
    List records, one page at a time.
    """
    pagination = RecordPagination(
        status=status, player=player, demon=demon, limit=limit, after=after, before=before
    )
    with _workers() as workers:
        page = workers.submit(Paginate(_request(workers, token, LOCAL_IP), pagination))
    print_page(page, title="Records")


@app.command("delete-record")
def delete_record(
    record_id: int = typer.Argument(..., help="ID of the record to delete."),
    token: str = typer.Option(..., "--token", envvar="DEMONLIST_TOKEN"),
) -> None:
    """
    Delete a record (list moderators only).
    """
    with _workers() as workers:
        workers.submit(DeleteRecordById(_request(workers, token, LOCAL_IP), record_id))
    typer.echo(f"Record {record_id} deleted.")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
