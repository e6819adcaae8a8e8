"""
Worker pool executing commands against the shared connection pool.

A fixed number of worker threads pull ``(command, future)`` pairs off one shared
queue. Each worker processes a single command to completion before taking the
next, so execution is serialized per worker and parallel across workers. There
is no ordering guarantee between commands picked up by different workers.

While a command runs, its worker holds at most one pooled connection, acquired
on first use and released when the command finishes. Sub-commands dispatched by
a handler run inline on the same worker and connection; submitting to the queue
from inside a worker is rejected, since a saturated pool could otherwise leave
the worker waiting on itself.

Usage:
    from demonlist.worker_pool import DatabaseWorkerPool
    from demonlist.commands import PlayerByName

    with DatabaseWorkerPool.from_settings() as workers:
        player = workers.submit(PlayerByName("Zoink"))
"""

from __future__ import annotations

import queue
import threading
import time
from concurrent.futures import Future
from contextlib import ExitStack
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Callable, ContextManager, List, Optional, Type, TypeVar

import psycopg
from psycopg_pool import PoolClosed, PoolTimeout

from demonlist.commands.abstract import Handler
from demonlist.config import Settings, get_settings
from demonlist.errors import ConnectionUnavailable, DatabaseError, DemonlistError, InvalidState
from demonlist.infrastructure.credentials import CredentialService
from demonlist.infrastructure.db_factory import get_sync_pool
from demonlist.infrastructure.video import VideoValidator
from demonlist.store import Stores, postgres_stores
from demonlist.utils.logging import get_logger

T = TypeVar("T")

log = get_logger(__name__)

# Anything exposing ``connection(timeout=...)`` as a context manager, such as
# psycopg_pool.ConnectionPool.
PoolProvider = Callable[[], Any]
StoreFactory = Callable[[Any], Stores]

_STOP = object()


@dataclass(frozen=True)
class Services:
    """External collaborators shared by every worker."""

    settings: Settings
    credentials: CredentialService
    video: VideoValidator

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Services":
        settings = settings or get_settings()
        return cls(
            settings=settings,
            credentials=CredentialService(
                settings.secret_key, iterations=settings.password_hash_iterations
            ),
            video=VideoValidator(),
        )


class WorkerSession:
    """
    Execution scope of one command on one worker.

    Parameters
    ----------
    pool : Any
        Connection pool handle of the executing worker.
    services : Services
        Shared external collaborators.
    store_factory : callable
        Builds the entity stores bound to a connection.
    worker : str
        Name of the executing worker, for logging.
    """

    def __init__(
        self,
        pool: Any,
        services: Services,
        store_factory: StoreFactory = postgres_stores,
        worker: str = "inline",
    ) -> None:
        self.services = services
        self.worker = worker
        self._pool = pool
        self._store_factory = store_factory
        self._stack = ExitStack()
        self._connection: Any = None
        self._stores: Optional[Stores] = None

    @property
    def settings(self) -> Settings:
        return self.services.settings

    @property
    def credentials(self) -> CredentialService:
        return self.services.credentials

    @property
    def video(self) -> VideoValidator:
        return self.services.video

    @property
    def connection(self) -> Any:
        """The worker's connection, checked out of the pool on first access."""
        if self._connection is None:
            timeout = self.settings.pool_timeout_seconds
            try:
                self._connection = self._stack.enter_context(self._pool.connection(timeout=timeout))
            except (PoolTimeout, PoolClosed, psycopg.OperationalError) as exc:
                log.warning(
                    "Could not acquire a pooled connection",
                    extra={"worker": self.worker, "error": str(exc)},
                )
                raise ConnectionUnavailable() from exc
        return self._connection

    @property
    def stores(self) -> Stores:
        if self._stores is None:
            self._stores = self._store_factory(self.connection)
        return self._stores

    def transaction(self) -> ContextManager[Any]:
        """A storage transaction on the worker's connection."""
        return self.connection.transaction()

    def dispatch(self, command: Handler[T]) -> T:
        """Run ``command`` synchronously inside this session."""
        log.debug(
            f"[DISPATCH] {type(command).__name__}",
            extra={"command": type(command).__name__, "worker": self.worker},
        )
        return command.handle(self)

    def __enter__(self) -> "WorkerSession":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        # Hand the exception to the pool so an open transaction is rolled back
        self._stack.__exit__(exc_type, exc, tb)
        self._connection = None
        self._stores = None
        return False


class Worker(threading.Thread):
    """A single worker thread; see module docstring."""

    def __init__(
        self,
        index: int,
        commands: "queue.Queue[Any]",
        pool_provider: PoolProvider,
        services: Services,
        store_factory: StoreFactory,
    ) -> None:
        super().__init__(name=f"demonlist-worker-{index}", daemon=True)
        self._commands = commands
        self._pool_provider = pool_provider
        self._services = services
        self._store_factory = store_factory
        self._pool: Any = None
        self.processed = 0

    def _get_pool(self) -> Any:
        if self._pool is None:
            try:
                self._pool = self._pool_provider()
            except psycopg.Error as exc:
                raise ConnectionUnavailable() from exc
            log.debug("Worker obtained pool handle", extra={"worker": self.name})
        return self._pool

    def run(self) -> None:
        log.debug("Worker started", extra={"worker": self.name})
        while True:
            item = self._commands.get()
            try:
                if item is _STOP:
                    break
                command, future = item
                self._process(command, future)
            finally:
                self._commands.task_done()
        log.debug("Worker stopped", extra={"worker": self.name, "processed": self.processed})

    def _process(self, command: Handler[Any], future: "Future[Any]") -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = self.execute(command)
        except Exception as exc:  # noqa: BLE001 - handed to the waiting caller
            future.set_exception(exc)
        else:
            future.set_result(result)
        finally:
            self.processed += 1

    def execute(self, command: Handler[T]) -> T:
        """Execute one command to completion on this worker."""
        name = type(command).__name__
        log.debug(f"[COMMAND START] {name}", extra={"command": name, "worker": self.name})
        start = time.perf_counter()
        try:
            with WorkerSession(
                self._get_pool(), self._services, self._store_factory, worker=self.name
            ) as session:
                result = session.dispatch(command)
        except DemonlistError as exc:
            log.info(
                f"[COMMAND FAILED] {name}: {type(exc).__name__}",
                extra={"command": name, "worker": self.name, "error": type(exc).__name__},
            )
            raise
        except psycopg.Error as exc:
            log.exception(
                f"[COMMAND FAILED] {name}: database error",
                extra={"command": name, "worker": self.name},
            )
            raise DatabaseError(str(exc)) from exc

        log.debug(
            f"[COMMAND DONE] {name}",
            extra={
                "command": name,
                "worker": self.name,
                "duration_seconds": round(time.perf_counter() - start, 4),
            },
        )
        return result


class DatabaseWorkerPool:
    """
    Fixed-size pool of workers sharing one connection pool.

    Parameters
    ----------
    workers : int, optional
        Number of worker threads. Defaults to ``settings.worker_count``.
    pool_provider : callable, optional
        Returns the shared connection pool; called lazily by each worker.
    services : Services, optional
        External collaborators. Defaults to ``Services.from_settings()``.
    store_factory : callable, optional
        Builds the entity stores bound to a connection.
    """

    def __init__(
        self,
        workers: Optional[int] = None,
        pool_provider: PoolProvider = get_sync_pool,
        services: Optional[Services] = None,
        store_factory: StoreFactory = postgres_stores,
    ) -> None:
        self.services = services or Services.from_settings()
        self.size = workers or self.services.settings.worker_count
        if self.size < 1:
            raise ValueError("A worker pool needs at least one worker")
        self._pool_provider = pool_provider
        self._store_factory = store_factory
        self._commands: "queue.Queue[Any]" = queue.Queue()
        self._workers: List[Worker] = []
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "DatabaseWorkerPool":
        """Build and start a pool configured from settings."""
        services = Services.from_settings(settings)
        return cls(workers=services.settings.worker_count, services=services).start()

    @property
    def running(self) -> bool:
        return bool(self._workers)

    def start(self) -> "DatabaseWorkerPool":
        with self._lock:
            if self._workers:
                log.warning("Worker pool already running")
                return self
            self._workers = [
                Worker(
                    index,
                    self._commands,
                    self._pool_provider,
                    self.services,
                    self._store_factory,
                )
                for index in range(self.size)
            ]
            for worker in self._workers:
                worker.start()
        log.info("Worker pool started", extra={"workers": self.size})
        return self

    def stop(self, timeout: float = 5.0) -> None:
        """Let queued commands finish, then stop every worker."""
        with self._lock:
            workers, self._workers = self._workers, []
        if not workers:
            return
        for _ in workers:
            self._commands.put(_STOP)
        for worker in workers:
            worker.join(timeout=timeout)
        log.info(
            "Worker pool stopped",
            extra={"workers": len(workers), "processed": sum(w.processed for w in workers)},
        )

    def submit_async(self, command: Handler[T]) -> "Future[T]":
        """Enqueue ``command`` and return a future for its result."""
        if isinstance(threading.current_thread(), Worker):
            raise InvalidState(
                "Commands must not be submitted from inside a worker; use session.dispatch"
            )
        if not self.running:
            raise InvalidState("The worker pool is not running")
        future: "Future[T]" = Future()
        self._commands.put((command, future))
        return future

    def submit(self, command: Handler[T]) -> T:
        """Send ``command`` to the pool and wait for its result (or error)."""
        return self.submit_async(command).result()

    def __enter__(self) -> "DatabaseWorkerPool":
        return self.start()

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.stop()


__all__ = [
    "Services",
    "WorkerSession",
    "Worker",
    "DatabaseWorkerPool",
]
