"""
Abstract command interface for the demonlist core.

A command is an immutable, typed request for one unit of storage work. Each
command type carries its own handler (``handle``); the worker pool only routes
commands to workers and knows nothing about their semantics.

Handlers receive the :class:`~demonlist.worker_pool.WorkerSession` of the worker
executing them. A handler that needs the result of another command calls
``session.dispatch(other)``, which runs ``other`` synchronously on the same
worker and connection; it never goes back through the queue.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Generic, Protocol, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from demonlist.worker_pool import WorkerSession

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


@runtime_checkable
class Handler(Protocol[T_co]):
    """Anything the worker pool can execute."""

    def handle(self, session: "WorkerSession") -> T_co:
        """
        Execute the command.

        Parameters
        ----------
        session : WorkerSession
            Scope of the executing worker: connection, stores, collaborators.

        Returns
        -------
        T
            The command's declared result.
        """
        ...


class Command(abc.ABC, Generic[T]):
    """
    Base class for class-based commands.

    Subclasses are frozen dataclasses and implement ``handle``.
    """

    @abc.abstractmethod
    def handle(self, session: "WorkerSession") -> T:  # pragma: no cover - interface only
        """Run the command and return its result."""
        raise NotImplementedError


__all__ = [
    "Handler",
    "Command",
]
