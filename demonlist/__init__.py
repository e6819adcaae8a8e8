"""
Demonlist core - the mutation and authorization core of a ranked demon list.

This package provides the parts of the list service that change state or decide
who may see what:

- A command queue served by a fixed pool of worker threads over one shared
  Postgres connection pool
- Request contexts carrying permission checks and If-Match preconditions
- A generic partial-update (patch) protocol
- Submission reconciliation against existing records
- Keyset pagination with first/prev/next/last navigation links
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from demonlist.config import Settings, get_settings
from demonlist.context import INTERNAL, ExternalRequest, IfMatch, RequestData, precondition_hash
from demonlist.errors import DemonlistError
from demonlist.pagination import Links, Page
from demonlist.permissions import Permission
from demonlist.utils.logging import configure_logging, get_logger
from demonlist.worker_pool import DatabaseWorkerPool, Services, WorkerSession

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Execution
    "DatabaseWorkerPool",
    "Services",
    "WorkerSession",
    # Requests
    "INTERNAL",
    "ExternalRequest",
    "IfMatch",
    "RequestData",
    "precondition_hash",
    "Permission",
    # Results and errors
    "DemonlistError",
    "Links",
    "Page",
    # Logging
    "configure_logging",
    "get_logger",
]
