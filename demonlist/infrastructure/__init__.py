"""
Infrastructure package for the demonlist core.

Centralizes the external collaborators the command layer talks to: the shared
connection pool, credential handling and video validation. Keep this layer
focused on I/O and resource management, decoupled from command logic.
"""

from demonlist.infrastructure.credentials import CredentialService, MalformedToken, TokenClaims
from demonlist.infrastructure.db_factory import PoolManager, get_sync_connection, get_sync_pool
from demonlist.infrastructure.video import VideoValidator

__all__ = [
    "CredentialService",
    "MalformedToken",
    "TokenClaims",
    "PoolManager",
    "get_sync_connection",
    "get_sync_pool",
    "VideoValidator",
]
