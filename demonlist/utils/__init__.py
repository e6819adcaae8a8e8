"""
Cross-cutting helpers for the demonlist core.

Only logging lives here for now; nothing in this package knows about commands
or entities.
"""

from demonlist.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
