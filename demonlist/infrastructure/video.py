"""
Video reference validation.

Turns a user supplied video link into the canonical form records and demons
store, rejecting anything that is not an absolute http(s) URL on a known host.
"""

from __future__ import annotations

from typing import FrozenSet, Iterable, Optional
from urllib.parse import urlparse, urlunparse

from demonlist.errors import InvalidVideo

DEFAULT_HOSTS = frozenset(
    {
        "youtube.com",
        "youtu.be",
        "twitch.tv",
        "vimeo.com",
        "bilibili.com",
        "everyplay.com",
    }
)


class VideoValidator:
    def __init__(self, hosts: Optional[Iterable[str]] = None) -> None:
        self.hosts: FrozenSet[str] = frozenset(hosts) if hosts is not None else DEFAULT_HOSTS

    def validate(self, raw: str) -> str:
        parsed = urlparse(raw.strip())
        if parsed.scheme.lower() not in ("http", "https") or not parsed.hostname:
            raise InvalidVideo()

        host = parsed.hostname.lower()
        bare = host[4:] if host.startswith("www.") else host
        if bare.startswith("m."):
            bare = bare[2:]
        if bare not in self.hosts:
            raise InvalidVideo()

        path = parsed.path.rstrip("/") or "/"
        return urlunparse(("https", bare, path, "", parsed.query, ""))


__all__ = ["VideoValidator", "DEFAULT_HOSTS"]
