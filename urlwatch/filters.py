"""Built-in URL filters -- implementations of the UrlFilter protocol.

A filter returns False to suppress a URL, True to allow it explicitly and
None when it has no opinion. Only False stops processing.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from core.models.messages import ChatMessage
from urlwatch.host import host_of


@dataclass(frozen=True)
class UrlEvent:
    """A candidate URL together with the message it was found in."""

    url: str
    origin: ChatMessage
    host: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "host", host_of(self.url))


def _host_matches(host: str, patterns: list[str]) -> bool:
    """True when host equals a pattern or is a subdomain of it."""
    for pattern in patterns:
        pattern = pattern.lower().strip().lstrip(".")
        if pattern.startswith("www."):
            pattern = pattern[4:]
        if not pattern:
            continue
        if host == pattern or host.endswith(f".{pattern}"):
            return True
    return False


class HostFilter:
    """Allow/deny URLs by host.

    A deny match always suppresses. A non-empty allow list suppresses every
    host it does not match.
    """

    def __init__(self, allow: list[str] | None = None, deny: list[str] | None = None) -> None:
        self._allow = list(allow or [])
        self._deny = list(deny or [])

    def filter(self, event: UrlEvent) -> bool | None:
        if _host_matches(event.host, self._deny):
            return False
        if self._allow:
            return _host_matches(event.host, self._allow) or False
        return None


class SenderFilter:
    """Ignore URLs posted by specific users, e.g. other bots."""

    def __init__(self, ignore: list[str] | None = None) -> None:
        self._ignore = {name.lower() for name in (ignore or [])}

    def filter(self, event: UrlEvent) -> bool | None:
        if event.origin.from_user.lower() in self._ignore:
            return False
        return None
