"""Host keys -- the routing discriminator for per-host events."""

from __future__ import annotations

from urllib.parse import SplitResult, urlsplit

_SCHEME_SEP = "://"


def split_url(url: str) -> SplitResult | None:
    """urlsplit() that returns None instead of raising on malformed input."""
    try:
        parts = urlsplit(url)
        # Accessing .hostname/.port validates the netloc (bad IPv6, bad port).
        parts.hostname
        parts.port
    except ValueError:
        return None
    return parts


def host_of(url: str) -> str:
    """Return the host key for a URL.

    The key is the lower-cased hostname without a leading ``www.``. Input
    without a scheme is read as if ``http://`` preceded it. Anything that
    cannot be parsed yields an empty key.
    """
    url = (url or "").strip()
    if not url:
        return ""
    if _SCHEME_SEP not in url:
        url = f"http://{url}"

    parts = split_url(url)
    if parts is None or not parts.hostname:
        return ""

    host = parts.hostname.lower().rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    return host


def host_event(host: str) -> str:
    return f"url.host.{host}"


def shorten_event(host: str) -> str:
    return f"url.shorten.{host}"


HOST_ALL_EVENT = host_event("all")
SHORTEN_ALL_EVENT = shorten_event("all")
