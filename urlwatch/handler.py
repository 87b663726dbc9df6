"""DefaultUrlHandler -- renders URL data with a %placeholder% pattern.

Placeholders:
    %url%                short URL if there is one, else the URL
    %url-long%           the URL
    %url-short%          short URL if there is one, else the URL
    %http-status-code%   status code (0 when the fetch failed)
    %timing%             elapsed seconds, 2 decimals
    %timing2%            elapsed milliseconds
    %response-time%      elapsed seconds with an "s" suffix
    %title%              HTML <title>, or empty
    %composed-title%     title, else "content-type, size", else the error
    %header-<name>%      first value of a response header

Unknown placeholders render as empty strings.
"""

from __future__ import annotations

import codecs
import re

from bs4 import BeautifulSoup
from bs4.dammit import EncodingDetector

from core.models.urls import UrlInfo

DEFAULT_PATTERN = "[ %url-short% ] %composed-title% (%http-status-code%, %response-time%)"

_PLACEHOLDER_RE = re.compile(r"%([a-z0-9][a-z0-9\-]*)%", re.IGNORECASE)
_CHARSET_RE = re.compile(r"charset=[\"']?([\w\-]+)", re.IGNORECASE)
_SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]
_MAX_TITLE_CHARS = 300


def format_size(num_bytes: int) -> str:
    """Human readable size, e.g. 1536 -> '1.5 KB'."""
    if num_bytes < 1024:
        return f"{num_bytes} B"
    size = float(num_bytes)
    for unit in _SIZE_UNITS[1:]:
        size /= 1024
        if size < 1024:
            break
    return f"{size:.1f} {unit}"


def _body_encoding(info: UrlInfo) -> str:
    """Charset from Content-Type, else the document's own declaration, else utf-8."""
    candidates = []
    charset = _CHARSET_RE.search(info.header("content-type") or "")
    if charset:
        candidates.append(charset.group(1))
    candidates.append(EncodingDetector.find_declared_encoding(info.body, is_html=True))

    for name in candidates:
        if not name:
            continue
        try:
            return codecs.lookup(name).name
        except LookupError:
            continue
    return "utf-8"


def extract_title(info: UrlInfo) -> str:
    """Return the collapsed <title> of an HTML body, or ''."""
    if not info.body:
        return ""
    content_type = (info.header("content-type") or "").lower()
    if content_type and "html" not in content_type and "xml" not in content_type:
        return ""

    soup = BeautifulSoup(info.body, "html.parser", from_encoding=_body_encoding(info))
    if soup.title is None:
        return ""

    title = " ".join(soup.title.get_text().split())
    if len(title) > _MAX_TITLE_CHARS:
        title = title[: _MAX_TITLE_CHARS - 1] + "…"
    return title


class DefaultUrlHandler:
    """Built-in UrlHandler used when no valid handler is configured."""

    def __init__(self, pattern: str = DEFAULT_PATTERN) -> None:
        self.pattern = pattern

    def handle(self, info: UrlInfo) -> str:
        values = self.placeholders(info)

        def replace(match: re.Match) -> str:
            key = match.group(1).lower()
            if key.startswith("header-"):
                return info.header(key[len("header-"):]) or ""
            return values.get(key, "")

        text = _PLACEHOLDER_RE.sub(replace, self.pattern)
        return " ".join(text.split())

    def placeholders(self, info: UrlInfo) -> dict[str, str]:
        short = info.short_url or info.url
        title = extract_title(info)
        return {
            "url": short,
            "url-long": info.url,
            "url-short": short,
            "http-status-code": str(info.status),
            "timing": f"{info.elapsed:.2f}",
            "timing2": str(int(round(info.elapsed * 1000))),
            "response-time": f"{info.elapsed:.2f}s",
            "title": title,
            "composed-title": self.compose_title(info, title),
        }

    def compose_title(self, info: UrlInfo, title: str) -> str:
        if info.error:
            return f"Error: {info.error}"
        if title:
            return title

        parts = []
        content_type = (info.header("content-type") or "").split(";")[0].strip()
        if content_type:
            parts.append(content_type)

        length = info.header("content-length")
        if length and length.isdigit():
            parts.append(format_size(int(length)))
        elif info.body:
            parts.append(format_size(len(info.body)))
        return ", ".join(parts)
