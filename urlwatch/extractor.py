"""Default URL extractor.

Finds scheme URLs (``https://...``), ``www.`` URLs and bare ``domain.tld``
forms in chat text. This is a pragmatic tokenizer, not a URL grammar.
"""

from __future__ import annotations

import re

# Scheme URLs, www. URLs, or bare host names ending in an alphabetic TLD,
# each optionally followed by a port and a path/query/fragment.
_URL_RE = re.compile(
    r"""
    (?<![\w@.\-/])                      # not glued to a word, e-mail or path
    (?:
        (?:https?|ftp)://[^\s<>"']+     # explicit scheme
      |
        (?:www\.)?                      # optional www.
        (?:[a-z0-9](?:[a-z0-9\-]{0,61}[a-z0-9])?\.)+
        [a-z]{2,24}                     # TLD
        (?::\d{1,5})?                   # port
        (?:[/?\#][^\s<>"']*)?           # path / query / fragment
    )
    """,
    re.IGNORECASE | re.VERBOSE,
)

_TRAILING_PUNCT = ".,;:!?'\""
_BRACKETS = {")": "(", "]": "[", "}": "{"}


def _trim(url: str) -> str:
    """Strip sentence punctuation and unbalanced closing brackets."""
    while url:
        last = url[-1]
        if last in _TRAILING_PUNCT:
            url = url[:-1]
            continue
        opener = _BRACKETS.get(last)
        if opener and url.count(last) > url.count(opener):
            url = url[:-1]
            continue
        break
    return url


def extract_urls(text: str) -> list[str]:
    """Return URLs found in text, in order of appearance.

    Duplicates are kept: every occurrence is processed on its own.
    """
    if not text:
        return []

    urls: list[str] = []
    for match in _URL_RE.finditer(text):
        url = _trim(match.group(0))
        if url:
            urls.append(url)
    return urls
