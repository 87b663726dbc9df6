import sys
from pathlib import Path

import pytest

# Add project root to sys.path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.models.urls import FetchResult  # noqa: E402


class FakeFetcher:
    """Fetcher stub returning a canned result and recording every URL."""

    def __init__(self, result: FetchResult | None = None) -> None:
        self.result = result or FetchResult(
            body=b"<html><head><title>Example Page</title></head></html>",
            headers={"content-type": ["text/html; charset=utf-8"]},
            status=200,
            elapsed=0.25,
        )
        self.urls: list[str] = []

    async def fetch(self, url: str) -> FetchResult:
        self.urls.append(url)
        return self.result


class FakeSink:
    """OutboundSink stub recording (text, channel_id, adapter)."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str | None, str | None]] = []

    async def send_text(self, text, channel_id=None, adapter=None) -> None:
        self.sent.append((text, channel_id, adapter))


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()
