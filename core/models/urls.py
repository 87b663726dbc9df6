"""URL models -- fetch results and the data handed to message handlers."""

from __future__ import annotations

from pydantic import BaseModel, Field


class FetchResult(BaseModel):
    """Outcome of fetching a URL.

    Header names are lower-cased and map to every value the server sent.
    A failed fetch is represented by ``status == 0`` with ``error`` set.
    """

    body: bytes = b""
    headers: dict[str, list[str]] = Field(default_factory=dict)
    status: int = 0
    elapsed: float = 0.0
    error: str | None = None

    @classmethod
    def failed(cls, error: str, elapsed: float = 0.0) -> FetchResult:
        return cls(error=error, elapsed=elapsed)

    @property
    def ok(self) -> bool:
        return self.error is None

    def header(self, name: str) -> str | None:
        """Return the first value of a header, or None."""
        values = self.headers.get(name.lower())
        return values[0] if values else None


class UrlInfo(BaseModel):
    """Everything a message handler gets to describe one URL."""

    url: str
    body: bytes = b""
    headers: dict[str, list[str]] = Field(default_factory=dict)
    status: int = 0
    elapsed: float = 0.0
    short_url: str | None = None
    error: str | None = None

    @classmethod
    def from_fetch(cls, url: str, result: FetchResult, short_url: str | None = None) -> UrlInfo:
        return cls(
            url=url,
            body=result.body,
            headers=result.headers,
            status=result.status,
            elapsed=result.elapsed,
            short_url=short_url,
            error=result.error,
        )

    def header(self, name: str) -> str | None:
        values = self.headers.get(name.lower())
        return values[0] if values else None
