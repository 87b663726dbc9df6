"""URL watching -- extraction, dispatch, shortening and message assembly."""

from urlwatch.dispatch import UrlPlugin, normalize_url
from urlwatch.fetcher import HttpFetcher
from urlwatch.handler import DefaultUrlHandler
from urlwatch.host import host_of
from urlwatch.shorten import ResultAcceptor, ShortenRace

__all__ = [
    "DefaultUrlHandler",
    "HttpFetcher",
    "ResultAcceptor",
    "ShortenRace",
    "UrlPlugin",
    "host_of",
    "normalize_url",
]
