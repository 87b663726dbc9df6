"""Exception types shared across linkpeek."""

from __future__ import annotations


class LinkpeekError(Exception):
    """Base class for all linkpeek errors."""


class RegistryFrozenError(LinkpeekError):
    """Raised when the listener registry is modified after wiring."""


class ConfigError(LinkpeekError):
    """Raised when configuration cannot be loaded or validated."""
