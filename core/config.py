"""linkpeek configuration: config.yaml plus .env, validated with pydantic.

String values may reference environment variables as ``${NAME}``; .env is
loaded first so those references can point at secrets kept out of the
YAML. Pluggable components (the URL message handler and the URL filter)
are given as import paths; they are built and checked against their
protocol once, here, instead of on every request.
"""

from __future__ import annotations

import importlib
import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from core.duration import parse_seconds
from core.errors import ConfigError

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "LINKPEEK_HOME"
DEFAULT_HOME = Path.home() / ".linkpeek"

_ENV_REF = re.compile(r"\$\{(\w+)\}")


def _expand_env(match: re.Match) -> str:
    name = match.group(1)
    if name not in os.environ:
        logger.warning("Environment variable %s not set", name)
        return match.group(0)
    return os.environ[name]


def _substitute_env(node: Any) -> Any:
    """Replace ${NAME} in every string of a parsed YAML tree."""
    if isinstance(node, str):
        return _ENV_REF.sub(_expand_env, node)
    if isinstance(node, dict):
        return {key: _substitute_env(item) for key, item in node.items()}
    if isinstance(node, list):
        return [_substitute_env(item) for item in node]
    return node


# ---------------------------------------------------------------------------
# Config models (Pydantic)
# ---------------------------------------------------------------------------

class ComponentSpec(BaseModel):
    """Import path + constructor options for a pluggable component.

    YAML forms:
        handler: "mypackage.handlers:CompactHandler"
        handler:
          class: "urlwatch.handler:DefaultUrlHandler"
          options: {pattern: "%url-short% %title%"}
    """

    model_config = ConfigDict(populate_by_name=True)

    class_path: str = Field(alias="class")
    options: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _shorthand(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"class": value}
        return value


class ServerConfig(BaseModel):
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8322


class FetchConfig(BaseModel):
    """How the default HttpFetcher talks to the web."""

    timeout: float = 10.0
    max_body_bytes: int = 256 * 1024
    user_agent: str = "linkpeek/0.1 (+url preview bot)"

    @field_validator("timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> float:
        return parse_seconds(value)


class UrlConfig(BaseModel):
    """Options of the URL plugin itself."""

    model_config = ConfigDict(populate_by_name=True)

    handler: ComponentSpec | None = None
    filter: ComponentSpec | None = None
    shorten_timeout: float = Field(
        default=15.0,
        validation_alias=AliasChoices("shorten_timeout", "shortenTimeout"),
    )
    host_url_emits_only: bool = Field(
        default=False,
        validation_alias=AliasChoices("host_url_emits_only", "hostUrlEmitsOnly"),
    )
    fetch: FetchConfig = Field(default_factory=FetchConfig)

    @field_validator("shorten_timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> float:
        return parse_seconds(value)


class ShortenerConfig(BaseModel):
    enabled: bool = False
    # Hosts to subscribe for; empty means the catch-all shorten event.
    hosts: list[str] = Field(default_factory=list)
    timeout: float = 10.0

    @field_validator("timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> float:
        return parse_seconds(value)


class LoggingConfig(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    """Everything in config.yaml."""

    home_dir: str = Field(default_factory=lambda: str(resolve_home()))
    server: ServerConfig = Field(default_factory=ServerConfig)
    url: UrlConfig = Field(default_factory=UrlConfig)
    shorteners: dict[str, ShortenerConfig] = Field(default_factory=dict)
    integrations: dict[str, Any] = Field(default_factory=dict)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def home_path(self) -> Path:
        return Path(self.home_dir).expanduser()


# ---------------------------------------------------------------------------
# Pluggable components
# ---------------------------------------------------------------------------

def load_component(spec: ComponentSpec | None, protocol: type, role: str) -> Any | None:
    """Instantiate a configured component and check it implements `protocol`.

    Returns None (after logging a warning) when the component cannot be
    imported, constructed, or does not satisfy the protocol; callers fall
    back to their default.
    """
    if spec is None:
        return None

    module_path, _, attr = spec.class_path.partition(":")
    if not attr:
        module_path, _, attr = spec.class_path.rpartition(".")
    if not module_path or not attr:
        logger.warning("Invalid %s path '%s'; using default", role, spec.class_path)
        return None

    try:
        module = importlib.import_module(module_path)
        factory = getattr(module, attr)
        instance = factory(**spec.options)
    except Exception as e:
        logger.warning("Could not load %s '%s': %s; using default", role, spec.class_path, e)
        return None

    if not isinstance(instance, protocol):
        logger.warning(
            "Configured %s '%s' does not implement %s; using default",
            role,
            spec.class_path,
            protocol.__name__,
        )
        return None

    logger.info("Loaded %s: %s", role, spec.class_path)
    return instance


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def resolve_home() -> Path:
    """$LINKPEEK_HOME, or ~/.linkpeek."""
    override = os.environ.get(HOME_ENV_VAR)
    return Path(override).expanduser() if override else DEFAULT_HOME


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        logger.warning("Config file %s not found; running with defaults", path)
        return {}

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    logger.info("Loaded config from %s", path)
    return data


def load_config(
    config_path: str | Path | None = None,
    env_path: str | Path | None = None,
) -> AppConfig:
    """Build the AppConfig.

    Paths default to config.yaml and .env inside the home directory. Raises
    ConfigError for unreadable YAML or values that fail validation.
    """
    home = resolve_home()
    env_file = Path(env_path) if env_path is not None else home / ".env"
    config_file = Path(config_path) if config_path is not None else home / "config.yaml"

    if env_file.is_file():
        load_dotenv(env_file)
        logger.info("Loaded environment from %s", env_file)

    raw = _substitute_env(_read_yaml(config_file))
    if HOME_ENV_VAR in os.environ:
        raw["home_dir"] = os.environ[HOME_ENV_VAR]

    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_file}: {e}") from e
