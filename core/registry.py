"""Plugin registry -- named chat adapters and shorteners, grouped by role.

main.py builds plugins from config.yaml and registers them here before the
listener registry is frozen. The output dispatcher asks it where a reply
should go; the HTTP API reports what is loaded.
"""

from __future__ import annotations

import logging
from typing import Any

from core.protocols import InputAdapter, OutputAdapter

logger = logging.getLogger(__name__)

# Role -> protocol an instance must satisfy. Shorteners only own event
# listeners, so there is nothing structural to check for them.
ROLES: dict[str, type | None] = {
    "input": InputAdapter,
    "output": OutputAdapter,
    "shortener": None,
}


class PluginRegistry:
    """Instances by role, then by name, in registration order.

    Usage:
        registry = PluginRegistry()
        registry.register("input", telegram)
        registry.register("output", telegram)

        registry.outputs_for("telegram")  # [telegram]
        registry.outputs_for("webhook")   # every output
    """

    def __init__(self) -> None:
        self._by_role: dict[str, dict[str, Any]] = {role: {} for role in ROLES}

    def register(self, role: str, instance: Any) -> None:
        """Add an instance under a role. A second instance with the same
        name replaces the first.
        """
        plugins = self._role(role, ValueError)
        protocol = ROLES[role]
        if protocol is not None and not isinstance(instance, protocol):
            raise TypeError(f"{type(instance).__name__} cannot act as {role} plugin")

        name = instance.name
        if name in plugins:
            logger.warning("Replacing %s plugin '%s'", role, name)
        plugins[name] = instance
        logger.info("Registered %s plugin: %s", role, name)

    def get(self, role: str, name: str) -> Any:
        """Return one plugin; KeyError if the role or name is unknown."""
        plugins = self._role(role, KeyError)
        try:
            return plugins[name]
        except KeyError:
            raise KeyError(f"No {role} plugin '{name}' (have: {sorted(plugins)})") from None

    def get_all(self, role: str) -> list[Any]:
        return list(self._role(role, KeyError).values())

    def has(self, role: str, name: str) -> bool:
        return name in self._by_role.get(role, {})

    def outputs_for(self, adapter: str | None) -> list[Any]:
        """Outputs a reply should go through.

        The output named like the adapter a message arrived on, if there is
        one; otherwise every output.
        """
        outputs = self._by_role["output"]
        if adapter and adapter in outputs:
            return [outputs[adapter]]
        return list(outputs.values())

    def summary(self) -> dict[str, list[str]]:
        """Plugin names per non-empty role."""
        return {role: list(plugins) for role, plugins in self._by_role.items() if plugins}

    def _role(self, role: str, error: type[Exception]) -> dict[str, Any]:
        if role not in self._by_role:
            raise error(f"Unknown plugin role '{role}', expected one of {list(ROLES)}")
        return self._by_role[role]
