"""Execution drivers and their registry."""

from __future__ import annotations

from bundlectl.adapters.registry import DriverRegistry


def default_registry() -> DriverRegistry:
    """A registry with every built-in driver registered."""
    from bundlectl.adapters.debug import DebugDriver
    from bundlectl.adapters.docker import DockerDriver

    registry = DriverRegistry()
    registry.register(DockerDriver())
    registry.register(DebugDriver())
    return registry
