"""
Settings model: the user's bundlectl configuration.

Loaded from <config dir>/config.yml. Describes the known target
contexts, which one is current, which execution driver to use, and
how to talk to registries.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_CONTEXT = "default"
DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"

ORCHESTRATORS = ("swarm", "kubernetes")


class TargetContext(BaseModel):
    """A runtime that installations can be applied to."""

    name: str
    description: str = ""
    docker_host: str = DEFAULT_DOCKER_HOST
    orchestrator: str = ""          # swarm, kubernetes, or "" (decided per install)
    kubernetes_namespace: str = "default"


class RegistryAuth(BaseModel):
    """Credentials for a registry host."""

    username: str = ""
    password: str = ""


class Settings(BaseModel):
    """Root configuration: loaded from config.yml.

    The ``default`` context always exists, even when not declared.
    """

    current_context: str = ""
    driver: str = "docker"
    experimental: bool = False

    contexts: list[TargetContext] = Field(default_factory=list)
    insecure_registries: list[str] = Field(default_factory=list)
    registry_auths: dict[str, RegistryAuth] = Field(default_factory=dict)

    def get_context(self, name: str) -> TargetContext | None:
        """Look up a context by name, including the implicit default."""
        for ctx in self.contexts:
            if ctx.name == name:
                return ctx
        if name == DEFAULT_CONTEXT:
            return TargetContext(name=DEFAULT_CONTEXT)
        return None

    def context_names(self) -> list[str]:
        names = [ctx.name for ctx in self.contexts]
        if DEFAULT_CONTEXT not in names:
            names.insert(0, DEFAULT_CONTEXT)
        return names
