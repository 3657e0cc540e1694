"""
Target resolution: which runtime an install applies to.

The context name is resolved in precedence order:
    --target-context  >  BUNDLECTL_TARGET_CONTEXT  >  config current_context  >  default
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from bundlectl.core.errors import TargetError
from bundlectl.core.models.operation import BindMount
from bundlectl.core.models.settings import DEFAULT_CONTEXT, ORCHESTRATORS, Settings, TargetContext

logger = logging.getLogger(__name__)

TARGET_CONTEXT_ENV = "BUNDLECTL_TARGET_CONTEXT"
DOCKER_SOCKET_TARGET = "/var/run/docker.sock"


@dataclass
class Target:
    """A resolved target: context, orchestrator and namespace."""

    context: TargetContext
    orchestrator: str
    kubernetes_namespace: str

    @property
    def name(self) -> str:
        return self.context.name


def target_context_name(explicit: str | None, settings: Settings) -> str:
    """Apply the default chain to an optional explicit context name."""
    if explicit:
        return explicit
    env = os.environ.get(TARGET_CONTEXT_ENV)
    if env:
        return env
    return settings.current_context or DEFAULT_CONTEXT


def resolve_target(
    explicit: str | None,
    settings: Settings,
    orchestrator: str = "",
    kubernetes_namespace: str = "",
) -> Target:
    """Resolve the target context for an install.

    Raises:
        TargetError: If the context is unknown or the orchestrator invalid.
    """
    name = target_context_name(explicit, settings)
    context = settings.get_context(name)
    if context is None:
        raise TargetError(
            f"Target context {name!r} does not exist "
            f"(known contexts: {', '.join(settings.context_names())})"
        )

    chosen = orchestrator or context.orchestrator or "swarm"
    if chosen not in ORCHESTRATORS:
        raise TargetError(
            f"Unknown orchestrator {chosen!r} (expected one of: {', '.join(ORCHESTRATORS)})"
        )

    namespace = kubernetes_namespace or context.kubernetes_namespace or "default"
    logger.debug("Target: context=%s orchestrator=%s", name, chosen)
    return Target(context=context, orchestrator=chosen, kubernetes_namespace=namespace)


def required_bind_mount(target: Target) -> BindMount | None:
    """The Docker socket mount a swarm install needs, if any.

    Kubernetes installs talk to the cluster API and need no mount.
    Remote (tcp://) engines are reached through DOCKER_HOST instead.
    """
    if target.orchestrator == "kubernetes":
        return None
    host = target.context.docker_host
    if host.startswith("unix://"):
        return BindMount(source=host[len("unix://"):], target=DOCKER_SOCKET_TARGET)
    return None
