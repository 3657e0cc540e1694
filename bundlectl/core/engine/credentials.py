"""
Credential resolution: collect credential values for an install.

Values come from credential sources, each producing a name → value
map. A name provided by two sources is ambiguous and rejected. The
merged set is then validated against the bundle's requirements; every
missing credential is reported at once.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from bundlectl.core.errors import AmbiguousCredentialError, MissingCredentialError
from bundlectl.core.models.bundle import Bundle
from bundlectl.core.models.credentials import CredentialSet
from bundlectl.core.models.settings import RegistryAuth, TargetContext
from bundlectl.core.persistence.credential_store import CredentialStore, load_credential_set

logger = logging.getLogger(__name__)

# Credentials bundlectl injects on its own
CREDENTIAL_TARGET_CONTEXT = "bundlectl.target-context"
CREDENTIAL_REGISTRY_AUTH = "bundlectl.registry-auth"


@dataclass
class ResolvedCredentials:
    """Credential values for one install, plus why any failed to resolve."""

    values: dict[str, str] = field(default_factory=dict)
    problems: dict[str, str] = field(default_factory=dict)

    def __contains__(self, name: str) -> bool:
        return name in self.values


CredentialSource = Callable[[Bundle], ResolvedCredentials]


def with_named_credential_sets(store: CredentialStore, names: list[str]) -> CredentialSource:
    """Credential sets given by name (from the store) or by file path."""

    def source(bundle: Bundle) -> ResolvedCredentials:
        resolved = ResolvedCredentials()
        for name in names:
            path = Path(name)
            credential_set: CredentialSet
            if path.is_file():
                credential_set = load_credential_set(path)
            else:
                credential_set = store.read(name)
            values, problems = credential_set.resolve()
            for key, value in values.items():
                if key in resolved.values:
                    raise AmbiguousCredentialError(key)
                resolved.values[key] = value
            resolved.problems.update(problems)
        return resolved

    return source


def with_target_context_credential(context: TargetContext, orchestrator: str) -> CredentialSource:
    """The target context description, as a JSON credential."""

    def source(bundle: Bundle) -> ResolvedCredentials:
        payload = {
            "name": context.name,
            "docker_host": context.docker_host,
            "orchestrator": orchestrator,
            "kubernetes_namespace": context.kubernetes_namespace,
        }
        return ResolvedCredentials(values={CREDENTIAL_TARGET_CONTEXT: json.dumps(payload)})

    return source


def with_registry_auth_credential(
    send_registry_auth: bool,
    auths: dict[str, RegistryAuth],
) -> CredentialSource:
    """Registry credentials, only when forwarding was requested."""

    def source(bundle: Bundle) -> ResolvedCredentials:
        if not send_registry_auth:
            return ResolvedCredentials()
        payload = {host: auth.model_dump() for host, auth in sorted(auths.items())}
        return ResolvedCredentials(values={CREDENTIAL_REGISTRY_AUTH: json.dumps(payload)})

    return source


def prepare_credential_set(bundle: Bundle, *sources: CredentialSource) -> ResolvedCredentials:
    """Merge every source into one set.

    Raises:
        AmbiguousCredentialError: If two sources provide the same name.
    """
    merged = ResolvedCredentials()
    for source in sources:
        resolved = source(bundle)
        for name, value in resolved.values.items():
            if name in merged.values:
                raise AmbiguousCredentialError(name)
            merged.values[name] = value
        for name, problem in resolved.problems.items():
            merged.problems.setdefault(name, problem)
    return merged


def validate_credentials(creds: ResolvedCredentials, bundle: Bundle) -> None:
    """Check that every required credential has a value.

    Raises:
        MissingCredentialError: Naming every unresolved required credential.
    """
    missing = [name for name in bundle.required_credentials() if name not in creds.values]
    if missing:
        reasons = {name: creds.problems[name] for name in missing if name in creds.problems}
        raise MissingCredentialError(missing, reasons)
    logger.debug("All %d required credential(s) resolved", len(bundle.required_credentials()))
