"""
Parameter merging: build a claim's parameter values from every source.

Values are layered by an ordered pipeline of pure steps, each taking
the bundle and the current values and returning new values:

    bundle defaults
      < parameter files          (with_file_parameters)
      < --set KEY=VALUE          (with_command_line_parameters)
      < orchestrator values      (with_orchestrator_parameters)
      < registry auth flag       (with_send_registry_auth)

Later steps overwrite earlier ones. User-facing steps may only set
parameters the bundle declares. The result is then converted to the
declared types and checked against allowed values and required flags.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from bundlectl.core.errors import InvalidParameterError, UnknownParameterError
from bundlectl.core.models.bundle import Bundle, convert_value
from bundlectl.core.models.claim import Claim
from bundlectl.core.persistence.bundle_store import flatten

logger = logging.getLogger(__name__)

# Parameters bundlectl fills in when a bundle declares them
PARAMETER_ORCHESTRATOR = "bundlectl.orchestrator"
PARAMETER_KUBERNETES_NAMESPACE = "bundlectl.kubernetes-namespace"
PARAMETER_SHARE_REGISTRY_CREDS = "bundlectl.share-registry-creds"

MergeStep = Callable[[Bundle, dict[str, Any]], dict[str, Any]]


def _check_declared(bundle: Bundle, values: dict[str, Any], source: str) -> None:
    unknown = [name for name in values if name not in bundle.parameters]
    if unknown:
        raise UnknownParameterError(unknown, source=source)


# ── Steps ───────────────────────────────────────────────────────


def with_file_parameters(files: list[str]) -> MergeStep:
    """Values from YAML parameter files, later files winning.

    Nested mappings are flattened into dotted parameter names.
    """

    def step(bundle: Bundle, values: dict[str, Any]) -> dict[str, Any]:
        merged = dict(values)
        for name in files:
            path = Path(name)
            try:
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            except (OSError, yaml.YAMLError) as e:
                raise InvalidParameterError([f"cannot load parameters file {path}: {e}"]) from e
            if not isinstance(data, dict):
                raise InvalidParameterError([f"parameters file {path} must contain a mapping"])
            flat = flatten(data)
            _check_declared(bundle, flat, source=str(path))
            merged.update(flat)
        return merged

    return step


def parse_overrides(overrides: list[str]) -> dict[str, str]:
    """Parse KEY=VALUE strings.

    Raises:
        InvalidParameterError: Listing every override without a '='.
    """
    parsed: dict[str, str] = {}
    bad: list[str] = []
    for item in overrides:
        key, sep, value = item.partition("=")
        if not sep or not key:
            bad.append(f"wrong format for parameter {item!r}, expected KEY=VALUE")
            continue
        parsed[key.strip()] = value
    if bad:
        raise InvalidParameterError(bad)
    return parsed


def with_command_line_parameters(overrides: list[str]) -> MergeStep:
    """Values from --set KEY=VALUE flags."""

    def step(bundle: Bundle, values: dict[str, Any]) -> dict[str, Any]:
        parsed = parse_overrides(overrides)
        _check_declared(bundle, parsed, source="command line")
        return {**values, **parsed}

    return step


def with_orchestrator_parameters(orchestrator: str, kubernetes_namespace: str) -> MergeStep:
    """Orchestrator and namespace, for bundles that declare them."""

    def step(bundle: Bundle, values: dict[str, Any]) -> dict[str, Any]:
        merged = dict(values)
        if orchestrator and PARAMETER_ORCHESTRATOR in bundle.parameters:
            merged[PARAMETER_ORCHESTRATOR] = orchestrator
        if kubernetes_namespace and PARAMETER_KUBERNETES_NAMESPACE in bundle.parameters:
            merged[PARAMETER_KUBERNETES_NAMESPACE] = kubernetes_namespace
        return merged

    return step


def with_send_registry_auth(send_registry_auth: bool) -> MergeStep:
    """Registry-credential sharing flag, for bundles that declare it."""

    def step(bundle: Bundle, values: dict[str, Any]) -> dict[str, Any]:
        if PARAMETER_SHARE_REGISTRY_CREDS not in bundle.parameters:
            return values
        return {**values, PARAMETER_SHARE_REGISTRY_CREDS: send_registry_auth}

    return step


# ── Pipeline ────────────────────────────────────────────────────


def values_or_defaults(values: dict[str, Any], bundle: Bundle) -> dict[str, Any]:
    """Finalize values: fill defaults, convert types, enforce constraints.

    Raises:
        UnknownParameterError: If a value targets an undeclared parameter.
        InvalidParameterError: Listing every conversion, enum or
            required-parameter problem.
    """
    _check_declared(bundle, values, source="merged values")

    final: dict[str, Any] = {}
    problems: list[str] = []
    for name, definition in sorted(bundle.parameters.items()):
        raw = values.get(name, definition.default)
        if raw is None:
            if definition.required:
                problems.append(f"parameter {name!r} is required")
            continue
        try:
            value = convert_value(definition, raw)
        except ValueError as e:
            problems.append(f"parameter {name!r}: {e}")
            continue
        if definition.allowed_values is not None and value not in definition.allowed_values:
            problems.append(
                f"parameter {name!r}: {value!r} is not one of {definition.allowed_values!r}"
            )
            continue
        final[name] = value

    if problems:
        raise InvalidParameterError(problems)
    return final


def merge_parameters(bundle: Bundle, *steps: MergeStep) -> dict[str, Any]:
    """Run the pipeline from bundle defaults and finalize the result."""
    values = bundle.defaults()
    for step in steps:
        values = step(bundle, values)
    return values_or_defaults(values, bundle)


def merge_bundle_parameters(claim: Claim, *steps: MergeStep) -> None:
    """Merge parameters for the claim's bundle and store them on the claim."""
    if claim.bundle is None:
        raise ValueError("claim has no bundle to merge parameters for")
    claim.parameters = merge_parameters(claim.bundle, *steps)
    logger.debug("Merged %d parameter(s) for %s", len(claim.parameters), claim.installation)
