"""
Bundle model: the immutable definition of an installable application.

A bundle declares what it needs (parameters, credentials), what it can
do (actions) and what runs it (invocation images). Bundles are loaded
from files, directories, the local cache or a registry, and are never
mutated after load.
"""

from __future__ import annotations

import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from bundlectl.core.errors import ValidationError

PARAMETER_TYPES = ("string", "integer", "number", "boolean")

_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0"}


class InvocationImage(BaseModel):
    """The image that carries out bundle actions."""

    model_config = ConfigDict(frozen=True)

    image: str
    image_type: Literal["docker", "oci"] = "docker"


class ParameterDefinition(BaseModel):
    """A declared bundle parameter."""

    model_config = ConfigDict(frozen=True)

    type: str = "string"
    default: Any = None
    required: bool = False
    allowed_values: list[Any] | None = None
    description: str = ""

    # Destination inside the invocation image
    env: str | None = None
    path: str | None = None


class CredentialRequirement(BaseModel):
    """A credential the bundle needs at action time."""

    model_config = ConfigDict(frozen=True)

    env: str | None = None
    path: str | None = None
    required: bool = True
    description: str = ""


class ActionDefinition(BaseModel):
    """A custom action the bundle supports."""

    model_config = ConfigDict(frozen=True)

    modifies: bool = False
    description: str = ""


class Bundle(BaseModel):
    """Root bundle definition: loaded from bundle.json / bundle.yml."""

    model_config = ConfigDict(frozen=True)

    schema_version: str = "v1"
    name: str = ""
    version: str = ""
    description: str = ""
    maintainers: list[str] = Field(default_factory=list)

    invocation_images: list[InvocationImage] = Field(default_factory=list)
    parameters: dict[str, ParameterDefinition] = Field(default_factory=dict)
    credentials: dict[str, CredentialRequirement] = Field(default_factory=dict)
    actions: dict[str, ActionDefinition] = Field(default_factory=dict)

    def defaults(self) -> dict[str, Any]:
        """Declared default values, skipping parameters without one."""
        return {
            name: definition.default
            for name, definition in self.parameters.items()
            if definition.default is not None
        }

    def required_credentials(self) -> list[str]:
        return sorted(name for name, req in self.credentials.items() if req.required)


def convert_value(definition: ParameterDefinition, value: Any) -> Any:
    """Convert a raw value to the parameter's declared type.

    Strings (command line, env) are parsed; native values (YAML files,
    defaults) are type-checked.

    Raises:
        ValueError: If the value cannot be represented as the declared type.
    """
    kind = definition.type
    if kind == "string":
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float, str)):
            return str(value)
        raise ValueError(f"expected a string, got {type(value).__name__}")

    if kind == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise ValueError(f"expected a boolean, got {value!r}")

    if kind == "integer":
        if isinstance(value, bool):
            raise ValueError(f"expected an integer, got {value!r}")
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
        raise ValueError(f"expected an integer, got {value!r}")

    if kind == "number":
        if isinstance(value, bool):
            raise ValueError(f"expected a number, got {value!r}")
        number: int | float | None = None
        if isinstance(value, (int, float)):
            number = value
        elif isinstance(value, str):
            for parse in (int, float):
                try:
                    number = parse(value.strip())
                    break
                except ValueError:
                    continue
        if number is None or (isinstance(number, float) and not math.isfinite(number)):
            raise ValueError(f"expected a finite number, got {value!r}")
        return number

    raise ValueError(f"unknown parameter type {kind!r}")


def validate_bundle(bundle: Bundle) -> None:
    """Check that a bundle is well-formed enough to install.

    Raises:
        ValidationError: Listing every problem found.
    """
    problems: list[str] = []

    if not bundle.name:
        problems.append("bundle name is required")
    if not bundle.version:
        problems.append("bundle version is required")
    if not bundle.invocation_images:
        problems.append("at least one invocation image is required")
    for i, image in enumerate(bundle.invocation_images):
        if not image.image:
            problems.append(f"invocation image #{i} has no image reference")

    for name, definition in sorted(bundle.parameters.items()):
        if definition.type not in PARAMETER_TYPES:
            problems.append(
                f"parameter {name!r} has unknown type {definition.type!r} "
                f"(expected one of: {', '.join(PARAMETER_TYPES)})"
            )
            continue
        if definition.default is None:
            continue
        try:
            default = convert_value(definition, definition.default)
        except ValueError as e:
            problems.append(f"parameter {name!r} default: {e}")
            continue
        if definition.allowed_values is not None and default not in definition.allowed_values:
            problems.append(
                f"parameter {name!r} default {default!r} is not one of {definition.allowed_values!r}"
            )

    for name, requirement in sorted(bundle.credentials.items()):
        if not requirement.env and not requirement.path:
            problems.append(f"credential {name!r} needs an 'env' or 'path' destination")

    if problems:
        raise ValidationError(f"invalid bundle {bundle.name or '<unnamed>'!r}", problems)
