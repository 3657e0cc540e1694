"""
Registry references: parse and normalise ``repo/name:tag`` strings.

Normalisation follows the familiar Docker rules: a reference without a
registry host lives on docker.io, single-component repositories live
under ``library/``, and a reference without tag or digest means
``:latest``.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict

DEFAULT_REGISTRY = "docker.io"
DEFAULT_TAG = "latest"

_COMPONENT_RE = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")
_TAG_RE = re.compile(r"^[\w][\w.-]{0,127}$")
_DIGEST_RE = re.compile(r"^[a-z0-9]+(?:[.+_-][a-z0-9]+)*:[a-fA-F0-9]{32,}$")


class Reference(BaseModel):
    """A fully-qualified registry reference."""

    model_config = ConfigDict(frozen=True)

    registry: str
    repository: str
    tag: str | None = None
    digest: str | None = None

    @property
    def name(self) -> str:
        return f"{self.registry}/{self.repository}"

    def __str__(self) -> str:
        if self.digest:
            return f"{self.name}@{self.digest}"
        return f"{self.name}:{self.tag or DEFAULT_TAG}"


def _looks_like_host(component: str) -> bool:
    return "." in component or ":" in component or component == "localhost"


def parse_reference(value: str) -> Reference:
    """Parse a reference string into a normalised Reference.

    Raises:
        ValueError: If the string is not a valid reference.
    """
    if not value or value != value.strip():
        raise ValueError(f"invalid reference format: {value!r}")

    remainder = value
    digest: str | None = None
    if "@" in remainder:
        remainder, digest = remainder.split("@", 1)
        if not _DIGEST_RE.match(digest):
            raise ValueError(f"invalid digest in reference {value!r}")

    tag: str | None = None
    last_slash = remainder.rfind("/")
    last_colon = remainder.rfind(":")
    if last_colon > last_slash:
        remainder, tag = remainder[:last_colon], remainder[last_colon + 1:]
        if not _TAG_RE.match(tag):
            raise ValueError(f"invalid tag in reference {value!r}")

    parts = remainder.split("/")
    if len(parts) > 1 and _looks_like_host(parts[0]):
        registry, path = parts[0], parts[1:]
    else:
        registry, path = DEFAULT_REGISTRY, parts

    if not path or any(not _COMPONENT_RE.match(p) for p in path):
        raise ValueError(f"invalid repository name in reference {value!r}")
    if registry == DEFAULT_REGISTRY and len(path) == 1:
        path = ["library", *path]

    if tag is None and digest is None:
        tag = DEFAULT_TAG

    return Reference(registry=registry, repository="/".join(path), tag=tag, digest=digest)
