"""
Credential sets: named collections of credential sources.

A credential set maps credential names to where their values come
from. Sets are stored as YAML in the credential store, or passed
directly as a file path:

    name: production
    credentials:
      - name: kubeconfig
        source:
          path: ~/.kube/config
      - name: token
        source:
          env: DEPLOY_TOKEN
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, model_validator


class ValueSource(BaseModel):
    """Where a credential value comes from. Exactly one field is set."""

    value: str | None = None
    env: str | None = None
    path: str | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> ValueSource:
        given = [k for k in ("value", "env", "path") if getattr(self, k) is not None]
        if len(given) != 1:
            raise ValueError(
                f"a credential source needs exactly one of value/env/path, got {given or 'none'}"
            )
        return self

    def resolve(self) -> str:
        """Resolve the source to its value.

        Raises:
            LookupError: If the environment variable is unset or the file
                cannot be read.
        """
        if self.value is not None:
            return self.value
        if self.env is not None:
            if self.env not in os.environ:
                raise LookupError(f"environment variable {self.env} is not set")
            return os.environ[self.env]
        path = Path(self.path or "").expanduser()
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise LookupError(f"cannot read {path}: {e}") from e


class CredentialStrategy(BaseModel):
    """A named credential and its source."""

    name: str
    source: ValueSource


class CredentialSet(BaseModel):
    """Named set of credential strategies."""

    name: str
    credentials: list[CredentialStrategy] = Field(default_factory=list)

    def resolve(self) -> tuple[dict[str, str], dict[str, str]]:
        """Resolve every strategy in the set.

        Returns:
            (values, problems): resolved values by credential name, and
            the reason each unresolvable credential failed.
        """
        values: dict[str, str] = {}
        problems: dict[str, str] = {}
        for strategy in self.credentials:
            try:
                values[strategy.name] = strategy.source.resolve()
            except LookupError as e:
                problems[strategy.name] = f"{e} (credential set {self.name!r})"
        return values, problems
