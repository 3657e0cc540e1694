"""
Claim: the durable record of one installation.

A claim binds an installation name to the bundle it was installed
from, the merged parameter values, and the outcome of the last action
run against it. Every persisted attempt advances the revision.

Serialized to installations/<context>/<name>.json by the
installation store.
"""

from __future__ import annotations

import re
import uuid
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from bundlectl.core.errors import ValidationError
from bundlectl.core.models.bundle import Bundle

ACTION_INSTALL = "install"

STATUS_INDETERMINATE = "indeterminate"
STATUS_SUCCEEDED = "succeeded"
STATUS_FAILED = "failed"

Status = Literal["indeterminate", "succeeded", "failed"]

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


def generate_revision() -> str:
    """Generate a sortable, unique revision marker."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S-%f")
    short = uuid.uuid4().hex[:8]
    return f"rev-{now}-{short}"


def validate_installation_name(name: str) -> None:
    """Reject names that are empty or unsafe as store keys."""
    if not name or not _NAME_RE.match(name):
        raise ValidationError(
            f"invalid installation name {name!r}: "
            "use letters, digits, '_', '-' or '.', starting with a letter or digit"
        )


class Result(BaseModel):
    """Outcome of the last action run against the installation."""

    action: str = ""
    status: Status = STATUS_INDETERMINATE
    message: str = ""


class Claim(BaseModel):
    """Installation record."""

    # ── Identity ─────────────────────────────────────────────────
    installation: str
    revision: str = Field(default_factory=generate_revision)
    target_context: str = ""

    # ── Timestamps ───────────────────────────────────────────────
    created: str = Field(default_factory=_now_iso)
    modified: str = Field(default_factory=_now_iso)

    # ── What was installed ───────────────────────────────────────
    bundle: Bundle | None = None
    bundle_reference: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)

    # ── Last outcome ─────────────────────────────────────────────
    result: Result = Field(default_factory=Result)

    @property
    def status(self) -> str:
        return self.result.status

    @property
    def failed(self) -> bool:
        return self.result.status == STATUS_FAILED

    def update(self, action: str, status: str, message: str = "") -> None:
        """Record an action outcome and advance the revision."""
        self.result = Result(action=action, status=status, message=message)
        self.modified = _now_iso()
        self.revision = generate_revision()


def new_claim(name: str) -> Claim:
    """Create a fresh claim for an installation name.

    Raises:
        ValidationError: If the name is not a valid installation name.
    """
    validate_installation_name(name)
    return Claim(installation=name)
