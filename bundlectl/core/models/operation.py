"""
Operation and Receipt models: the execution contract.

Operations describe one bundle action to run. Receipts describe the
result. This is the fundamental I/O contract between the engine and
drivers: the engine sends Operations, drivers return Receipts. Never
exceptions.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from bundlectl.core.models.bundle import InvocationImage


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class BindMount(BaseModel):
    """A host path mounted into the invocation image."""

    source: str
    target: str
    read_only: bool = False


class Operation(BaseModel):
    """A bundle action to be carried out by a driver.

    Parameter and credential values have already been mapped to their
    destinations: ``environment`` holds variables, ``files`` holds
    file contents keyed by their path inside the image.
    """

    action: str
    installation: str
    revision: str
    bundle_name: str = ""
    image: InvocationImage

    environment: dict[str, str] = Field(default_factory=dict)
    files: dict[str, str] = Field(default_factory=dict)
    bind_mounts: list[BindMount] = Field(default_factory=list)

    # Environment keys and file paths that carry credential values
    secrets: list[str] = Field(default_factory=list)

    target_context: str = ""
    docker_host: str = ""


class Receipt(BaseModel):
    """Result of a driver execution.

    Receipts capture the full outcome of an operation. The driver
    NEVER raises exceptions: failures are captured here, with the
    driver's diagnostic output in ``error``.
    """

    driver: str
    installation: str
    status: Literal["ok", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the operation succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the operation failed."""
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        driver: str,
        installation: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            driver=driver,
            installation=installation,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        driver: str,
        installation: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            driver=driver,
            installation=installation,
            status="failed",
            error=error,
            **kwargs,
        )
