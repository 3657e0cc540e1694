"""
Mock driver: test double for execution drivers.

Records every operation it receives and returns success unless told
to fail for a given installation name.
"""

from __future__ import annotations

from typing import TextIO

from bundlectl.adapters.base import Driver
from bundlectl.core.models.operation import Operation, Receipt


class MockDriver(Driver):
    """Configurable in-memory driver."""

    def __init__(
        self,
        driver_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
    ):
        self._name = driver_name
        self._available = available
        self._default_output = default_output
        self._failures: dict[str, str] = {}
        self._call_log: list[Operation] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[Operation]:
        """All operations this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def is_available(self) -> bool:
        return self._available

    def set_failure(self, installation: str, error: str = "Mock failure") -> None:
        """Make operations for an installation fail with ``error``."""
        self._failures[installation] = error

    def validate(self, operation: Operation) -> tuple[bool, str]:
        return True, ""

    def execute(self, operation: Operation, out: TextIO) -> Receipt:
        self._call_log.append(operation)

        if operation.installation in self._failures:
            return Receipt.failure(
                driver=self._name,
                installation=operation.installation,
                error=self._failures[operation.installation],
            )

        out.write(self._default_output + "\n")
        return Receipt.success(
            driver=self._name,
            installation=operation.installation,
            output=self._default_output,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        self._call_log.clear()
        self._failures.clear()
