"""
Driver base: the protocol contract between the engine and runtimes.

This defines the abstract interface every execution driver must
implement. The engine only talks to drivers through this protocol,
never directly to docker or kubectl.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TextIO

from bundlectl.core.models.operation import Operation, Receipt


class Driver(ABC):
    """Abstract base class for all execution drivers.

    Drivers carry out bundle operations and return receipts.
    They NEVER raise exceptions: failures are captured in the Receipt,
    with the driver's diagnostic output as the receipt error.

    To create a new driver:
        1. Subclass Driver
        2. Implement name, is_available, validate, execute
        3. Register it in the DriverRegistry
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The driver identifier (e.g., 'docker', 'debug')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the driver's underlying tool is available.

        Should be fast and never raise.
        """

    @abstractmethod
    def validate(self, operation: Operation) -> tuple[bool, str]:
        """Validate that the operation can be executed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, operation: Operation, out: TextIO) -> Receipt:
        """Execute the operation and return a receipt.

        Regular output goes to ``out``. MUST never raise exceptions.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
