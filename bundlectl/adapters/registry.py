"""
Driver registry: central dispatch for execution drivers.

The registry is the single point of driver management. The engine
never talks to drivers directly: always through the registry, which
guarantees a Receipt comes back whatever the driver does.
"""

from __future__ import annotations

import logging
import time
from typing import TextIO

from bundlectl.adapters.base import Driver
from bundlectl.core.models.operation import Operation, Receipt

logger = logging.getLogger(__name__)


class DriverRegistry:
    """Registry and dispatcher for execution drivers."""

    def __init__(self) -> None:
        self._drivers: dict[str, Driver] = {}

    def register(self, driver: Driver) -> None:
        name = driver.name
        if name in self._drivers:
            logger.warning("Overwriting existing driver: %s", name)
        self._drivers[name] = driver
        logger.debug("Registered driver: %s", name)

    def list_drivers(self) -> list[str]:
        return list(self._drivers.keys())

    def execute(self, driver_name: str, operation: Operation, out: TextIO) -> Receipt:
        """Run an operation through the named driver.

        Resolves the driver, validates the operation, executes it and
        times it. Never raises: every failure becomes a failed Receipt.
        """
        start_time = time.monotonic()

        driver = self._drivers.get(driver_name)
        if driver is None:
            return Receipt.failure(
                driver=driver_name,
                installation=operation.installation,
                error=(
                    f"No driver registered for {driver_name!r} "
                    f"(available: {', '.join(self.list_drivers()) or 'none'})"
                ),
            )

        try:
            is_valid, error_msg = driver.validate(operation)
        except Exception as e:
            is_valid, error_msg = False, f"validation error: {e}"
        if not is_valid:
            return Receipt.failure(
                driver=driver_name,
                installation=operation.installation,
                error=f"Validation failed: {error_msg}",
            )

        try:
            receipt = driver.execute(operation, out)
        except Exception as e:
            logger.error("Driver %s raised during execution: %s", driver_name, e)
            receipt = Receipt.failure(
                driver=driver_name,
                installation=operation.installation,
                error=f"Unexpected error: {e}",
            )

        receipt.duration_ms = int((time.monotonic() - start_time) * 1000)
        return receipt
