"""
Debug driver: print the operation instead of running it.

Useful to check what an install would hand to the invocation image:
parameters, credentials (values masked), mounts and files.
"""

from __future__ import annotations

import json
from typing import TextIO

from bundlectl.adapters.base import Driver
from bundlectl.core.models.operation import Operation, Receipt

_MASK = "********"


class DebugDriver(Driver):
    """Write the operation as JSON to the output sink."""

    @property
    def name(self) -> str:
        return "debug"

    def is_available(self) -> bool:
        return True

    def validate(self, operation: Operation) -> tuple[bool, str]:
        return True, ""

    def execute(self, operation: Operation, out: TextIO) -> Receipt:
        data = operation.model_dump(mode="json")
        secrets = set(operation.secrets)
        for section in ("environment", "files"):
            data[section] = {k: (_MASK if k in secrets else v) for k, v in data[section].items()}

        rendered = json.dumps(data, indent=2, sort_keys=True)
        out.write(rendered + "\n")
        return Receipt.success(
            driver=self.name,
            installation=operation.installation,
            output=rendered,
        )
