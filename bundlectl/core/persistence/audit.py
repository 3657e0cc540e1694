"""
Audit ledger: append-only history of install attempts.

Every attempt that reaches the execution driver writes an entry to an
NDJSON (newline-delimited JSON) file next to the installation records.
The installation store only keeps the latest claim per name; the
ledger keeps every revision.

Ledger failures are logged, never raised: the claim is the record of
truth, the ledger is history.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_FILE = "audit.ndjson"


class AuditEntry(BaseModel):
    """A single audit log entry."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())

    # Which installation
    installation: str = ""
    revision: str = ""
    target_context: str = ""
    action: str = ""

    # What was installed
    bundle: str = ""
    bundle_version: str = ""
    bundle_reference: str = ""

    # Results
    status: str = ""               # succeeded, failed, indeterminate
    driver: str = ""
    duration_ms: int = 0
    persisted: bool = True

    errors: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)


class AuditWriter:
    """Append-only audit ledger writer."""

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append an audit entry to the ledger."""
        data = entry.model_dump(mode="json")
        line = json.dumps(data, ensure_ascii=False) + "\n"

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Audit entry written: %s/%s", entry.installation, entry.revision)
        except OSError as e:
            logger.error("Failed to write audit entry: %s", e)

    def read(self, installation: str | None = None) -> list[AuditEntry]:
        """Read entries back, optionally filtered to one installation.

        Malformed lines are skipped.
        """
        if not self._path.is_file():
            return []

        entries: list[AuditEntry] = []
        with self._path.open(encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = AuditEntry.model_validate(json.loads(line))
                except ValueError:
                    logger.debug("Skipping malformed audit line in %s", self._path)
                    continue
                if installation is None or entry.installation == installation:
                    entries.append(entry)
        return entries
