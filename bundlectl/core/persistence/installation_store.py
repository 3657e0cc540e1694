"""
Installation store: keyed persistence for installation claims.

Each installation is one JSON document at <root>/<name>.json. The
store is a single-level map: ``store`` overwrites whatever record the
name had before (last writer wins). Writes are atomic.

Unlike the bundle cache, a corrupt record is an error, not a miss:
treating it as absent would let an install clobber a live deployment.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from bundlectl.core.errors import PersistenceError
from bundlectl.core.models.claim import Claim, validate_installation_name
from bundlectl.core.persistence.atomic import atomic_write_text

logger = logging.getLogger(__name__)


class InstallationStore:
    """Read and write installation claims under a directory."""

    def __init__(self, root: Path):
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, name: str) -> Path:
        validate_installation_name(name)
        return self._root / f"{name}.json"

    def read(self, name: str) -> Claim | None:
        """Load the claim for an installation.

        Returns:
            The claim, or None if no record exists for the name.

        Raises:
            PersistenceError: If the record exists but cannot be read.
        """
        path = self.path_for(name)
        if not path.is_file():
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            claim = Claim.model_validate(data)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Cannot read installation {name!r} from {path}: {e}") from e

        logger.debug("Read installation %s (revision=%s)", name, claim.revision)
        return claim

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def store(self, claim: Claim) -> None:
        """Persist a claim, replacing any previous record for its name.

        Raises:
            PersistenceError: If the record cannot be written.
        """
        path = self.path_for(claim.installation)
        content = json.dumps(claim.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"
        try:
            atomic_write_text(path, content, prefix=".claim_")
        except OSError as e:
            logger.error("Failed to store installation %s: %s", claim.installation, e)
            raise PersistenceError(
                f"Cannot store installation {claim.installation!r} to {path}: {e}"
            ) from e
        logger.debug("Stored installation %s (revision=%s)", claim.installation, claim.revision)

    def list(self) -> list[str]:
        """Names of all recorded installations, sorted."""
        if not self._root.is_dir():
            return []
        return sorted(p.stem for p in self._root.glob("*.json") if p.is_file())

    def delete(self, name: str) -> bool:
        """Remove an installation record. Returns False if there was none."""
        path = self.path_for(name)
        if not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise PersistenceError(f"Cannot delete installation {name!r}: {e}") from e
        return True
