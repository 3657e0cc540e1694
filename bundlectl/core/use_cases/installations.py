"""
Installations use case: list what is installed on a target context.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from bundlectl.core.config.loader import default_config_dir, load_settings
from bundlectl.core.engine.target import target_context_name
from bundlectl.core.errors import PersistenceError, TargetError, ValidationError
from bundlectl.core.models.claim import Claim
from bundlectl.core.models.settings import Settings
from bundlectl.core.persistence.stores import prepare_stores

logger = logging.getLogger(__name__)


@dataclass
class InstallationsResult:
    target_context: str = ""
    installations: list[Claim] = field(default_factory=list)
    unreadable: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "target_context": self.target_context,
            "installations": [
                {
                    "installation": c.installation,
                    "status": c.status,
                    "action": c.result.action,
                    "bundle": c.bundle.name if c.bundle else "",
                    "version": c.bundle.version if c.bundle else "",
                    "modified": c.modified,
                    "revision": c.revision,
                }
                for c in self.installations
            ],
            "unreadable": self.unreadable,
        }


def list_installations(
    target_context: str | None = None,
    config_dir: Path | None = None,
    settings: Settings | None = None,
) -> InstallationsResult:
    """Read every installation record of a target context.

    Unreadable records are reported, not raised, so one corrupt file
    does not hide the others.
    """
    if config_dir is None:
        config_dir = default_config_dir()
    if settings is None:
        settings = load_settings(config_dir)

    name = target_context_name(target_context, settings)
    if settings.get_context(name) is None:
        raise TargetError(f"Target context {name!r} does not exist")

    stores = prepare_stores(config_dir, name)
    result = InstallationsResult(target_context=name)
    for installation in stores.installations.list():
        try:
            claim = stores.installations.read(installation)
        except (PersistenceError, ValidationError) as e:
            logger.warning("%s", e)
            result.unreadable[installation] = str(e)
            continue
        if claim is not None:
            result.installations.append(claim)
    return result
