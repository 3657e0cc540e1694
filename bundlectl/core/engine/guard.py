"""
Installation guard: may a new install proceed over an existing record?

    no record                     → proceed
    failed                        → proceed, with a warning
    succeeded / indeterminate     → AlreadyExistsError

An indeterminate record means an earlier attempt was interrupted while
the driver was running: something may be deployed, so it is treated
like a success and must go through upgrade or uninstall.
"""

from __future__ import annotations

import logging

from bundlectl.core.errors import AlreadyExistsError
from bundlectl.core.models.claim import Claim

logger = logging.getLogger(__name__)


def check_existing_installation(name: str, existing: Claim | None) -> str | None:
    """Apply the guard to the record found for ``name``.

    Returns:
        A warning message when overriding a failed installation, else None.

    Raises:
        AlreadyExistsError: If the existing installation must not be replaced.
    """
    if existing is None:
        return None

    if existing.failed:
        warning = f"WARNING: installing over previously failed installation {name!r}"
        logger.info("Overriding previously failed installation %s", name)
        return warning

    logger.debug("Installation %s exists with status %s", name, existing.status)
    raise AlreadyExistsError(name)
