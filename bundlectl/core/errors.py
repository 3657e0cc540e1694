"""
Install errors: the failure taxonomy of the installation engine.

Every error that aborts an install is an ``InstallError``. The CLI
catches the base class, prints the message to stderr and exits 1.
Errors raised before the action runs leave no side effects behind;
``ActionError`` and ``PersistenceError`` are only raised after the
claim has been (or has tried to be) persisted.
"""

from __future__ import annotations


class InstallError(Exception):
    """Base class for all installation failures."""


class TargetError(InstallError):
    """No usable target context or orchestrator."""


class ResolutionError(InstallError):
    """The application bundle cannot be located or loaded."""


class ValidationError(InstallError):
    """A bundle or installation name is structurally invalid."""

    def __init__(self, message: str, problems: list[str] | None = None):
        self.problems = list(problems or [])
        if self.problems:
            message = f"{message}:\n" + "\n".join(f"  - {p}" for p in self.problems)
        super().__init__(message)


class AlreadyExistsError(InstallError):
    """An installation with the same name is already in place."""

    def __init__(self, installation: str):
        self.installation = installation
        super().__init__(
            f"Installation {installation!r} already exists, "
            "use 'bundlectl upgrade' instead"
        )


# ── Parameters ───────────────────────────────────────────────────


class ParameterError(InstallError):
    """Base class for parameter merge failures."""


class UnknownParameterError(ParameterError):
    """An override targets a parameter the bundle does not declare."""

    def __init__(self, names: list[str], source: str = ""):
        self.names = sorted(names)
        self.source = source
        where = f" (from {source})" if source else ""
        joined = ", ".join(repr(n) for n in self.names)
        super().__init__(f"parameter(s) {joined} not defined in the bundle{where}")


class InvalidParameterError(ParameterError):
    """Parameter values do not satisfy the bundle's constraints."""

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("invalid parameters:\n" + "\n".join(f"  - {p}" for p in self.problems))


# ── Credentials ──────────────────────────────────────────────────


class CredentialError(InstallError):
    """Base class for credential resolution failures."""


class MissingCredentialError(CredentialError):
    """One or more required credentials could not be resolved."""

    def __init__(self, names: list[str], reasons: dict[str, str] | None = None):
        self.names = sorted(names)
        self.reasons = dict(reasons or {})
        lines = []
        for name in self.names:
            reason = self.reasons.get(name)
            lines.append(f"  - {name}: {reason}" if reason else f"  - {name}")
        super().__init__("bundle requires missing credential(s):\n" + "\n".join(lines))


class AmbiguousCredentialError(CredentialError):
    """The same credential is provided by more than one credential set."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"ambiguous credential resolution: {name!r} is present in multiple credential sets"
        )


# ── Execution & persistence ──────────────────────────────────────


class ActionError(InstallError):
    """The execution driver reported a failure.

    ``output`` is the driver's captured diagnostic text, verbatim.
    ``persistence_error`` is set when recording the failed attempt
    also failed.
    """

    def __init__(
        self,
        installation: str,
        output: str,
        persistence_error: PersistenceError | None = None,
    ):
        self.installation = installation
        self.output = output
        self.persistence_error = persistence_error
        message = f"install failed: {output}"
        if persistence_error is not None:
            message += f"\nadditionally, the installation could not be recorded: {persistence_error}"
        super().__init__(message)


class PersistenceError(InstallError):
    """The installation store could not be read or written."""
