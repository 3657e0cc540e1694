"""
Docker driver: run the bundle's invocation image with the docker CLI.

The image's /cnab/app/run entrypoint receives the action through
CNAB_ACTION and the installation name through CNAB_INSTALLATION_NAME.
Parameters and credentials arrive as environment variables or files.
Uses the docker CLI: never the Docker API directly.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
import time
from pathlib import Path
from typing import TextIO

from bundlectl.adapters.base import Driver
from bundlectl.core.models.operation import Operation, Receipt

logger = logging.getLogger(__name__)

ENTRYPOINT = "/cnab/app/run"


class DockerDriver(Driver):
    """Run invocation images as one-shot containers.

    Values never appear on the docker command line: environment values
    are handed over through the CLI's own environment (``-e KEY``), and
    files are bind-mounted read-only from a private temp directory.
    """

    def __init__(self, docker_binary: str = "docker", timeout: int = 1800):
        self._binary = docker_binary
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "docker"

    def is_available(self) -> bool:
        return shutil.which(self._binary) is not None

    def validate(self, operation: Operation) -> tuple[bool, str]:
        if not operation.image.image:
            return False, "invocation image has no image reference"
        if operation.image.image_type not in ("docker", "oci"):
            return False, f"unsupported invocation image type {operation.image.image_type!r}"
        if not self.is_available():
            return False, f"{self._binary} CLI not found on PATH"
        return True, ""

    def build_command(self, operation: Operation, files_dir: Path | None = None) -> list[str]:
        """The docker run command line for an operation."""
        args = [self._binary, "run", "--rm"]

        for key in sorted(operation.environment):
            args += ["-e", key]

        for mount in operation.bind_mounts:
            spec = f"{mount.source}:{mount.target}"
            if mount.read_only:
                spec += ":ro"
            args += ["-v", spec]

        if files_dir is not None:
            for i, target in enumerate(sorted(operation.files)):
                args += ["-v", f"{files_dir / str(i)}:{target}:ro"]

        args += [operation.image.image, ENTRYPOINT]
        return args

    def execute(self, operation: Operation, out: TextIO) -> Receipt:
        start = time.monotonic()
        with tempfile.TemporaryDirectory(prefix="bundlectl-files-") as tmp:
            files_dir = Path(tmp)
            for i, target in enumerate(sorted(operation.files)):
                path = files_dir / str(i)
                path.write_text(operation.files[target], encoding="utf-8")
                path.chmod(0o600)

            command = self.build_command(operation, files_dir if operation.files else None)
            env = {**os.environ, **operation.environment}
            if operation.docker_host:
                env["DOCKER_HOST"] = operation.docker_host

            logger.debug("Executing: %s", " ".join(command))
            try:
                result = subprocess.run(
                    command,
                    env=env,
                    capture_output=True,
                    text=True,
                    timeout=self._timeout,
                )
            except subprocess.TimeoutExpired:
                return Receipt.failure(
                    driver=self.name,
                    installation=operation.installation,
                    error=f"{operation.action} timed out after {self._timeout}s",
                    metadata={"image": operation.image.image},
                )
            except OSError as e:
                return Receipt.failure(
                    driver=self.name,
                    installation=operation.installation,
                    error=f"Cannot run {self._binary}: {e}",
                )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if result.stdout:
            out.write(result.stdout)

        if result.returncode == 0:
            return Receipt.success(
                driver=self.name,
                installation=operation.installation,
                output=result.stdout.strip(),
                duration_ms=elapsed_ms,
                metadata={"image": operation.image.image, "return_code": 0},
            )
        return Receipt.failure(
            driver=self.name,
            installation=operation.installation,
            error=result.stderr.strip() or f"container exited with code {result.returncode}",
            output=result.stdout.strip(),
            duration_ms=elapsed_ms,
            metadata={"image": operation.image.image, "return_code": result.returncode},
        )
