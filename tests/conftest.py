"""
Shared test fixtures and configuration.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from bundlectl.adapters.mock import MockDriver
from bundlectl.adapters.registry import DriverRegistry
from bundlectl.core.errors import ResolutionError
from bundlectl.core.models.bundle import Bundle
from bundlectl.core.models.reference import Reference
from bundlectl.core.models.settings import Settings
from bundlectl.core.services.registry_client import RegistryClient


def bundle_data(name: str = "myapp", version: str = "0.1.0", **extra: Any) -> dict[str, Any]:
    """A minimal valid bundle definition."""
    data: dict[str, Any] = {
        "name": name,
        "version": version,
        "invocation_images": [{"image": f"example/{name}-installer:{version}"}],
    }
    data.update(extra)
    return data


class FakeRegistryClient(RegistryClient):
    """In-memory registry: serves bundles by reference string."""

    def __init__(self, bundles: dict[str, Bundle] | None = None):
        self.bundles = dict(bundles or {})
        self.pulled: list[str] = []

    def pull(self, ref: Reference) -> Bundle:
        self.pulled.append(str(ref))
        if str(ref) not in self.bundles:
            raise ResolutionError(f"{ref}: not found in registry")
        return self.bundles[str(ref)]


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo setup_logging calls made by CLI tests."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of the tests."""
    for name in (
        "BUNDLECTL_CONFIG",
        "BUNDLECTL_DRIVER",
        "BUNDLECTL_EXPERIMENTAL",
        "BUNDLECTL_TARGET_CONTEXT",
        "BUNDLECTL_LOG_LEVEL",
        "BUNDLECTL_LOG_FILE",
        "BUNDLECTL_LOG_FILE_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """An empty configuration directory."""
    d = tmp_path / "config"
    d.mkdir()
    return d


@pytest.fixture
def write_app(tmp_path: Path) -> Callable[..., Path]:
    """Write an application directory holding a bundle.yml; returns its path."""

    def _write(name: str = "myapp", **extra: Any) -> Path:
        app = tmp_path / "apps" / name
        app.mkdir(parents=True, exist_ok=True)
        (app / "bundle.yml").write_text(yaml.safe_dump(bundle_data(name, **extra)))
        return app

    return _write


@pytest.fixture
def mock_driver() -> MockDriver:
    return MockDriver()


@pytest.fixture
def drivers(mock_driver: MockDriver) -> DriverRegistry:
    registry = DriverRegistry()
    registry.register(mock_driver)
    return registry


@pytest.fixture
def settings() -> Settings:
    """Settings that dispatch to the mock driver."""
    return Settings(driver="mock")


@pytest.fixture
def fake_registry() -> FakeRegistryClient:
    return FakeRegistryClient()
