"""
Tests for the engine: target resolution and operation building.
"""

import io

import pytest

from bundlectl.adapters.mock import MockDriver
from bundlectl.adapters.registry import DriverRegistry
from bundlectl.core.engine.credentials import ResolvedCredentials
from bundlectl.core.engine.runner import build_operation, parameter_env_name, run_action
from bundlectl.core.engine.target import (
    required_bind_mount,
    resolve_target,
    target_context_name,
)
from bundlectl.core.errors import TargetError
from bundlectl.core.models.bundle import Bundle
from bundlectl.core.models.claim import new_claim
from bundlectl.core.models.settings import Settings, TargetContext

from conftest import bundle_data

# ── Target ───────────────────────────────────────────────────────────


class TestTargetContextName:
    def test_explicit_wins(self, monkeypatch):
        monkeypatch.setenv("BUNDLECTL_TARGET_CONTEXT", "env")
        assert target_context_name("flag", Settings(current_context="cfg")) == "flag"

    def test_env_over_config(self, monkeypatch):
        monkeypatch.setenv("BUNDLECTL_TARGET_CONTEXT", "env")
        assert target_context_name(None, Settings(current_context="cfg")) == "env"

    def test_config_then_default(self):
        assert target_context_name("", Settings(current_context="cfg")) == "cfg"
        assert target_context_name("", Settings()) == "default"


class TestResolveTarget:
    def test_default_is_swarm(self):
        target = resolve_target(None, Settings())
        assert target.name == "default"
        assert target.orchestrator == "swarm"
        assert target.kubernetes_namespace == "default"

    def test_context_orchestrator_and_namespace(self):
        settings = Settings(
            contexts=[
                TargetContext(name="k8s", orchestrator="kubernetes", kubernetes_namespace="apps")
            ]
        )
        target = resolve_target("k8s", settings)
        assert target.orchestrator == "kubernetes"
        assert target.kubernetes_namespace == "apps"

    def test_flags_override_context(self):
        settings = Settings(contexts=[TargetContext(name="k8s", orchestrator="kubernetes")])
        target = resolve_target("k8s", settings, orchestrator="swarm", kubernetes_namespace="ns")
        assert target.orchestrator == "swarm"
        assert target.kubernetes_namespace == "ns"

    def test_unknown_context(self):
        with pytest.raises(TargetError, match="known contexts: default"):
            resolve_target("missing", Settings())

    def test_unknown_orchestrator(self):
        settings = Settings(contexts=[TargetContext(name="odd", orchestrator="nomad")])
        with pytest.raises(TargetError, match="nomad"):
            resolve_target("odd", settings)


class TestBindMount:
    def test_swarm_on_socket(self):
        mount = required_bind_mount(resolve_target(None, Settings()))
        assert mount.source == "/var/run/docker.sock"
        assert mount.target == "/var/run/docker.sock"

    def test_kubernetes_none(self):
        assert required_bind_mount(resolve_target(None, Settings(), "kubernetes")) is None

    def test_tcp_none(self):
        settings = Settings(contexts=[TargetContext(name="r", docker_host="tcp://r:2376")])
        assert required_bind_mount(resolve_target("r", settings)) is None


# ── Runner ───────────────────────────────────────────────────────────


def _claim(**bundle_extra):
    claim = new_claim("myapp")
    claim.bundle = Bundle.model_validate(bundle_data(**bundle_extra))
    return claim


class TestBuildOperation:
    def test_parameter_env_name(self):
        assert parameter_env_name("web.port") == "CNAB_P_WEB_PORT"
        assert parameter_env_name("log-level") == "CNAB_P_LOG_LEVEL"

    def test_parameter_destinations(self):
        claim = _claim(
            parameters={
                "port": {"type": "integer"},
                "debug": {"type": "boolean", "env": "APP_DEBUG"},
                "config": {"path": "/cnab/app/config.txt"},
            }
        )
        claim.parameters = {"port": 80, "debug": True, "config": "x=1"}
        op = build_operation(claim, ResolvedCredentials(), resolve_target(None, Settings()))
        assert op.environment["CNAB_P_PORT"] == "80"
        assert op.environment["APP_DEBUG"] == "true"
        assert op.files == {"/cnab/app/config.txt": "x=1"}
        assert "CNAB_P_CONFIG" not in op.environment

    def test_only_declared_credentials(self):
        claim = _claim(credentials={"token": {"env": "TOKEN"}, "ca": {"path": "/cnab/app/ca"}})
        creds = ResolvedCredentials(values={"token": "t", "ca": "c", "undeclared": "u"})
        op = build_operation(claim, creds, resolve_target(None, Settings()))
        assert op.environment["TOKEN"] == "t"
        assert op.files["/cnab/app/ca"] == "c"
        assert sorted(op.secrets) == ["/cnab/app/ca", "TOKEN"]
        assert "u" not in op.environment.values()

    def test_cnab_environment(self):
        claim = _claim()
        op = build_operation(claim, ResolvedCredentials(), resolve_target(None, Settings()))
        assert op.environment["CNAB_INSTALLATION_NAME"] == "myapp"
        assert op.environment["CNAB_REVISION"] == claim.revision
        assert op.environment["CNAB_BUNDLE_NAME"] == "myapp"
        assert op.environment["CNAB_BUNDLE_VERSION"] == "0.1.0"
        assert "DOCKER_HOST" not in op.environment

    def test_no_bundle(self):
        with pytest.raises(ValueError):
            build_operation(new_claim("x"), ResolvedCredentials(), resolve_target(None, Settings()))


class TestRunAction:
    def test_success_updates_claim(self):
        claim = _claim()
        registry = DriverRegistry()
        registry.register(MockDriver())
        receipt = run_action(
            claim, ResolvedCredentials(), registry, "mock", io.StringIO(),
            resolve_target(None, Settings()),
        )
        assert receipt.ok
        assert claim.status == "succeeded"
        assert claim.result.action == "install"

    def test_failure_updates_claim(self):
        claim = _claim()
        mock = MockDriver()
        mock.set_failure("myapp", "bad things")
        registry = DriverRegistry()
        registry.register(mock)
        receipt = run_action(
            claim, ResolvedCredentials(), registry, "mock", io.StringIO(),
            resolve_target(None, Settings()),
        )
        assert receipt.failed
        assert claim.failed
        assert claim.result.message == "bad things"
