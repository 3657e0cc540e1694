"""
Tests for parameter merging: layering, conversion and validation.
"""

from pathlib import Path

import pytest

from bundlectl.core.engine.parameters import (
    PARAMETER_KUBERNETES_NAMESPACE,
    PARAMETER_ORCHESTRATOR,
    PARAMETER_SHARE_REGISTRY_CREDS,
    merge_bundle_parameters,
    merge_parameters,
    parse_overrides,
    with_command_line_parameters,
    with_file_parameters,
    with_orchestrator_parameters,
    with_send_registry_auth,
)
from bundlectl.core.errors import InvalidParameterError, UnknownParameterError
from bundlectl.core.models.bundle import Bundle
from bundlectl.core.models.claim import new_claim

from conftest import bundle_data


@pytest.fixture
def bundle() -> Bundle:
    return Bundle.model_validate(
        bundle_data(
            parameters={
                "port": {"type": "integer", "default": 80},
                "replicas": {"type": "integer", "default": 1},
                "mode": {"default": "safe", "allowed_values": ["safe", "fast"]},
                "debug": {"type": "boolean", "default": False},
            }
        )
    )


def _params_file(tmp_path: Path, name: str, body: str) -> str:
    path = tmp_path / name
    path.write_text(body)
    return str(path)


class TestPrecedence:
    def test_defaults_only(self, bundle: Bundle):
        assert merge_parameters(bundle) == {
            "port": 80,
            "replicas": 1,
            "mode": "safe",
            "debug": False,
        }

    def test_overrides_beat_files_beat_defaults(self, bundle: Bundle, tmp_path: Path):
        f = _params_file(tmp_path, "p.yml", "port: 8080\nreplicas: 3\n")
        values = merge_parameters(
            bundle,
            with_file_parameters([f]),
            with_command_line_parameters(["port=9090"]),
        )
        assert values["port"] == 9090       # override
        assert values["replicas"] == 3      # file
        assert values["mode"] == "safe"     # default

    def test_later_files_win(self, bundle: Bundle, tmp_path: Path):
        a = _params_file(tmp_path, "a.yml", "port: 1\nreplicas: 2\n")
        b = _params_file(tmp_path, "b.yml", "port: 3\n")
        values = merge_parameters(bundle, with_file_parameters([a, b]))
        assert values["port"] == 3
        assert values["replicas"] == 2

    def test_nested_file_keys_flatten(self, tmp_path: Path):
        bundle = Bundle.model_validate(bundle_data(parameters={"web.port": {"type": "integer"}}))
        f = _params_file(tmp_path, "p.yml", "web:\n  port: 8080\n")
        assert merge_parameters(bundle, with_file_parameters([f])) == {"web.port": 8080}

    def test_steps_do_not_mutate_input(self, bundle: Bundle):
        values = {"port": 1}
        with_command_line_parameters(["port=2"])(bundle, values)
        assert values == {"port": 1}


class TestUnknownParameters:
    def test_override(self, bundle: Bundle):
        with pytest.raises(UnknownParameterError) as exc:
            merge_parameters(bundle, with_command_line_parameters(["nope=1", "port=2", "also=3"]))
        assert exc.value.names == ["also", "nope"]
        assert exc.value.source == "command line"

    def test_file(self, bundle: Bundle, tmp_path: Path):
        f = _params_file(tmp_path, "p.yml", "ghost: 1\n")
        with pytest.raises(UnknownParameterError, match="ghost"):
            merge_parameters(bundle, with_file_parameters([f]))


class TestInvalidParameters:
    def test_bad_override_format(self):
        with pytest.raises(InvalidParameterError) as exc:
            parse_overrides(["ok=1", "novalue", "=x"])
        assert len(exc.value.problems) == 2

    def test_value_with_equals(self):
        assert parse_overrides(["url=http://x?a=b"]) == {"url": "http://x?a=b"}

    def test_type_conversion(self, bundle: Bundle):
        values = merge_parameters(bundle, with_command_line_parameters(["debug=true", "port=81"]))
        assert values["debug"] is True
        assert values["port"] == 81

    def test_every_problem_reported(self, bundle: Bundle):
        with pytest.raises(InvalidParameterError) as exc:
            merge_parameters(
                bundle, with_command_line_parameters(["port=eighty", "mode=reckless"])
            )
        joined = "\n".join(exc.value.problems)
        assert "'port'" in joined
        assert "'mode'" in joined

    def test_required_without_value(self):
        bundle = Bundle.model_validate(bundle_data(parameters={"token": {"required": True}}))
        with pytest.raises(InvalidParameterError, match="required"):
            merge_parameters(bundle)

    def test_missing_file(self, bundle: Bundle, tmp_path: Path):
        with pytest.raises(InvalidParameterError, match="cannot load"):
            merge_parameters(bundle, with_file_parameters([str(tmp_path / "missing.yml")]))

    def test_file_not_a_mapping(self, bundle: Bundle, tmp_path: Path):
        f = _params_file(tmp_path, "p.yml", "- a\n- b\n")
        with pytest.raises(InvalidParameterError, match="mapping"):
            merge_parameters(bundle, with_file_parameters([f]))


class TestInjectedParameters:
    def test_only_when_declared(self, bundle: Bundle):
        values = merge_parameters(
            bundle,
            with_orchestrator_parameters("kubernetes", "apps"),
            with_send_registry_auth(True),
        )
        assert PARAMETER_ORCHESTRATOR not in values
        assert PARAMETER_SHARE_REGISTRY_CREDS not in values

    def test_declared(self):
        bundle = Bundle.model_validate(
            bundle_data(
                parameters={
                    PARAMETER_ORCHESTRATOR: {"default": "swarm"},
                    PARAMETER_KUBERNETES_NAMESPACE: {"default": "default"},
                    PARAMETER_SHARE_REGISTRY_CREDS: {"type": "boolean", "default": False},
                }
            )
        )
        values = merge_parameters(
            bundle,
            with_command_line_parameters([f"{PARAMETER_ORCHESTRATOR}=swarm"]),
            with_orchestrator_parameters("kubernetes", "apps"),
            with_send_registry_auth(True),
        )
        assert values[PARAMETER_ORCHESTRATOR] == "kubernetes"
        assert values[PARAMETER_KUBERNETES_NAMESPACE] == "apps"
        assert values[PARAMETER_SHARE_REGISTRY_CREDS] is True


class TestMergeBundleParameters:
    def test_sets_claim_parameters(self, bundle: Bundle):
        claim = new_claim("myapp")
        claim.bundle = bundle
        merge_bundle_parameters(claim, with_command_line_parameters(["replicas=5"]))
        assert claim.parameters["replicas"] == 5

    def test_requires_bundle(self):
        with pytest.raises(ValueError):
            merge_bundle_parameters(new_claim("myapp"))
