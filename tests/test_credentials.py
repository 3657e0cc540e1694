"""
Tests for credential resolution: sources, ambiguity and missing credentials.
"""

import json
from pathlib import Path

import pytest

from bundlectl.core.engine.credentials import (
    CREDENTIAL_REGISTRY_AUTH,
    CREDENTIAL_TARGET_CONTEXT,
    ResolvedCredentials,
    prepare_credential_set,
    validate_credentials,
    with_named_credential_sets,
    with_registry_auth_credential,
    with_target_context_credential,
)
from bundlectl.core.errors import AmbiguousCredentialError, MissingCredentialError
from bundlectl.core.models.bundle import Bundle
from bundlectl.core.models.settings import RegistryAuth, TargetContext
from bundlectl.core.persistence.credential_store import CredentialStore

from conftest import bundle_data


@pytest.fixture
def bundle() -> Bundle:
    return Bundle.model_validate(
        bundle_data(credentials={"a": {"env": "A"}, "b": {"path": "/cnab/app/b"}})
    )


@pytest.fixture
def cred_root(tmp_path: Path) -> Path:
    root = tmp_path / "credentials" / "default"
    root.mkdir(parents=True)
    return root


def _write_set(root: Path, name: str, creds: dict[str, dict]) -> Path:
    lines = ["credentials:"]
    for cred, source in creds.items():
        (kind, value), = source.items()
        lines += [f"  - name: {cred}", "    source:", f"      {kind}: {value}"]
    path = root / f"{name}.yaml"
    path.write_text("\n".join(lines) + "\n")
    return path


class TestValidateCredentials:
    def test_missing_names_exactly_the_unresolved(self, bundle: Bundle):
        creds = ResolvedCredentials(values={"a": "x"})
        with pytest.raises(MissingCredentialError) as exc:
            validate_credentials(creds, bundle)
        assert exc.value.names == ["b"]

    def test_all_missing_reported_at_once(self, bundle: Bundle):
        with pytest.raises(MissingCredentialError) as exc:
            validate_credentials(ResolvedCredentials(), bundle)
        assert exc.value.names == ["a", "b"]

    def test_optional_may_be_missing(self):
        bundle = Bundle.model_validate(
            bundle_data(credentials={"opt": {"env": "OPT", "required": False}})
        )
        validate_credentials(ResolvedCredentials(), bundle)

    def test_reason_carried(self, bundle: Bundle):
        creds = ResolvedCredentials(values={"a": "x"}, problems={"b": "cannot read /nope"})
        with pytest.raises(MissingCredentialError) as exc:
            validate_credentials(creds, bundle)
        assert exc.value.reasons == {"b": "cannot read /nope"}
        assert "cannot read /nope" in str(exc.value)


class TestNamedCredentialSets:
    def test_by_store_name(self, bundle: Bundle, cred_root: Path):
        _write_set(cred_root, "prod", {"a": {"value": "A"}, "b": {"value": "B"}})
        source = with_named_credential_sets(CredentialStore(cred_root), ["prod"])
        creds = prepare_credential_set(bundle, source)
        assert creds.values == {"a": "A", "b": "B"}
        validate_credentials(creds, bundle)

    def test_by_file_path(self, bundle: Bundle, tmp_path: Path, cred_root: Path):
        path = _write_set(tmp_path, "local", {"a": {"value": "A"}})
        source = with_named_credential_sets(CredentialStore(cred_root), [str(path)])
        assert prepare_credential_set(bundle, source).values == {"a": "A"}

    def test_ambiguous_across_sets(self, bundle: Bundle, cred_root: Path):
        _write_set(cred_root, "one", {"a": {"value": "one"}})
        _write_set(cred_root, "two", {"a": {"value": "two"}})
        source = with_named_credential_sets(CredentialStore(cred_root), ["one", "two"])
        with pytest.raises(AmbiguousCredentialError) as exc:
            prepare_credential_set(bundle, source)
        assert exc.value.name == "a"

    def test_unresolvable_env_becomes_missing(self, bundle: Bundle, cred_root: Path, monkeypatch):
        monkeypatch.delenv("UNSET_TOKEN", raising=False)
        _write_set(cred_root, "prod", {"a": {"value": "A"}, "b": {"env": "UNSET_TOKEN"}})
        source = with_named_credential_sets(CredentialStore(cred_root), ["prod"])
        creds = prepare_credential_set(bundle, source)
        with pytest.raises(MissingCredentialError) as exc:
            validate_credentials(creds, bundle)
        assert exc.value.names == ["b"]
        assert "UNSET_TOKEN" in exc.value.reasons["b"]


class TestInjectedCredentials:
    def test_target_context(self, bundle: Bundle):
        ctx = TargetContext(name="prod", docker_host="tcp://prod:2376")
        creds = prepare_credential_set(bundle, with_target_context_credential(ctx, "swarm"))
        payload = json.loads(creds.values[CREDENTIAL_TARGET_CONTEXT])
        assert payload["name"] == "prod"
        assert payload["orchestrator"] == "swarm"

    def test_registry_auth_only_when_requested(self, bundle: Bundle):
        auths = {"registry.example.com": RegistryAuth(username="u", password="p")}
        assert CREDENTIAL_REGISTRY_AUTH not in prepare_credential_set(
            bundle, with_registry_auth_credential(False, auths)
        )
        creds = prepare_credential_set(bundle, with_registry_auth_credential(True, auths))
        payload = json.loads(creds.values[CREDENTIAL_REGISTRY_AUTH])
        assert payload["registry.example.com"]["username"] == "u"

    def test_user_set_cannot_shadow_injected(self, bundle: Bundle, cred_root: Path):
        _write_set(cred_root, "prod", {CREDENTIAL_TARGET_CONTEXT: {"value": "x"}})
        with pytest.raises(AmbiguousCredentialError):
            prepare_credential_set(
                bundle,
                with_named_credential_sets(CredentialStore(cred_root), ["prod"]),
                with_target_context_credential(TargetContext(name="default"), "swarm"),
            )
