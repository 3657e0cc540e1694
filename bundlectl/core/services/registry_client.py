"""
Registry client: pull bundles over the OCI distribution API.

A bundle is published as an image manifest whose config blob is the
bundle definition (JSON). Pulling means:

    GET /v2/<repository>/manifests/<tag|digest>   → manifest
    GET /v2/<repository>/blobs/<config digest>     → bundle.json

Registries listed as insecure are reached over plain HTTP. Basic
credentials come from settings; bearer tokens are negotiated from the
``WWW-Authenticate`` challenge on a 401.
"""

from __future__ import annotations

import base64
import json
import logging
import re
import urllib.error
import urllib.parse
import urllib.request
from abc import ABC, abstractmethod
from typing import Any

from bundlectl.core.errors import ResolutionError
from bundlectl.core.models.bundle import Bundle
from bundlectl.core.models.reference import DEFAULT_REGISTRY, Reference
from bundlectl.core.models.settings import RegistryAuth

logger = logging.getLogger(__name__)

_MANIFEST_TYPES = ", ".join(
    [
        "application/vnd.oci.image.manifest.v1+json",
        "application/vnd.docker.distribution.manifest.v2+json",
    ]
)
_USER_AGENT = "bundlectl/1.0"
_CHALLENGE_RE = re.compile(r'(\w+)="([^"]*)"')


class RegistryClient(ABC):
    """Abstract interface for pulling bundles from a registry."""

    @abstractmethod
    def pull(self, ref: Reference) -> Bundle:
        """Fetch the bundle published at ``ref``.

        Raises:
            ResolutionError: On network failure, HTTP error, missing
                bundle or malformed content.
        """


class HttpRegistryClient(RegistryClient):
    """OCI distribution client built on urllib."""

    def __init__(
        self,
        insecure_registries: list[str] | None = None,
        auths: dict[str, RegistryAuth] | None = None,
        timeout: int = 30,
    ):
        self._insecure = set(insecure_registries or [])
        self._auths = dict(auths or {})
        self._timeout = timeout
        self._tokens: dict[str, str] = {}

    def base_url(self, ref: Reference) -> str:
        host = "registry-1.docker.io" if ref.registry == DEFAULT_REGISTRY else ref.registry
        scheme = "http" if ref.registry in self._insecure else "https"
        return f"{scheme}://{host}/v2/{ref.repository}"

    def pull(self, ref: Reference) -> Bundle:
        base = self.base_url(ref)
        target = ref.digest or ref.tag
        manifest = self._get_json(f"{base}/manifests/{target}", ref, accept=_MANIFEST_TYPES)

        config = manifest.get("config") if isinstance(manifest, dict) else None
        digest = config.get("digest") if isinstance(config, dict) else None
        if not digest:
            raise ResolutionError(f"{ref}: manifest has no config blob, not a bundle")

        data = self._get_json(f"{base}/blobs/{digest}", ref)
        try:
            bundle = Bundle.model_validate(data)
        except ValueError as e:
            raise ResolutionError(f"{ref}: invalid bundle definition: {e}") from e
        logger.info("Pulled bundle %s (%s)", ref, bundle.name)
        return bundle

    # ── HTTP helpers ────────────────────────────────────────────

    def _get_json(self, url: str, ref: Reference, accept: str = "application/json") -> Any:
        body = self._get(url, ref, accept)
        try:
            return json.loads(body)
        except ValueError as e:
            raise ResolutionError(f"{ref}: malformed response from {url}: {e}") from e

    def _get(self, url: str, ref: Reference, accept: str, retry_auth: bool = True) -> bytes:
        headers = {"User-Agent": _USER_AGENT, "Accept": accept}
        authorization = self._authorization(ref)
        if authorization:
            headers["Authorization"] = authorization

        logger.debug("GET %s", url)
        req = urllib.request.Request(url, headers=headers)
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                return resp.read()
        except urllib.error.HTTPError as e:
            if e.code == 401 and retry_auth:
                challenge = e.headers.get("WWW-Authenticate", "") if e.headers else ""
                if challenge.lower().startswith("bearer") and self._fetch_token(ref, challenge):
                    return self._get(url, ref, accept, retry_auth=False)
            if e.code == 404:
                raise ResolutionError(f"{ref}: not found in registry") from e
            raise ResolutionError(f"{ref}: registry returned HTTP {e.code} for {url}") from e
        except (urllib.error.URLError, OSError) as e:
            raise ResolutionError(f"{ref}: cannot reach registry {ref.registry}: {e}") from e

    def _authorization(self, ref: Reference) -> str | None:
        token = self._tokens.get(ref.registry)
        if token:
            return f"Bearer {token}"
        auth = self._auths.get(ref.registry)
        if auth and auth.username:
            raw = f"{auth.username}:{auth.password}".encode()
            return f"Basic {base64.b64encode(raw).decode()}"
        return None

    def _fetch_token(self, ref: Reference, challenge: str) -> bool:
        """Negotiate a bearer token from a WWW-Authenticate challenge."""
        params = dict(_CHALLENGE_RE.findall(challenge))
        realm = params.pop("realm", "")
        if not realm:
            return False
        params.setdefault("scope", f"repository:{ref.repository}:pull")

        headers = {"User-Agent": _USER_AGENT}
        auth = self._auths.get(ref.registry)
        if auth and auth.username:
            raw = f"{auth.username}:{auth.password}".encode()
            headers["Authorization"] = f"Basic {base64.b64encode(raw).decode()}"

        url = f"{realm}?{urllib.parse.urlencode(params)}"
        req = urllib.request.Request(url, headers=headers)
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                payload = json.loads(resp.read())
        except (urllib.error.URLError, OSError, ValueError) as e:
            logger.debug("Token request to %s failed: %s", realm, e)
            return False

        if not isinstance(payload, dict):
            raise ResolutionError(f"{ref}: malformed token response from {realm}")
        token = payload.get("token") or payload.get("access_token")
        if not token:
            return False
        self._tokens[ref.registry] = token
        return True
