"""Signing key set of the identity provider.

The provider publishes its current public keys at a well-known URL. Google's
v1 endpoint returns ``{kid: PEM certificate}``; JWKS endpoints return
``{"keys": [{"kid": ..., "kty": "RSA", ...}]}``. Both are accepted.

The network is reached through :class:`HTTPClient`, a one-method protocol, so
tests can hand in a fixture instead of a real client.
"""

import json
import logging
import threading
import time
from typing import Any, Dict, Optional, Protocol

import httpx
import jwt
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.serialization import load_pem_public_key

logger = logging.getLogger(__name__)


class HTTPClient(Protocol):
    """Anything with a ``get(url)`` returning an object with ``status_code`` and ``json()``.

    ``httpx.Client`` satisfies it as-is.
    """

    def get(self, url: str) -> Any:
        ...


class KeyFetchError(Exception):
    """The key set could not be retrieved or understood."""


class KeySetFetcher:
    """Fetch ``{key_id: public_key}`` from the provider.

    No retries: a failed fetch fails the request that needed it. When
    *cache_seconds* is positive the last successful key set is reused for
    that long; the default of 0 fetches on every call.
    """

    def __init__(self, client: HTTPClient, url: str, cache_seconds: int = 0):
        self.client = client
        self.url = url
        self.cache_seconds = cache_seconds
        self._cached: Optional[Dict[str, Any]] = None
        self._fetched_at = 0.0
        self._lock = threading.Lock()

    def fetch(self) -> Dict[str, Any]:
        """Return the provider's current keys indexed by key ID.

        Raises:
            KeyFetchError: On network failure, non-200 status, or an
                unparseable body.
        """
        if self.cache_seconds > 0:
            with self._lock:
                if self._cached is not None and time.monotonic() - self._fetched_at < self.cache_seconds:
                    return self._cached

        keys = self._fetch_uncached()

        if self.cache_seconds > 0:
            with self._lock:
                self._cached = keys
                self._fetched_at = time.monotonic()
        return keys

    def _fetch_uncached(self) -> Dict[str, Any]:
        try:
            resp = self.client.get(self.url)
        except httpx.HTTPError as e:
            logger.warning("Signing key fetch failed", extra={"url": self.url, "error": str(e)})
            raise KeyFetchError(f"Could not reach {self.url}") from e

        if resp.status_code != 200:
            logger.warning(
                "Signing key fetch returned non-success status",
                extra={"url": self.url, "status_code": resp.status_code},
            )
            raise KeyFetchError(f"Failed to contact certification authority ({resp.status_code})")

        try:
            body = resp.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise KeyFetchError("Key set response is not JSON") from e

        if not isinstance(body, dict):
            raise KeyFetchError("Key set response is not a JSON object")

        if isinstance(body.get("keys"), list):
            return _parse_jwks(body["keys"])
        return _parse_pem_map(body)


def _parse_pem_map(body: Dict[str, Any]) -> Dict[str, Any]:
    keys: Dict[str, Any] = {}
    for kid, pem in body.items():
        if not isinstance(pem, str):
            logger.warning("Skipping non-string key entry", extra={"kid": kid})
            continue
        try:
            keys[kid] = load_public_key(pem)
        except (ValueError, UnsupportedAlgorithm):
            logger.warning("Skipping unparseable key entry", extra={"kid": kid})
    return keys


def _parse_jwks(entries: list) -> Dict[str, Any]:
    keys: Dict[str, Any] = {}
    for entry in entries:
        if not isinstance(entry, dict) or not isinstance(entry.get("kid"), str):
            continue
        try:
            keys[entry["kid"]] = jwt.PyJWK(entry).key
        except (jwt.PyJWKError, jwt.InvalidKeyError, ValueError, KeyError):
            logger.warning("Skipping unusable JWK", extra={"kid": entry.get("kid")})
    return keys


def load_public_key(pem: str):
    """Load a public key from a PEM certificate or a PEM public key.

    Raises:
        ValueError: If *pem* holds neither.
    """
    data = pem.encode()
    if b"BEGIN CERTIFICATE" in data:
        return x509.load_pem_x509_certificate(data).public_key()
    return load_pem_public_key(data)
