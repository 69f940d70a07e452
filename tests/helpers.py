"""Test helpers: a local signing key, a fake key-set client, and a token factory.

Imported as ``tests.helpers`` everywhere so the RSA key is generated once.
"""

import datetime
import time
from typing import Optional

import httpx
import jwt
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from robokache.core.config import settings

ME = "me@robokache.com"
YOU = "you@robokache.com"

KEY_ID = "default"
CERTS_URL = settings.certs_url

SIGNING_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)
OTHER_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)

PUBLIC_PEM = SIGNING_KEY.public_key().public_bytes(
    serialization.Encoding.PEM,
    serialization.PublicFormat.SubjectPublicKeyInfo,
).decode()


def make_certificate_pem(private_key=SIGNING_KEY) -> str:
    """Self-signed certificate wrapping *private_key*'s public half, like Google's v1 certs."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "robokache-test")])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(private_key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM).decode()


class FakeKeyClient:
    """Stands in for ``httpx.Client``: serves a key set at the configured URL."""

    def __init__(self, body=None, status_code: int = 200, error: Optional[Exception] = None):
        self.body = body if body is not None else {KEY_ID: PUBLIC_PEM}
        self.status_code = status_code
        self.error = error
        self.calls: list[str] = []

    def get(self, url: str) -> httpx.Response:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        if url != CERTS_URL:
            return httpx.Response(404, text="Page not found")
        return httpx.Response(self.status_code, json=self.body)


def make_token(
    email: Optional[str] = ME,
    *,
    kid: Optional[str] = KEY_ID,
    expires_in: int = 3600,
    not_before: Optional[int] = None,
    audience=None,
    issuer: str = "accounts.google.com",
    key=None,
    include_exp: bool = True,
    algorithm: str = "RS256",
) -> str:
    """Sign an ID token shaped like Google's."""
    now = int(time.time())
    claims = {
        "iss": issuer,
        "aud": audience if audience is not None else settings.google_client_id,
        "iat": now,
    }
    if email is not None:
        claims["email"] = email
    if include_exp:
        claims["exp"] = now + expires_in
    if not_before is not None:
        claims["nbf"] = now + not_before
    headers = {"kid": kid} if kid is not None else None
    return jwt.encode(claims, key or SIGNING_KEY, algorithm=algorithm, headers=headers)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def make_document(parent=None, visibility=None, **metadata) -> dict:
    """Factory for document creation payloads."""
    payload = {"metadata": metadata}
    if parent is not None:
        payload["parent"] = parent
    if visibility is not None:
        payload["visibility"] = visibility
    return payload
