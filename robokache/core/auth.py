"""Authentication module: deep module exposing FastAPI dependencies.

Public interface:
    ``optional_principal``: the caller's verified email, or ``None`` when no
                             ``Authorization`` header was sent.
    ``require_principal``:  the caller's verified email, raises 401 when
                             anonymous.

A header that is present but malformed, or a token that fails verification,
is always a 401. It is never downgraded to anonymous access.
"""

import logging
import re
from functools import lru_cache
from typing import Optional

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPBearer

from .config import settings
from .identity import IdentityVerifier, TokenVerificationError
from .key_set import KeySetFetcher
from ..exceptions import AuthenticationError

logger = logging.getLogger(__name__)

_BEARER_RE = re.compile(r"^Bearer\s([a-zA-Z0-9\-_.]+)$")

# Declared so OpenAPI documents the credential. Parsing stays with
# extract_bearer_token: HTTPBearer(auto_error=False) would turn a malformed
# header into an anonymous request.
bearer_scheme = HTTPBearer(
    auto_error=False,
    scheme_name="GoogleIDToken",
    description="Google ID token for the Robokache client ID",
)


@lru_cache(maxsize=1)
def get_identity_verifier() -> IdentityVerifier:
    """Build the process-wide verifier from settings.

    Tests replace this dependency with a verifier whose key source serves a
    local key pair.
    """
    client = httpx.Client(timeout=settings.key_fetch_timeout)
    fetcher = KeySetFetcher(
        client,
        settings.certs_url,
        cache_seconds=settings.key_cache_seconds,
    )
    return IdentityVerifier(
        fetcher,
        audience=settings.google_client_id,
        issuers=settings.get_trusted_issuers(),
        leeway=settings.token_leeway_seconds,
    )


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Pull the raw token out of an ``Authorization`` header value.

    Returns ``None`` when the header is absent or empty.

    Raises:
        AuthenticationError: If the header is present but not ``Bearer <token>``.
    """
    if not authorization:
        return None
    match = _BEARER_RE.match(authorization)
    if match is None:
        raise AuthenticationError("Invalid Authorization header formatting")
    return match.group(1)


def optional_principal(
    request: Request,
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> Optional[str]:
    """Resolve the caller's identity when a credential is present."""
    token = extract_bearer_token(request.headers.get("authorization"))
    if token is None:
        return None

    try:
        principal = verifier.verify(token)
    except TokenVerificationError as e:
        logger.warning(
            "Token rejected",
            extra={"reason": e.reason.value, "path": request.url.path},
        )
        raise

    logger.debug("Token accepted", extra={"path": request.url.path})
    return principal


def require_principal(
    principal: Optional[str] = Depends(optional_principal),
) -> str:
    """Require an authenticated caller. Raises 401 for anonymous requests."""
    if principal is None:
        raise AuthenticationError("Missing authentication token")
    return principal
