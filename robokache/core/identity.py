"""Identity verification for externally issued ID tokens.

``IdentityVerifier.verify`` turns a raw bearer token into a principal (the
user's email) or raises ``TokenVerificationError`` naming exactly which check
failed. The checks run in a fixed order:

    structure -> key ID -> key set fetch -> key lookup -> signature
    -> nbf/exp -> audience -> issuer -> email

Claims are pulled into ``IdentityClaims`` one field at a time; a claim of the
wrong shape is a named failure, never a silent ``None``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

import jwt

from .key_set import KeyFetchError, KeySetFetcher
from ..exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class AuthFailure(str, Enum):
    """Why a token was rejected."""

    MALFORMED_TOKEN = "malformed_token"
    KEY_FETCH_FAILED = "key_fetch_failed"
    UNKNOWN_SIGNING_KEY = "unknown_signing_key"
    INVALID_SIGNATURE = "invalid_signature"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_NOT_YET_VALID = "token_not_yet_valid"
    MISSING_CLAIM = "missing_claim"
    INVALID_AUDIENCE = "invalid_audience"
    INVALID_ISSUER = "invalid_issuer"


_MESSAGES = {
    AuthFailure.MALFORMED_TOKEN: "Token could not be parsed",
    AuthFailure.KEY_FETCH_FAILED: "Failed to contact certification authority",
    AuthFailure.UNKNOWN_SIGNING_KEY: "Token was signed with an unknown key",
    AuthFailure.INVALID_SIGNATURE: "Token signature is invalid",
    AuthFailure.TOKEN_EXPIRED: "Token has expired",
    AuthFailure.TOKEN_NOT_YET_VALID: "Token is not valid yet",
    AuthFailure.MISSING_CLAIM: "Token is missing a required claim",
    AuthFailure.INVALID_AUDIENCE: "Token was issued for another application",
    AuthFailure.INVALID_ISSUER: "Token was issued by an untrusted issuer",
}


class TokenVerificationError(AuthenticationError):
    """A bearer token was present but failed verification."""

    def __init__(self, reason: AuthFailure, claim: str = ""):
        details = {"reason": reason.value}
        if claim:
            details["claim"] = claim
        super().__init__(_MESSAGES[reason], details=details)
        self.reason = reason


@dataclass(frozen=True)
class IdentityClaims:
    """The subset of token claims the service relies on."""

    audience: tuple
    issuer: str
    email: str
    expires_at: datetime

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        audience: str,
        issuers: Sequence[str],
    ) -> "IdentityClaims":
        """Extract and check claims in order: audience, issuer, email.

        Signature and time-bound claims must already have been verified.
        """
        aud = payload.get("aud")
        if isinstance(aud, str):
            aud_values = (aud,)
        elif isinstance(aud, list) and all(isinstance(a, str) for a in aud):
            aud_values = tuple(aud)
        else:
            raise TokenVerificationError(AuthFailure.INVALID_AUDIENCE)
        if audience not in aud_values:
            raise TokenVerificationError(AuthFailure.INVALID_AUDIENCE)

        iss = payload.get("iss")
        if not isinstance(iss, str) or iss not in issuers:
            raise TokenVerificationError(AuthFailure.INVALID_ISSUER)

        email = payload.get("email")
        if not isinstance(email, str) or not email:
            raise TokenVerificationError(AuthFailure.MISSING_CLAIM, claim="email")

        exp = payload.get("exp")
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            raise TokenVerificationError(AuthFailure.MISSING_CLAIM, claim="exp")

        return cls(
            audience=aud_values,
            issuer=iss,
            email=email,
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )


class IdentityVerifier:
    """Verify provider-signed ID tokens against the provider's live key set.

    Args:
        key_source: Fetcher for ``{kid: public_key}``. Consulted on every
            call unless it caches.
        audience: Client ID the token must be issued for.
        issuers: Accepted ``iss`` spellings.
        leeway: Seconds of clock skew tolerated on ``exp``/``nbf``.
        algorithms: Accepted signing algorithms.
    """

    def __init__(
        self,
        key_source: KeySetFetcher,
        audience: str,
        issuers: Iterable[str],
        leeway: int = 0,
        algorithms: Sequence[str] = ("RS256",),
    ):
        self.key_source = key_source
        self.audience = audience
        self.issuers = tuple(issuers)
        self.leeway = leeway
        self.algorithms = list(algorithms)

    def verify(self, token: str) -> str:
        """Return the verified email of the token's subject.

        Raises:
            TokenVerificationError: With the first failed check as reason.
        """
        claims = self.verify_claims(token)
        return claims.email

    def verify_claims(self, token: str) -> IdentityClaims:
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError:
            raise TokenVerificationError(AuthFailure.MALFORMED_TOKEN)

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise TokenVerificationError(AuthFailure.MALFORMED_TOKEN)

        try:
            keys = self.key_source.fetch()
        except KeyFetchError as e:
            logger.warning("Cannot verify token: %s", e)
            raise TokenVerificationError(AuthFailure.KEY_FETCH_FAILED) from e

        key = keys.get(kid)
        if key is None:
            raise TokenVerificationError(AuthFailure.UNKNOWN_SIGNING_KEY)

        try:
            payload = jwt.decode(
                token,
                key=key,
                algorithms=self.algorithms,
                leeway=self.leeway,
                options={
                    "verify_aud": False,
                    "verify_iss": False,
                    "require": ["exp"],
                },
            )
        except jwt.ExpiredSignatureError:
            raise TokenVerificationError(AuthFailure.TOKEN_EXPIRED)
        except jwt.ImmatureSignatureError:
            raise TokenVerificationError(AuthFailure.TOKEN_NOT_YET_VALID)
        except jwt.MissingRequiredClaimError as e:
            raise TokenVerificationError(AuthFailure.MISSING_CLAIM, claim=e.claim)
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError, jwt.InvalidKeyError):
            raise TokenVerificationError(AuthFailure.INVALID_SIGNATURE)
        except jwt.InvalidTokenError:
            raise TokenVerificationError(AuthFailure.MALFORMED_TOKEN)

        return IdentityClaims.from_payload(payload, self.audience, self.issuers)
