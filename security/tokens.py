"""
Access token issuance and verification (PyJWT, HS256).

Access tokens are stateless: validity is decided by signature, issuer and
expiry alone. Expiry is checked against an injectable clock rather than
PyJWT's own wall clock so tests can move time.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
import hmac
import json
from typing import Any, Callable, Dict

import jwt
from jwt.algorithms import HMACAlgorithm, get_default_algorithms
from jwt.utils import base64url_decode, base64url_encode

from security.errors import BadSignature, Expired, IssuerMismatch, MalformedToken

DEFAULT_ACCESS_TTL = timedelta(hours=1)
DEFAULT_ISSUER = "chirpy"

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _seconds(ttl) -> int:
    if isinstance(ttl, timedelta):
        return int(ttl.total_seconds())
    return int(ttl)


class TokenSigner:
    """Issues and verifies short-lived signed access tokens."""

    def __init__(
        self,
        secret: str,
        issuer: str = DEFAULT_ISSUER,
        default_ttl: timedelta | int = DEFAULT_ACCESS_TTL,
        algorithm: str = "HS256",
        clock: Clock = utcnow,
    ):
        if not secret:
            raise ValueError("TokenSigner requires a non-empty secret")
        self._secret = secret
        self.issuer = issuer
        self.default_ttl = _seconds(default_ttl)
        self.algorithm = algorithm
        self._hmac = get_default_algorithms().get(algorithm)
        if not isinstance(self._hmac, HMACAlgorithm):
            raise ValueError(f"Unsupported signing algorithm: {algorithm}")
        self._key = self._hmac.prepare_key(secret)
        self._clock = clock

    def clamp_ttl(self, ttl=None) -> int:
        """Requests for no, non-positive or longer-than-default TTLs get the default."""
        if ttl is None:
            return self.default_ttl
        seconds = _seconds(ttl)
        if seconds <= 0 or seconds > self.default_ttl:
            return self.default_ttl
        return seconds

    def issue(self, user_id: str, ttl=None) -> str:
        now = int(self._clock().timestamp())
        payload = {
            "iss": self.issuer,
            "sub": str(user_id),
            "iat": now,
            "exp": now + self.clamp_ttl(ttl),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def _check_signature(self, token: str) -> None:
        """
        Recompute the signature over ``header.payload`` and compare it with the
        presented one before any claim is decoded. The comparison is on the
        canonical base64url text, so a signature segment that only differs in
        padding bits is a mismatch too.
        """
        parts = token.split(".")
        if len(parts) != 3 or not all(parts):
            raise MalformedToken()
        try:
            signing_input = f"{parts[0]}.{parts[1]}".encode("ascii")
            header = json.loads(base64url_decode(parts[0]))
        except ValueError as exc:
            raise MalformedToken() from exc
        if not isinstance(header, dict):
            raise MalformedToken()

        expected = base64url_encode(self._hmac.sign(signing_input, self._key))
        if not hmac.compare_digest(expected, parts[2].encode("utf-8")):
            raise BadSignature()

    def decode(self, token: str) -> Dict[str, Any]:
        """
        Decode and validate a token, returning its claims.
        Raises MalformedToken, BadSignature, IssuerMismatch or Expired.
        """
        if not isinstance(token, str) or not token:
            raise MalformedToken()
        self._check_signature(token)
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": ["sub", "iat", "exp", "iss"],
                },
            )
        except jwt.InvalidSignatureError as exc:
            raise BadSignature() from exc
        except jwt.InvalidIssuerError as exc:
            raise IssuerMismatch() from exc
        except jwt.InvalidTokenError as exc:
            # DecodeError, MissingRequiredClaimError, InvalidIssuedAtError, ...
            raise MalformedToken(f"Malformed token: {exc}") from exc

        exp = claims["exp"]
        if not isinstance(exp, (int, float)) or not claims["sub"]:
            raise MalformedToken()
        if self._clock().timestamp() >= exp:
            raise Expired()
        return claims

    def verify(self, token: str) -> str:
        """Return the subject (user id) of a valid token."""
        return str(self.decode(token)["sub"])
