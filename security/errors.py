"""
Exception taxonomy for the credential/session subsystem.

Callers at the HTTP edge only ever see the outer, deliberately vague
classes (AuthFailure, Unauthorized, MalformedInput, Forbidden,
StorageFailure). The precise token errors exist so that internal code and
tests can tell the cases apart; api.errors never echoes them.
"""
from __future__ import annotations


class SecurityError(Exception):
    """Base class for every error raised by the security layer."""

    message = "Security error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class MalformedInput(SecurityError):
    message = "Malformed request"


class MissingCredential(MalformedInput):
    message = "Missing or malformed credential"


class AuthFailure(SecurityError):
    message = "Incorrect email or password"


class Unauthorized(SecurityError):
    message = "Unauthorized"


class Forbidden(SecurityError):
    message = "Forbidden"


class ResetForbidden(Forbidden):
    message = "Reset is only available in development"


class NotFound(SecurityError):
    message = "Not found"


class StorageFailure(SecurityError):
    message = "Storage unavailable"


class DuplicateToken(StorageFailure):
    message = "Refresh token collision"


class HashingFailure(SecurityError):
    message = "Could not hash password"


# Token verification failures
class TokenError(SecurityError):
    message = "Invalid token"


class MalformedToken(TokenError):
    message = "Malformed token"


class BadSignature(TokenError):
    message = "Bad token signature"


class Expired(TokenError):
    message = "Token expired"


class IssuerMismatch(TokenError):
    message = "Unexpected token issuer"
