"""
Parse inbound request headers into raw credential strings.

Works on any mapping with a .get() method (werkzeug Headers, dict).
"""
from __future__ import annotations

import hmac
from typing import Mapping, Optional

from security.errors import MissingCredential

BEARER_SCHEME = "Bearer"
DEFAULT_API_KEY_HEADER = "X-Api-Key"


def get_bearer_token(headers: Mapping[str, str]) -> str:
    """Return <token> from 'Authorization: Bearer <token>'. The scheme is case-sensitive."""
    auth = headers.get("Authorization")
    if not auth:
        raise MissingCredential("Missing Authorization header")
    parts = auth.split(" ")
    if len(parts) != 2 or parts[0] != BEARER_SCHEME or not parts[1]:
        raise MissingCredential("Authorization header must be 'Bearer <token>'")
    return parts[1]


def get_api_key(headers: Mapping[str, str], header_name: str = DEFAULT_API_KEY_HEADER) -> str:
    key = (headers.get(header_name) or "").strip()
    if not key:
        raise MissingCredential(f"Missing {header_name} header")
    return key


def api_key_matches(presented: str, expected: Optional[str]) -> bool:
    """
    Plain equality against the configured key. Only the webhook relay uses
    this; user authentication never goes through here.
    """
    if not expected or not presented:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))
