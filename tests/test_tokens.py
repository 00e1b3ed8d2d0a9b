"""TokenSigner: issuance, expiry, tampering, issuer and TTL policy."""
from datetime import datetime, timedelta, timezone
import string

import jwt
import pytest
from jwt.utils import base64url_encode

from security.errors import BadSignature, Expired, IssuerMismatch, MalformedToken, TokenError
from security.tokens import TokenSigner

from conftest import TEST_SECRET, FrozenClock

USER_ID = "5b1c7d8e-0000-4000-8000-000000000001"


def _claims(token):
    return jwt.decode(token, options={"verify_signature": False})


def _replace(token: str, segment: int, position: int, replacement: str) -> str:
    parts = token.split(".")
    seg = parts[segment]
    parts[segment] = seg[:position] + replacement + seg[position + 1:]
    return ".".join(parts)


def test_verify_returns_subject_right_after_issue(signer):
    assert signer.verify(signer.issue(USER_ID)) == USER_ID


def test_claims_carry_issuer_and_window(signer, clock):
    claims = _claims(signer.issue(USER_ID, 120))
    assert claims["sub"] == USER_ID
    assert claims["iss"] == "chirpy"
    assert claims["iat"] == int(clock().timestamp())
    assert claims["exp"] - claims["iat"] == 120


@pytest.mark.parametrize("ttl", [1, 60, 3600])
def test_expires_exactly_at_ttl(signer, clock, ttl):
    token = signer.issue(USER_ID, ttl)
    clock.advance(seconds=ttl - 1)
    assert signer.verify(token) == USER_ID
    clock.advance(seconds=1)
    with pytest.raises(Expired):
        signer.verify(token)


def test_expired_token_stays_expired(signer, clock):
    token = signer.issue(USER_ID)
    clock.advance(days=3)
    with pytest.raises(Expired):
        signer.verify(token)


@pytest.mark.parametrize("ttl,expected", [
    (None, 3600),
    (0, 3600),
    (-5, 3600),
    (7200, 3600),
    (3600, 3600),
    (30, 30),
    (timedelta(minutes=5), 300),
    (timedelta(days=1), 3600),
])
def test_ttl_is_clamped_to_default(signer, ttl, expected):
    claims = _claims(signer.issue(USER_ID, ttl))
    assert claims["exp"] - claims["iat"] == expected


def test_shorter_default_ttl_caps_requests():
    short = TokenSigner(secret=TEST_SECRET, default_ttl=timedelta(minutes=15))
    claims = _claims(short.issue(USER_ID, 3600))
    assert claims["exp"] - claims["iat"] == 900


B64URL = string.ascii_letters + string.digits + "-_"


@pytest.mark.parametrize("segment", [1, 2])
def test_any_single_character_tamper_is_bad_signature(signer, segment):
    token = signer.issue(USER_ID)
    seg = token.split(".")[segment]
    for position, current in enumerate(seg):
        for replacement in B64URL:
            if replacement == current:
                continue
            with pytest.raises(BadSignature):
                signer.verify(_replace(token, segment, position, replacement))


def test_tampered_header_is_bad_signature(signer):
    header, payload, signature = signer.issue(USER_ID).split(".")
    forged = base64url_encode(b'{"alg":"HS256","typ":"JWT","kid":"x"}').decode()
    with pytest.raises(BadSignature):
        signer.verify(".".join([forged, payload, signature]))


def test_other_secret_is_bad_signature(clock):
    ours = TokenSigner(secret=TEST_SECRET, clock=clock)
    theirs = TokenSigner(secret="somebody-else-entirely-0123456789abcdef", clock=clock)
    with pytest.raises(BadSignature):
        ours.verify(theirs.issue(USER_ID))


def test_issuer_mismatch(clock):
    ours = TokenSigner(secret=TEST_SECRET, issuer="chirpy", clock=clock)
    theirs = TokenSigner(secret=TEST_SECRET, issuer="not-chirpy", clock=clock)
    with pytest.raises(IssuerMismatch):
        ours.verify(theirs.issue(USER_ID))


@pytest.mark.parametrize("garbage", ["", "abc", "a.b", "a.b.c", "not.a.jwt.at.all", None])
def test_unparsable_token_is_malformed(signer, garbage):
    with pytest.raises(MalformedToken):
        signer.verify(garbage)


def test_missing_subject_is_malformed(signer, clock):
    now = int(clock().timestamp())
    token = jwt.encode({"iss": "chirpy", "iat": now, "exp": now + 60}, TEST_SECRET, algorithm="HS256")
    with pytest.raises(MalformedToken):
        signer.verify(token)


def test_unexpected_algorithm_is_rejected(signer, clock):
    now = int(clock().timestamp())
    claims = {"iss": "chirpy", "sub": USER_ID, "iat": now, "exp": now + 60}
    token = jwt.encode(claims, TEST_SECRET, algorithm="HS512")
    with pytest.raises(TokenError):
        signer.verify(token)


def test_fixed_clock_in_the_past_still_verifies():
    clock = FrozenClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
    signer = TokenSigner(secret=TEST_SECRET, clock=clock)
    assert signer.verify(signer.issue(USER_ID)) == USER_ID


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        TokenSigner(secret="")


def test_non_hmac_algorithm_is_refused():
    with pytest.raises(ValueError):
        TokenSigner(secret=TEST_SECRET, algorithm="RS256")
