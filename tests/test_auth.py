import base64

import pytest

from storefront.services.auth import issue_session_token, validate_session_token, verify_password

SECRET = "hunter2"
TTL = 7 * 24 * 60 * 60
NOW = 1_700_000_000


def test_fresh_token_is_valid():
    token = issue_session_token(SECRET, now=NOW)
    assert token.startswith(f"v1.{NOW}.")
    assert "=" not in token
    assert validate_session_token(token, SECRET, TTL, now=NOW + 60)


def test_token_valid_until_ttl():
    token = issue_session_token(SECRET, now=NOW)
    assert validate_session_token(token, SECRET, TTL, now=NOW + TTL)
    assert not validate_session_token(token, SECRET, TTL, now=NOW + TTL + 1)


def test_token_bound_to_password():
    token = issue_session_token(SECRET, now=NOW)
    assert not validate_session_token(token, "other", TTL, now=NOW)


def test_altered_timestamp_is_rejected():
    _, _, signature = issue_session_token(SECRET, now=NOW).split(".")
    forged = f"v1.{NOW + 3600}.{signature}"
    assert not validate_session_token(forged, SECRET, TTL, now=NOW)


def test_altered_signature_is_rejected():
    version, ts, signature = issue_session_token(SECRET, now=NOW).split(".")
    raw = bytearray(base64.urlsafe_b64decode(signature + "=" * (-len(signature) % 4)))
    raw[0] ^= 0x01
    tampered = base64.urlsafe_b64encode(bytes(raw)).rstrip(b"=").decode()
    assert not validate_session_token(f"{version}.{ts}.{tampered}", SECRET, TTL, now=NOW)


@pytest.mark.parametrize(
    "token",
    [
        None,
        "",
        "garbage",
        "v1.123",
        "v1..abc",
        "v1.abc.def",
        "v2.1700000000.abc",
        "v1.1700000000.abc.extra",
        "v1.1700000000.",
    ],
)
def test_malformed_tokens_are_rejected(token):
    assert not validate_session_token(token, SECRET, TTL, now=NOW)


def test_no_secret_rejects_everything():
    token = issue_session_token(SECRET, now=NOW)
    assert not validate_session_token(token, None, TTL, now=NOW)
    assert not validate_session_token(token, "", TTL, now=NOW)


def test_verify_password():
    assert verify_password("hunter2", "hunter2")
    assert not verify_password("hunter3", "hunter2")
    assert not verify_password("", "hunter2")
    assert not verify_password("anything", None)


@pytest.mark.parametrize(
    "timestamp",
    [
        f" {NOW}",
        f"{NOW} ",
        f"+{NOW}",
        "1_700_000_000",
        f"0{NOW}",
        "１７００００００００",
        "9" * 5000,
    ],
)
def test_non_canonical_timestamp_is_rejected(timestamp):
    _, _, signature = issue_session_token(SECRET, now=NOW).split(".")
    assert not validate_session_token(f"v1.{timestamp}.{signature}", SECRET, TTL, now=NOW)
