"""
tests/test_basic_auth.py -- Unit tests for the Basic Auth guard.

Covers auth/credentials.py and auth/dependencies.try_basic_auth() without HTTP:
  - header parsing: absent, wrong scheme, bad base64, missing colon, empty halves
  - split on the first colon only
  - valid credentials resolve exactly the stored user
  - unknown user and wrong password produce the same error
  - the timing dummy hash is checked when the user does not exist
"""

from __future__ import annotations

import base64
from unittest.mock import patch

import pytest

from auth import credentials
from auth.credentials import encode_basic_credentials, hash_password, parse_basic_credentials, verify_password
from auth.dependencies import try_basic_auth
from auth.models import User
from core.errors import MissingToken, Unauthorized


def _b64(raw: str) -> str:
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


@pytest.fixture
def user_store(empty_stores):
    store, _ = empty_stores
    store.create_user(User(user_name="dunder", full_name="Dunder Mifflin", password_hash=hash_password("pa:ss")))
    store.create_user(User(user_name="other", full_name="Other User", password_hash=hash_password("secret")))
    return store


class TestParseBasicCredentials:
    @pytest.mark.parametrize("header", [None, "", "   "])
    def test_absent_or_blank_header(self, header):
        with pytest.raises(MissingToken):
            parse_basic_credentials(header)

    @pytest.mark.parametrize("header", ["Basic", "Basic   ", "Bearer ", f"Token {_b64('a:b')}", _b64("a:b")])
    def test_present_but_unusable_header(self, header):
        with pytest.raises(Unauthorized):
            parse_basic_credentials(header)

    def test_bearer_prefix_carries_basic_payload(self):
        assert parse_basic_credentials(f"Bearer {_b64('a:b')}") == ("a", "b")
        assert parse_basic_credentials(f"bearer {_b64('a:pa:ss')}") == ("a", "pa:ss")

    @pytest.mark.parametrize(
        "token",
        [
            "not base64!!",
            _b64("no-colon"),
            _b64(":"),
            _b64("user:"),
            _b64(":password"),
            base64.b64encode(b"\xff\xfe:\xff").decode("ascii"),
        ],
    )
    def test_malformed_credentials(self, token):
        with pytest.raises(Unauthorized):
            parse_basic_credentials(f"Basic {token}")

    def test_scheme_is_case_insensitive(self):
        assert parse_basic_credentials(f"basic {_b64('a:b')}") == ("a", "b")
        assert parse_basic_credentials(f"BASIC {_b64('a:b')}") == ("a", "b")

    def test_splits_on_first_colon(self):
        assert parse_basic_credentials(f"Basic {_b64('dunder:pa:ss')}") == ("dunder", "pa:ss")

    def test_encode_round_trips(self):
        assert parse_basic_credentials(encode_basic_credentials("dunder", "pa:ss")) == ("dunder", "pa:ss")


class TestPasswords:
    def test_verify_matches(self):
        hashed = hash_password("secret")
        assert hashed != "secret"
        assert verify_password("secret", hashed)
        assert not verify_password("Secret", hashed)

    def test_malformed_hash_is_mismatch(self):
        assert verify_password("secret", "not-a-bcrypt-hash") is False


class TestTryBasicAuth:
    def test_valid_credentials_resolve_that_user(self, user_store):
        result = try_basic_auth(encode_basic_credentials("dunder", "pa:ss"), user_store)
        assert result.ok
        assert result.error is None
        assert result.user.user_name == "dunder"
        assert result.user.id == user_store.get_by_username("dunder").id

    def test_absent_header(self, user_store):
        result = try_basic_auth(None, user_store)
        assert not result.ok
        assert isinstance(result.error, MissingToken)
        assert result.error.message == "Missing bearer token"

    def test_unknown_user_and_wrong_password_are_indistinguishable(self, user_store):
        unknown = try_basic_auth(encode_basic_credentials("user-not", "existy"), user_store)
        wrong = try_basic_auth(encode_basic_credentials("dunder", "wrong"), user_store)
        assert type(unknown.error) is type(wrong.error) is Unauthorized
        assert unknown.error.message == wrong.error.message == "Unauthorized request"
        assert unknown.error.status_code == wrong.error.status_code == 401

    def test_username_match_is_exact(self, user_store):
        result = try_basic_auth(encode_basic_credentials("Dunder", "pa:ss"), user_store)
        assert isinstance(result.error, Unauthorized)

    def test_unknown_user_still_runs_bcrypt(self, user_store):
        with patch.object(credentials, "verify_password", wraps=credentials.verify_password) as spy:
            try_basic_auth(encode_basic_credentials("user-not", "existy"), user_store)
        spy.assert_called_once_with("existy", credentials._DUMMY_HASH)

    def test_one_lookup_per_attempt(self, user_store):
        with patch.object(user_store, "get_by_username", wraps=user_store.get_by_username) as spy:
            try_basic_auth(encode_basic_credentials("dunder", "pa:ss"), user_store)
        spy.assert_called_once_with("dunder")
