# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Tests for the sealed cookie token store."""

from __future__ import annotations

import json
from http.cookies import SimpleCookie
from types import SimpleNamespace

import pytest
from cryptography.fernet import Fernet
from starlette.responses import Response

from pyxsrf.csrf.entropy import generate_token
from pyxsrf.csrf.options import build_options, domain, http_only, max_age, path, secret_keys, secure
from pyxsrf.csrf.store import CookieTokenStore, StoredToken, cookie_domain, ensure_token, generate_key
from pyxsrf.csrf.types import ValidationOutcome
from pyxsrf.kernel.exceptions import (
    CookieExpiredException,
    CookieInvalidException,
    CookieMissingException,
    InvalidOptionException,
)

KEY = generate_key()


class _Clock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _request(cookies: dict[str, str] | None = None) -> SimpleNamespace:
    return SimpleNamespace(cookies=cookies or {})


def _saved_cookie(response: Response, name: str = "_pyxsrf") -> tuple[str, dict[str, str]]:
    """Return the cookie value and lower-cased attributes set on *response*."""
    header = response.headers["set-cookie"]
    parsed = SimpleCookie()
    parsed.load(header)
    morsel = parsed[name]
    attributes = {k: v for k, v in morsel.items() if v}
    return morsel.value, attributes


def _store(*extra, clock: _Clock | None = None) -> CookieTokenStore:
    return CookieTokenStore(build_options(secret_keys(KEY), *extra), clock=clock or _Clock())


class TestStoredToken:
    def test_json_round_trip(self) -> None:
        stored = StoredToken(token=generate_token(), issued_at=10.5, expires_at=20.0)
        assert StoredToken.from_json(stored.to_json()) == stored

    def test_no_expiry(self) -> None:
        stored = StoredToken(token=b"x" * 32, issued_at=1.0)
        assert StoredToken.from_json(stored.to_json()).expires_at is None
        assert stored.is_expired(10**12) is False

    def test_is_expired_at_boundary(self) -> None:
        stored = StoredToken(token=b"x" * 32, issued_at=0.0, expires_at=100.0)
        assert stored.is_expired(99.9) is False
        assert stored.is_expired(100.0) is True

    @pytest.mark.parametrize(
        "payload",
        [b"[]", b"{}", b'{"t": 5, "iat": 1}', b'{"t": "!!", "iat": 1}', b"not json"],
    )
    def test_malformed_payload_raises_value_error(self, payload: bytes) -> None:
        with pytest.raises(ValueError):
            StoredToken.from_json(payload)


class TestCookieTokenStoreSave:
    def test_save_then_load_round_trip(self) -> None:
        store = _store()
        token = generate_token()
        response = Response()
        store.save(response, token)

        value, _ = _saved_cookie(response)
        loaded = store.load(_request({"_pyxsrf": value}))
        assert loaded.token == token

    def test_cookie_does_not_reveal_token(self) -> None:
        store = _store()
        token = generate_token()
        response = Response()
        store.save(response, token)

        value, _ = _saved_cookie(response)
        assert token.hex() not in value
        assert token not in value.encode()

    def test_default_cookie_attributes(self) -> None:
        response = Response()
        _store().save(response, generate_token())

        _, attrs = _saved_cookie(response)
        assert attrs["max-age"] == str(12 * 60 * 60)
        assert attrs["path"] == "/"
        assert attrs["secure"] is True
        assert attrs["httponly"] is True
        assert attrs["samesite"].lower() == "lax"
        assert "domain" not in attrs

    def test_configured_cookie_attributes(self) -> None:
        response = Response()
        store = _store(max_age(600), domain("example.com"), path("/forms"), secure(False), http_only(False))
        store.save(response, generate_token())

        _, attrs = _saved_cookie(response)
        assert attrs["max-age"] == "600"
        assert attrs["domain"] == ".example.com"
        assert attrs["path"] == "/forms"
        assert "secure" not in attrs
        assert "httponly" not in attrs

    def test_zero_max_age_issues_session_cookie_without_expiry(self) -> None:
        clock = _Clock()
        store = _store(max_age(0), clock=clock)
        response = Response()
        store.save(response, generate_token())

        value, attrs = _saved_cookie(response)
        assert "max-age" not in attrs
        clock.now += 10 * 365 * 24 * 3600
        assert store.load(_request({"_pyxsrf": value})).expires_at is None


class TestCookieTokenStoreLoad:
    def test_missing_cookie(self) -> None:
        with pytest.raises(CookieMissingException):
            _store().load(_request())

    def test_garbage_cookie(self) -> None:
        with pytest.raises(CookieInvalidException):
            _store().load(_request({"_pyxsrf": "garbage"}))

    def test_non_ascii_cookie(self) -> None:
        with pytest.raises(CookieInvalidException):
            _store().load(_request({"_pyxsrf": "ünïcode"}))

    def test_altered_characters_are_rejected(self) -> None:
        store = _store()
        response = Response()
        store.save(response, generate_token())
        value, _ = _saved_cookie(response)

        alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
        for index in range(0, len(value), 7):
            if value[index] not in alphabet:
                continue
            # +32 flips the high bit of the sextet, which always carries data
            replacement = alphabet[(alphabet.index(value[index]) + 32) % len(alphabet)]
            tampered = value[:index] + replacement + value[index + 1 :]
            with pytest.raises(CookieInvalidException):
                store.load(_request({"_pyxsrf": tampered}))

    def test_cookie_sealed_with_unknown_key_is_rejected(self) -> None:
        response = Response()
        CookieTokenStore(build_options(secret_keys(generate_key())), clock=_Clock()).save(response, generate_token())
        value, _ = _saved_cookie(response)

        with pytest.raises(CookieInvalidException):
            _store().load(_request({"_pyxsrf": value}))

    def test_expired_cookie(self) -> None:
        clock = _Clock()
        store = _store(max_age(60), clock=clock)
        response = Response()
        store.save(response, generate_token())
        value, _ = _saved_cookie(response)

        clock.now += 61
        with pytest.raises(CookieExpiredException) as exc_info:
            store.load(_request({"_pyxsrf": value}))
        assert exc_info.value.code == "CSRF_EXPIRED"

    def test_authentic_payload_with_wrong_token_length_is_rejected(self) -> None:
        payload = StoredToken(token=b"short", issued_at=1_700_000_000.0).to_json()
        sealed = Fernet(KEY.encode()).encrypt(payload).decode()
        with pytest.raises(CookieInvalidException):
            _store().load(_request({"_pyxsrf": sealed}))

    def test_authentic_non_json_payload_is_rejected(self) -> None:
        sealed = Fernet(KEY.encode()).encrypt(json.dumps(["x"]).encode()).decode()
        with pytest.raises(CookieInvalidException):
            _store().load(_request({"_pyxsrf": sealed}))


class TestKeyRotation:
    def test_old_key_still_verifies_after_rotation(self) -> None:
        old_key, new_key = generate_key(), generate_key()
        token = generate_token()
        response = Response()
        CookieTokenStore(build_options(secret_keys(old_key)), clock=_Clock()).save(response, token)
        value, _ = _saved_cookie(response)

        rotated = CookieTokenStore(build_options(secret_keys(new_key, old_key)), clock=_Clock())
        assert rotated.load(_request({"_pyxsrf": value})).token == token

    def test_new_cookies_use_primary_key(self) -> None:
        old_key, new_key = generate_key(), generate_key()
        response = Response()
        CookieTokenStore(build_options(secret_keys(new_key, old_key)), clock=_Clock()).save(response, generate_token())
        value, _ = _saved_cookie(response)

        only_new = CookieTokenStore(build_options(secret_keys(new_key)), clock=_Clock())
        assert only_new.load(_request({"_pyxsrf": value}))


class TestStoreConstruction:
    def test_requires_secret_key(self) -> None:
        with pytest.raises(InvalidOptionException) as exc_info:
            CookieTokenStore(build_options())
        assert exc_info.value.code == "CSRF_NO_SECRET_KEY"

    def test_rejects_invalid_key(self) -> None:
        with pytest.raises(InvalidOptionException) as exc_info:
            CookieTokenStore(build_options(secret_keys("too-short")))
        assert exc_info.value.code == "CSRF_INVALID_SECRET_KEY"

    def test_cookie_domain_prefix(self) -> None:
        assert cookie_domain(None) is None
        assert cookie_domain("example.com") == ".example.com"
        assert cookie_domain(".example.com") == ".example.com"


class TestEnsureToken:
    def test_returns_existing_token(self) -> None:
        store = _store()
        token = generate_token()
        response = Response()
        store.save(response, token)
        value, _ = _saved_cookie(response)

        issue = ensure_token(store, _request({"_pyxsrf": value}))
        assert issue.token == token
        assert issue.is_new is False
        assert issue.failure is None

    def test_issues_new_token_without_cookie(self) -> None:
        issue = ensure_token(_store(), _request())
        assert len(issue.token) == 32
        assert issue.is_new is True
        assert issue.failure is ValidationOutcome.NO_COOKIE

    def test_issues_new_token_for_bad_cookie(self) -> None:
        issue = ensure_token(_store(), _request({"_pyxsrf": "tampered"}))
        assert issue.is_new is True
        assert issue.failure is ValidationOutcome.BAD_COOKIE

    def test_issues_new_token_for_expired_cookie(self) -> None:
        clock = _Clock()
        store = _store(max_age(1), clock=clock)
        response = Response()
        old = generate_token()
        store.save(response, old)
        value, _ = _saved_cookie(response)
        clock.now += 5

        issue = ensure_token(store, _request({"_pyxsrf": value}))
        assert issue.failure is ValidationOutcome.EXPIRED
        assert issue.token != old
