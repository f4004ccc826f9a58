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
"""Cookie token store — the canonical token sealed in a client-held cookie.

The payload (token, issue time, expiry) is sealed with Fernet authenticated
encryption (AES-128-CBC + HMAC-SHA256). The client can neither read the
token nor alter the payload: any modified byte fails the HMAC check and the
cookie is treated as invalid. ``MultiFernet`` lets operators rotate server
keys independently of token issuance.
"""

from __future__ import annotations

import base64
import binascii
import json
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import structlog
from cryptography.fernet import Fernet, InvalidToken, MultiFernet

from pyxsrf.csrf.entropy import TOKEN_LENGTH, generate_token
from pyxsrf.csrf.options import CsrfOptions
from pyxsrf.csrf.ports.outbound import TokenStore
from pyxsrf.csrf.types import TokenIssue, ValidationOutcome
from pyxsrf.kernel.exceptions import (
    CookieExpiredException,
    CookieInvalidException,
    CookieMissingException,
    InvalidOptionException,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StoredToken:
    """The sealed cookie payload."""

    token: bytes
    issued_at: float
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def to_json(self) -> bytes:
        payload = {
            "t": base64.b64encode(self.token).decode("ascii"),
            "iat": self.issued_at,
            "exp": self.expires_at,
        }
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_json(cls, data: bytes) -> StoredToken:
        """Parse a payload produced by :meth:`to_json`.

        Raises:
            ValueError: If the payload is not a well-formed token record.
        """
        payload = json.loads(data)
        if not isinstance(payload, dict):
            raise ValueError("Token payload is not an object")
        try:
            token = base64.b64decode(payload["t"], validate=True)
            issued_at = float(payload["iat"])
            expires_at = None if payload.get("exp") is None else float(payload["exp"])
        except (KeyError, TypeError, binascii.Error) as exc:
            raise ValueError(f"Malformed token payload: {exc}") from exc
        return cls(token=token, issued_at=issued_at, expires_at=expires_at)


def generate_key() -> str:
    """Generate a new Fernet key suitable for the ``secret_keys`` option."""
    return Fernet.generate_key().decode("ascii")


class CookieTokenStore:
    """Stores the canonical token in a sealed cookie.

    Args:
        options: Cookie attributes and the ``secret_keys`` used for sealing.
        clock: Source of the current unix time (overridable in tests).
    """

    def __init__(self, options: CsrfOptions, clock: Callable[[], float] = time.time) -> None:
        self._options = options
        self._fernet = _build_fernet(options.secret_keys)
        self._clock = clock

    def load(self, request: Any) -> StoredToken:
        """Read and unseal the token cookie.

        Raises:
            CookieMissingException: No cookie was sent.
            CookieInvalidException: The cookie failed authentication or is malformed.
            CookieExpiredException: The payload is authentic but past its expiry.
        """
        sealed = getattr(request, "cookies", {}).get(self._options.cookie_name)
        if not sealed:
            raise CookieMissingException("CSRF cookie not found in request", code="CSRF_NO_COOKIE")

        try:
            plaintext = self._fernet.decrypt(sealed.encode("ascii"))
        except (InvalidToken, UnicodeEncodeError) as exc:
            raise CookieInvalidException("CSRF cookie failed verification", code="CSRF_BAD_COOKIE") from exc

        try:
            stored = StoredToken.from_json(plaintext)
        except ValueError as exc:
            raise CookieInvalidException("CSRF cookie payload is malformed", code="CSRF_BAD_COOKIE") from exc

        if len(stored.token) != TOKEN_LENGTH:
            raise CookieInvalidException(
                f"CSRF cookie holds a {len(stored.token)}-byte token",
                code="CSRF_BAD_COOKIE",
            )

        if stored.is_expired(self._clock()):
            raise CookieExpiredException("CSRF cookie expired", code="CSRF_EXPIRED")

        return stored

    def save(self, response: Any, token: bytes) -> None:
        """Seal *token* with its metadata and set it as a cookie on *response*."""
        opts = self._options
        now = self._clock()
        expires_at = now + opts.max_age if opts.max_age > 0 else None
        stored = StoredToken(token=token, issued_at=now, expires_at=expires_at)
        sealed = self._fernet.encrypt(stored.to_json()).decode("ascii")

        response.set_cookie(
            key=opts.cookie_name,
            value=sealed,
            max_age=opts.max_age if opts.max_age > 0 else None,
            path=opts.path or "/",
            domain=cookie_domain(opts.domain),
            secure=opts.secure,
            httponly=opts.http_only,
            samesite=opts.same_site,
        )


def cookie_domain(domain: str | None) -> str | None:
    """Prefix a configured domain with ``.`` so it matches subdomains."""
    if not domain:
        return None
    return "." + domain.lstrip(".")


def _build_fernet(keys: Sequence[str]) -> MultiFernet:
    if not keys:
        raise InvalidOptionException(
            "The cookie token store needs at least one secret key (see secret_keys())",
            code="CSRF_NO_SECRET_KEY",
        )
    try:
        return MultiFernet([Fernet(key) for key in keys])
    except (ValueError, TypeError) as exc:
        raise InvalidOptionException(
            "Secret keys must be 32-byte url-safe base64 Fernet keys",
            code="CSRF_INVALID_SECRET_KEY",
        ) from exc


_LOAD_FAILURES: dict[type[Exception], ValidationOutcome] = {
    CookieMissingException: ValidationOutcome.NO_COOKIE,
    CookieInvalidException: ValidationOutcome.BAD_COOKIE,
    CookieExpiredException: ValidationOutcome.EXPIRED,
}


def ensure_token(store: TokenStore, request: Any) -> TokenIssue:
    """Return the client's stored token, or issue a new one.

    A new token is only generated when the store holds no usable token; the
    caller persists it with ``store.save`` on the outgoing response. Load
    failures are reported through ``TokenIssue.failure`` rather than raised.
    """
    try:
        stored = store.load(request)
    except (CookieMissingException, CookieInvalidException, CookieExpiredException) as exc:
        failure = next(outcome for cls, outcome in _LOAD_FAILURES.items() if isinstance(exc, cls))
        if failure is not ValidationOutcome.NO_COOKIE:
            logger.info("csrf_cookie_rejected", reason=failure.value, detail=str(exc))
        logger.debug("csrf_token_issued", reason=failure.value)
        return TokenIssue(token=generate_token(), is_new=True, failure=failure)
    return TokenIssue(token=stored.token)
