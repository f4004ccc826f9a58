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
"""Immutable CSRF options built from ordered option functions.

Each option is a pure ``CsrfOptions -> CsrfOptions`` transformation.
:func:`build_options` starts from the defaults (``secure=True`` and
``http_only=True`` included) and applies the options in order, so a later
option overrides an earlier one for the same field::

    options = build_options(
        secret_keys(key),
        max_age(3600),
        domain("example.com"),
        secure(False),  # plain-HTTP development only
    )

The same settings can come from configuration files through
:class:`CsrfProperties` and :func:`options_from_config`.
"""

from __future__ import annotations

import dataclasses
import functools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field, field_validator

from pyxsrf.core.config import Config, config_properties
from pyxsrf.kernel.exceptions import InvalidOptionException

if TYPE_CHECKING:
    from pyxsrf.csrf.ports.outbound import TokenStore

ErrorHandler = Callable[[Any], Awaitable[Any] | Any]
"""Called with the rejected request; returns the response to send."""

DEFAULT_MAX_AGE: int = 12 * 60 * 60
DEFAULT_COOKIE_NAME: str = "_pyxsrf"
DEFAULT_REQUEST_HEADER: str = "X-CSRF-Token"
DEFAULT_FIELD_NAME: str = "pyxsrf.token"
DEFAULT_FAILURE_STATUS: int = int(HTTPStatus.FORBIDDEN)
SAFE_METHODS: frozenset[str] = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})

SameSite = Literal["lax", "strict", "none"]


@dataclass(frozen=True)
class CsrfOptions:
    """Read-only settings shared by every request the filter handles."""

    max_age: int = DEFAULT_MAX_AGE
    domain: str | None = None
    path: str | None = None
    secure: bool = True
    http_only: bool = True
    same_site: SameSite = "lax"
    cookie_name: str = DEFAULT_COOKIE_NAME
    request_header: str = DEFAULT_REQUEST_HEADER
    field_name: str = DEFAULT_FIELD_NAME
    failure_status: int = DEFAULT_FAILURE_STATUS
    safe_methods: frozenset[str] = SAFE_METHODS
    secret_keys: tuple[str, ...] = ()
    error_handler: ErrorHandler | None = None
    store: TokenStore | None = None


Option = Callable[[CsrfOptions], CsrfOptions]


def _set(**changes: Any) -> Option:
    def apply(options: CsrfOptions) -> CsrfOptions:
        return dataclasses.replace(options, **changes)

    return apply


def _require_name(kind: str, value: str) -> str:
    if not value or not value.strip():
        raise InvalidOptionException(f"{kind} must not be empty", code="CSRF_INVALID_OPTION")
    return value


def build_options(*options: Option, base: CsrfOptions | None = None) -> CsrfOptions:
    """Apply *options* in order to *base* (the defaults when omitted); last write wins."""
    return functools.reduce(lambda acc, option: option(acc), options, base or CsrfOptions())


# ---------------------------------------------------------------------------
# Option functions
# ---------------------------------------------------------------------------


def max_age(age: int) -> Option:
    """Maximum age in seconds of the token cookie. Defaults to 12 hours.

    ``0`` issues a session cookie whose payload never expires server-side.
    """
    if age < 0:
        raise InvalidOptionException(f"max_age must be >= 0, got {age}", code="CSRF_INVALID_OPTION")
    return _set(max_age=age)


def domain(value: str) -> Option:
    """Cookie domain. Defaults to the current host only (recommended).

    A hostname, not a URL. It is written with a leading ``.`` so that
    ``example.com`` also matches ``www.example.com``.
    """
    return _set(domain=_require_name("domain", value))


def path(value: str) -> Option:
    """Cookie path. Defaults to ``/``.

    Clients only return the cookie for this path and its subpaths. Leaving it
    unset covers the whole site instead of only the path the cookie happened
    to be issued from, so a token seeded on ``/login`` is still sent to
    ``/account/delete``.
    """
    return _set(path=_require_name("path", value))


def secure(flag: bool) -> Option:
    """The cookie ``Secure`` flag. Defaults to ``True`` (recommended)."""
    return _set(secure=flag)


def http_only(flag: bool) -> Option:
    """The cookie ``HttpOnly`` flag. Defaults to ``True`` (recommended)."""
    return _set(http_only=flag)


def same_site(value: SameSite) -> Option:
    """The cookie ``SameSite`` attribute. Defaults to ``lax``."""
    normalized = value.lower()
    if normalized not in ("lax", "strict", "none"):
        raise InvalidOptionException(f"Unsupported same_site value {value!r}", code="CSRF_INVALID_OPTION")
    return _set(same_site=normalized)


def cookie_name(name: str) -> Option:
    """Name of the cookie that holds the sealed token."""
    return _set(cookie_name=_require_name("cookie_name", name))


def error_handler(handler: ErrorHandler) -> Option:
    """Handler called instead of the application when validation fails.

    It may call :func:`pyxsrf.csrf.helpers.failure_reason` to inspect why.
    By default a plain-text ``403 Forbidden - <reason>`` is served.
    """
    if not callable(handler):
        raise InvalidOptionException("error_handler must be callable", code="CSRF_INVALID_OPTION")
    return _set(error_handler=handler)


def request_header(header: str) -> Option:
    """Request header inspected for the masked token. Defaults to ``X-CSRF-Token``."""
    return _set(request_header=_require_name("request_header", header))


def field_name(name: str) -> Option:
    """Form field inspected for the masked token and rendered by ``form_field``."""
    return _set(field_name=_require_name("field_name", name))


def failure_status(status: int) -> Option:
    """HTTP status served by the default error handler. Defaults to 403."""
    try:
        code = HTTPStatus(status)
    except ValueError as exc:
        raise InvalidOptionException(f"Unknown HTTP status {status}", code="CSRF_INVALID_OPTION") from exc
    if not 400 <= code < 600:
        raise InvalidOptionException(
            f"failure_status must be a 4xx or 5xx code, got {status}", code="CSRF_INVALID_OPTION"
        )
    return _set(failure_status=int(code))


def safe_methods(*methods: str) -> Option:
    """HTTP methods exempt from validation. Defaults to GET, HEAD, OPTIONS, TRACE."""
    return _set(safe_methods=frozenset(m.upper() for m in methods))


def secret_keys(*keys: str) -> Option:
    """Fernet keys sealing the token cookie; the first one encrypts.

    Older keys are still accepted for decryption, so a new key can be
    prepended and the old one dropped once cookies have been re-issued.
    """
    if not keys:
        raise InvalidOptionException("At least one secret key is required", code="CSRF_INVALID_OPTION")
    return _set(secret_keys=tuple(keys))


def token_store(store: TokenStore) -> Option:
    """Replace the cookie store with a custom :class:`TokenStore`."""
    return _set(store=store)


# ---------------------------------------------------------------------------
# Configuration binding
# ---------------------------------------------------------------------------


@config_properties(prefix="pyxsrf.csrf")
class CsrfProperties(BaseModel):
    """CSRF settings read from ``pyxsrf.csrf.*`` (or ``PYXSRF_CSRF_*``)."""

    max_age: int = Field(default=DEFAULT_MAX_AGE, ge=0)
    domain: str | None = None
    path: str | None = None
    secure: bool = True
    http_only: bool = True
    same_site: SameSite = "lax"
    cookie_name: str = Field(default=DEFAULT_COOKIE_NAME, min_length=1)
    request_header: str = Field(default=DEFAULT_REQUEST_HEADER, min_length=1)
    field_name: str = Field(default=DEFAULT_FIELD_NAME, min_length=1)
    failure_status: int = Field(default=DEFAULT_FAILURE_STATUS, ge=400, le=599)
    safe_methods: list[str] = Field(default_factory=lambda: sorted(SAFE_METHODS))
    secret_keys: list[str] = Field(default_factory=list)
    url_patterns: list[str] = Field(default_factory=list)
    exclude_patterns: list[str] = Field(default_factory=list)

    @field_validator("safe_methods", "secret_keys", "url_patterns", "exclude_patterns", mode="before")
    @classmethod
    def _split_comma_separated(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    def to_options(self) -> list[Option]:
        """Express these properties as the equivalent option sequence."""
        options = [
            max_age(self.max_age),
            secure(self.secure),
            http_only(self.http_only),
            same_site(self.same_site),
            cookie_name(self.cookie_name),
            request_header(self.request_header),
            field_name(self.field_name),
            failure_status(self.failure_status),
            safe_methods(*self.safe_methods),
        ]
        if self.domain:
            options.append(domain(self.domain))
        if self.path:
            options.append(path(self.path))
        if self.secret_keys:
            options.append(secret_keys(*self.secret_keys))
        return options


def options_from_config(config: Config, *overrides: Option) -> CsrfOptions:
    """Build options from ``pyxsrf.csrf.*`` configuration, then apply *overrides*.

    Code-level overrides run last, so they win over file and env settings.
    """
    properties = config.bind(CsrfProperties)
    return build_options(*properties.to_options(), *overrides)
