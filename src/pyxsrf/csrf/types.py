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
"""Shared types for the pyxsrf.csrf module."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ValidationOutcome(StrEnum):
    """Result of checking one request against the stored canonical token."""

    VALID = "VALID"
    NO_TOKEN = "NO_TOKEN"
    BAD_TOKEN = "BAD_TOKEN"
    NO_COOKIE = "NO_COOKIE"
    BAD_COOKIE = "BAD_COOKIE"
    EXPIRED = "EXPIRED"

    @property
    def reason(self) -> str:
        """Plain-text description served by the default error handler."""
        return _REASONS[self]


_REASONS: dict[ValidationOutcome, str] = {
    ValidationOutcome.VALID: "CSRF token valid",
    ValidationOutcome.NO_TOKEN: "CSRF token not found in request",
    ValidationOutcome.BAD_TOKEN: "CSRF token invalid",
    ValidationOutcome.NO_COOKIE: "CSRF cookie not found in request",
    ValidationOutcome.BAD_COOKIE: "CSRF cookie invalid",
    ValidationOutcome.EXPIRED: "CSRF cookie expired",
}


class FilterState(StrEnum):
    """States of the per-request CSRF state machine.

    ``UNCHECKED -> {BYPASSED, VALIDATING} -> {ALLOWED, REJECTED}``
    """

    UNCHECKED = "UNCHECKED"
    BYPASSED = "BYPASSED"
    VALIDATING = "VALIDATING"
    ALLOWED = "ALLOWED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation plus the recovered canonical token when valid."""

    outcome: ValidationOutcome
    token: bytes | None = None

    @property
    def valid(self) -> bool:
        return self.outcome is ValidationOutcome.VALID


@dataclass(frozen=True)
class TokenIssue:
    """The canonical token in effect for a request.

    ``is_new`` is set when the store held no usable token and a fresh one was
    generated; ``failure`` then records why the stored token was rejected.
    """

    token: bytes
    is_new: bool = False
    failure: ValidationOutcome | None = None
