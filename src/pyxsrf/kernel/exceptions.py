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
"""Unified exception hierarchy for pyxsrf.

All package exceptions inherit from PyXsrfException so callers can catch
one base type or target specific subclasses.

Categories:
- BusinessException: option validation errors raised at setup time
- SecurityException: CSRF token and cookie failures (recoverable per request)
- InfrastructureException: entropy source failures (fatal)
"""

from __future__ import annotations


# =============================================================================
# Base Exception
# =============================================================================


class PyXsrfException(Exception):
    """Base exception for all pyxsrf errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "CSRF_BAD_TOKEN").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Business Exceptions
# =============================================================================


class BusinessException(PyXsrfException):
    """Rule violations detected while assembling the middleware."""


class ValidationException(BusinessException):
    """Input validation failures."""


class InvalidOptionException(ValidationException):
    """An option produced a configuration value outside its allowed range."""


# =============================================================================
# Security Exceptions
# =============================================================================


class SecurityException(PyXsrfException):
    """Request forgery protection errors."""


class CsrfException(SecurityException):
    """Base for every CSRF validation failure.

    These never escape a request: the filter converts them into a
    ``ValidationOutcome`` and hands the request to the error handler.
    """


class MalformedTokenException(CsrfException):
    """A masked token could not be decoded (bad encoding or wrong length)."""


class CookieMissingException(CsrfException):
    """The client did not present a token cookie."""


class CookieInvalidException(CsrfException):
    """The token cookie failed authentication or could not be parsed."""


class CookieExpiredException(CsrfException):
    """The token cookie verified correctly but its payload has expired."""


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(PyXsrfException):
    """Failures of the runtime environment the package depends on."""


class EntropySourceException(InfrastructureException):
    """The cryptographically secure random source is unavailable.

    Fatal: token issuance is aborted rather than falling back to a
    predictable value.
    """
