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
"""CsrfFilter — masked-token CSRF protection for the web filter chain.

Per request the filter runs a single pass of::

    UNCHECKED -> BYPASSED   -> ALLOWED
    UNCHECKED -> VALIDATING -> ALLOWED | REJECTED

* **Safe methods** (GET, HEAD, OPTIONS, TRACE by default) skip validation.
  A token is still issued when the client has none, so the first page view
  seeds the cookie.
* **Unsafe methods** must echo a masked token (header or form field) that
  unmasks to the canonical token sealed in the cookie. Anything else is
  handed to the error handler and never reaches the application.

A fresh masked token is published for every request; handlers read it with
:func:`~pyxsrf.csrf.helpers.csrf_token` or :func:`~pyxsrf.csrf.helpers.form_field`.
"""

from __future__ import annotations

import inspect
from collections.abc import Iterable
from http import HTTPStatus
from typing import Any

import structlog
from starlette.responses import PlainTextResponse

from pyxsrf.context.attributes import RequestAttributes, attributes_for
from pyxsrf.csrf.helpers import FAILURE_KEY, FIELD_NAME_KEY, STATE_KEY, TOKEN_KEY, failure_reason
from pyxsrf.csrf.masking import mask_token
from pyxsrf.csrf.options import CsrfOptions, ErrorHandler, build_options
from pyxsrf.csrf.store import CookieTokenStore, ensure_token
from pyxsrf.csrf.types import FilterState, ValidationOutcome
from pyxsrf.csrf.validator import validate_request
from pyxsrf.web.filters import OncePerRequestFilter
from pyxsrf.web.ports.filter import CallNext

logger = structlog.get_logger(__name__)


def plain_text_error_handler(status_code: int = HTTPStatus.FORBIDDEN) -> ErrorHandler:
    """Build the default error handler: ``<status phrase> - <failure reason>``."""
    phrase = HTTPStatus(status_code).phrase

    async def handle(request: Any) -> PlainTextResponse:
        reason = failure_reason(request)
        detail = reason.reason if reason is not None else "CSRF validation failed"
        return PlainTextResponse(f"{phrase} - {detail}", status_code=status_code)

    return handle


class CsrfFilter(OncePerRequestFilter):
    """Validates unsafe requests and issues masked tokens.

    Args:
        options: Settings built with :func:`~pyxsrf.csrf.options.build_options`.
            Requires ``secret_keys`` unless a custom ``token_store`` is set.
        url_patterns: Only filter paths matching these glob patterns.
        exclude_patterns: Never filter paths matching these glob patterns
            (e.g. webhooks authenticated by other means).
    """

    def __init__(
        self,
        options: CsrfOptions | None = None,
        *,
        url_patterns: Iterable[str] | None = None,
        exclude_patterns: Iterable[str] | None = None,
    ) -> None:
        self._options = options or build_options()
        self._store = self._options.store or CookieTokenStore(self._options)
        self._error_handler = self._options.error_handler or plain_text_error_handler(
            self._options.failure_status
        )
        if url_patterns is not None:
            self.url_patterns = list(url_patterns)
        if exclude_patterns is not None:
            self.exclude_patterns = list(exclude_patterns)

    @property
    def options(self) -> CsrfOptions:
        return self._options

    async def do_filter(self, request: Any, call_next: CallNext) -> Any:
        attrs = attributes_for(request)
        attrs.set(STATE_KEY, FilterState.UNCHECKED)
        attrs.set(FIELD_NAME_KEY, self._options.field_name)

        issue = ensure_token(self._store, request)
        attrs.set(TOKEN_KEY, mask_token(issue.token))

        if request.method.upper() in self._options.safe_methods:
            attrs.set(STATE_KEY, FilterState.BYPASSED)
            response = await self._allow(request, call_next, attrs)
        else:
            attrs.set(STATE_KEY, FilterState.VALIDATING)
            result = await validate_request(request, issue, self._options)
            if result.valid:
                response = await self._allow(request, call_next, attrs)
            else:
                response = await self._reject(request, attrs, result.outcome)

        if issue.is_new:
            self._store.save(response, issue.token)
        return response

    async def _allow(self, request: Any, call_next: CallNext, attrs: RequestAttributes) -> Any:
        attrs.set(STATE_KEY, FilterState.ALLOWED)
        return await call_next(request)

    async def _reject(self, request: Any, attrs: RequestAttributes, outcome: ValidationOutcome) -> Any:
        attrs.set(FAILURE_KEY, outcome)
        attrs.set(STATE_KEY, FilterState.REJECTED)
        logger.warning(
            "csrf_request_rejected",
            method=request.method,
            path=request.url.path,
            reason=outcome.value,
        )
        response = self._error_handler(request)
        if inspect.isawaitable(response):
            response = await response
        return response
