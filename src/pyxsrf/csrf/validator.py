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
"""Request validation: extract the submitted token and compare it to the stored one."""

from __future__ import annotations

import hmac
from typing import Any

from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from pyxsrf.csrf.masking import unmask_token
from pyxsrf.csrf.options import CsrfOptions
from pyxsrf.csrf.types import TokenIssue, ValidationOutcome, ValidationResult
from pyxsrf.kernel.exceptions import MalformedTokenException

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def tokens_match(a: bytes, b: bytes) -> bool:
    """Compare two tokens in time independent of where they first differ."""
    return hmac.compare_digest(a, b)


async def extract_token(request: Any, options: CsrfOptions) -> str | None:
    """Return the masked token submitted with *request*, if any.

    The configured header wins; the configured form field is the fallback
    for form-encoded bodies. The body is read through ``request.body()``
    first so the application can still consume it afterwards. A body that
    fails to parse counts as no token.
    """
    value = request.headers.get(options.request_header)
    if value:
        return value

    content_type = request.headers.get("content-type", "")
    if not content_type.startswith(_FORM_CONTENT_TYPES):
        return None

    await request.body()
    try:
        form = await request.form()
    except (MultiPartException, HTTPException):
        return None

    value = form.get(options.field_name)
    return value if isinstance(value, str) and value else None


async def validate_request(request: Any, issue: TokenIssue, options: CsrfOptions) -> ValidationResult:
    """Check *request* against the token the store holds for this client.

    Store failures (no, bad or expired cookie) are reported first, then a
    missing submission, then a submission that does not decode or match.
    """
    if issue.failure is not None:
        return ValidationResult(issue.failure)

    submitted = await extract_token(request, options)
    if submitted is None:
        return ValidationResult(ValidationOutcome.NO_TOKEN)

    try:
        candidate = unmask_token(submitted)
    except MalformedTokenException:
        return ValidationResult(ValidationOutcome.BAD_TOKEN)

    if not tokens_match(candidate, issue.token):
        return ValidationResult(ValidationOutcome.BAD_TOKEN)

    return ValidationResult(ValidationOutcome.VALID, token=issue.token)
