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
"""pyxsrf CSRF — masked-token request forgery protection.

Usage::

    from starlette.middleware import Middleware

    from pyxsrf.csrf import CsrfFilter, build_options, secret_keys
    from pyxsrf.web.adapters.starlette import WebFilterChainMiddleware

    csrf = CsrfFilter(build_options(secret_keys(KEY)))
    app = Starlette(routes=..., middleware=[Middleware(WebFilterChainMiddleware, filters=[csrf])])
"""

from pyxsrf.csrf.entropy import TOKEN_LENGTH, generate_random_bytes, generate_token
from pyxsrf.csrf.filter import CsrfFilter, plain_text_error_handler
from pyxsrf.csrf.helpers import csrf_token, failure_reason, filter_state, form_field, template_context
from pyxsrf.csrf.masking import mask_token, unmask_token
from pyxsrf.csrf.options import (
    SAFE_METHODS,
    CsrfOptions,
    CsrfProperties,
    Option,
    build_options,
    cookie_name,
    domain,
    error_handler,
    failure_status,
    field_name,
    http_only,
    max_age,
    options_from_config,
    path,
    request_header,
    safe_methods,
    same_site,
    secret_keys,
    secure,
    token_store,
)
from pyxsrf.csrf.ports.outbound import TokenStore
from pyxsrf.csrf.store import CookieTokenStore, StoredToken, ensure_token, generate_key
from pyxsrf.csrf.types import FilterState, TokenIssue, ValidationOutcome, ValidationResult
from pyxsrf.csrf.validator import extract_token, tokens_match, validate_request

__all__ = [
    # Tokens
    "TOKEN_LENGTH",
    "generate_random_bytes",
    "generate_token",
    "mask_token",
    "unmask_token",
    # Store
    "CookieTokenStore",
    "StoredToken",
    "TokenStore",
    "ensure_token",
    "generate_key",
    # Validation
    "FilterState",
    "TokenIssue",
    "ValidationOutcome",
    "ValidationResult",
    "extract_token",
    "tokens_match",
    "validate_request",
    # Filter
    "CsrfFilter",
    "plain_text_error_handler",
    # Accessors
    "csrf_token",
    "failure_reason",
    "filter_state",
    "form_field",
    "template_context",
    # Options
    "SAFE_METHODS",
    "CsrfOptions",
    "CsrfProperties",
    "Option",
    "build_options",
    "cookie_name",
    "domain",
    "error_handler",
    "failure_status",
    "field_name",
    "http_only",
    "max_age",
    "options_from_config",
    "path",
    "request_header",
    "safe_methods",
    "same_site",
    "secret_keys",
    "secure",
    "token_store",
]
