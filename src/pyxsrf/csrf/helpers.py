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
"""Accessors for handlers and templates.

Values are published by :class:`~pyxsrf.csrf.filter.CsrfFilter` through the
request-scoped attributes, so they are only meaningful downstream of it.
"""

from __future__ import annotations

from typing import Any

from markupsafe import Markup

from pyxsrf.context.attributes import attributes_for
from pyxsrf.csrf.options import DEFAULT_FIELD_NAME
from pyxsrf.csrf.types import FilterState, ValidationOutcome

TOKEN_KEY = "pyxsrf.csrf.token"
FAILURE_KEY = "pyxsrf.csrf.failure"
FIELD_NAME_KEY = "pyxsrf.csrf.field_name"
STATE_KEY = "pyxsrf.csrf.state"

TEMPLATE_FIELD = "csrf_field"
"""Template variable name used by :func:`template_context`."""


def csrf_token(request: Any) -> str:
    """Masked token for this request, or ``""`` if the filter did not run.

    Send it back in the ``X-CSRF-Token`` header (or the configured form
    field). Every call site receives the same value within one request.
    """
    return attributes_for(request).get(TOKEN_KEY, "")


def failure_reason(request: Any) -> ValidationOutcome | None:
    """Why the request was rejected, for use inside a custom error handler."""
    return attributes_for(request).get(FAILURE_KEY)


def filter_state(request: Any) -> FilterState | None:
    return attributes_for(request).get(STATE_KEY)


def form_field(request: Any) -> Markup:
    """Hidden ``<input>`` carrying the masked token, ready for a template."""
    attrs = attributes_for(request)
    name = attrs.get(FIELD_NAME_KEY, DEFAULT_FIELD_NAME)
    return Markup('<input type="hidden" name="{}" value="{}">').format(name, attrs.get(TOKEN_KEY, ""))


def template_context(request: Any) -> dict[str, Markup]:
    """Context entries to merge into a template render, e.g. ``{{ csrf_field }}``."""
    return {TEMPLATE_FIELD: form_field(request)}
