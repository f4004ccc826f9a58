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
"""RequestContextFilter — initializes RequestContext for each HTTP request.

Place it first in the chain so downstream filters and handlers share the
same request-scoped attributes.
"""

from __future__ import annotations

from typing import Any

import structlog

from pyxsrf.context.request_context import RequestContext
from pyxsrf.web.filters import OncePerRequestFilter
from pyxsrf.web.ports.filter import CallNext


class RequestContextFilter(OncePerRequestFilter):
    """Creates a fresh RequestContext for each incoming HTTP request.

    Honors the ``X-Request-Id`` header if present; otherwise generates one.
    The request id is bound into structlog's context variables for the
    lifetime of the request. Clears both after the response (even on error).
    """

    async def do_filter(self, request: Any, call_next: CallNext) -> Any:
        request_id = getattr(request, "headers", {}).get("x-request-id")
        ctx = RequestContext.init(request_id=request_id)
        structlog.contextvars.bind_contextvars(request_id=ctx.request_id)
        try:
            return await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
            RequestContext.clear()
