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
"""Request-scoped context backed by contextvars.

Each HTTP request gets a fresh RequestContext via RequestContextFilter.
The context stores the request id and arbitrary attributes such as the
masked CSRF token and the validation failure reason.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Any

_request_context_var: ContextVar[RequestContext | None] = ContextVar(
    "pyxsrf_request_context", default=None
)


class RequestContext:
    """Holds per-request state: request ID and custom attributes.

    Use ``RequestContext.init()`` to create a new context for the current
    async task, and ``RequestContext.current()`` to retrieve it.
    """

    def __init__(self, request_id: str | None = None) -> None:
        self._request_id = request_id or uuid.uuid4().hex
        self._attributes: dict[str, Any] = {}

    @property
    def request_id(self) -> str:
        return self._request_id

    def get(self, key: str, default: Any = None) -> Any:
        return self._attributes.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._attributes[key] = value

    @classmethod
    def init(cls, request_id: str | None = None) -> RequestContext:
        """Create and set a new RequestContext for the current async task."""
        ctx = cls(request_id=request_id)
        _request_context_var.set(ctx)
        return ctx

    @classmethod
    def current(cls) -> RequestContext | None:
        return _request_context_var.get()

    @classmethod
    def clear(cls) -> None:
        _request_context_var.set(None)
