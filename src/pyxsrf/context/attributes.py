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
"""Request-scoped attribute storage.

The CSRF filter publishes its results (masked token, failure reason) through
a minimal get/set capability so any host mechanism can back it. Values always
land in Starlette's ``request.state`` and are mirrored into the
contextvars-based :class:`RequestContext` when one is active, so readers find
them whichever order the filters run in.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pyxsrf.context.request_context import RequestContext

_STATE_ATTR = "pyxsrf_attributes"
_MISSING = object()


@runtime_checkable
class RequestAttributes(Protocol):
    """Get/set a value by key, scoped to the current request."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class StateAttributes:
    """Adapts ``request.state`` to :class:`RequestAttributes`.

    Values live in a single dict on the state object so they cannot collide
    with attributes set by other middleware.
    """

    __slots__ = ("_values",)

    def __init__(self, request: Any) -> None:
        state = request.state
        values = getattr(state, _STATE_ATTR, None)
        if values is None:
            values = {}
            setattr(state, _STATE_ATTR, values)
        self._values: dict[str, Any] = values

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value


class LayeredAttributes:
    """``request.state`` overlaid by the active :class:`RequestContext`.

    Writes go to the state and, when present, the context. Reads prefer the
    context and fall back to the state for keys written before the context
    was initialised.
    """

    __slots__ = ("_state", "_context")

    def __init__(self, state: StateAttributes, context: RequestContext | None = None) -> None:
        self._state = state
        self._context = context

    def get(self, key: str, default: Any = None) -> Any:
        if self._context is not None:
            value = self._context.get(key, _MISSING)
            if value is not _MISSING:
                return value
        return self._state.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._state.set(key, value)
        if self._context is not None:
            self._context.set(key, value)


def attributes_for(request: Any) -> RequestAttributes:
    """Return the attribute store for *request*."""
    return LayeredAttributes(StateAttributes(request), RequestContext.current())
