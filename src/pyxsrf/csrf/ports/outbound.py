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
"""Token store protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pyxsrf.csrf.store import StoredToken


@runtime_checkable
class TokenStore(Protocol):
    """Persists the canonical token for a client.

    ``load`` must raise ``CookieMissingException``, ``CookieInvalidException``
    or ``CookieExpiredException`` when no usable token exists; it must never
    return a token it could not authenticate.
    """

    def load(self, request: Any) -> StoredToken: ...

    def save(self, response: Any, token: bytes) -> None: ...
