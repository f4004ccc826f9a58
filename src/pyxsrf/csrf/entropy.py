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
"""Cryptographically secure random bytes for canonical tokens and pads."""

from __future__ import annotations

import secrets

from pyxsrf.kernel.exceptions import EntropySourceException

TOKEN_LENGTH: int = 32
"""Length in bytes of a canonical CSRF token."""


def generate_random_bytes(n: int) -> bytes:
    """Return *n* bytes from the operating system CSPRNG.

    ``secrets`` is safe to call from concurrent requests and threads.

    Raises:
        ValueError: If *n* is not positive.
        EntropySourceException: If the entropy source fails or returns
            fewer bytes than requested.
    """
    if n <= 0:
        raise ValueError(f"Random byte count must be positive, got {n}")

    try:
        data = secrets.token_bytes(n)
    except (OSError, NotImplementedError) as exc:
        raise EntropySourceException(
            "Secure random source unavailable",
            code="ENTROPY_UNAVAILABLE",
        ) from exc

    if len(data) != n:
        raise EntropySourceException(
            f"Secure random source returned {len(data)} of {n} bytes",
            code="ENTROPY_SHORT_READ",
            context={"requested": n, "received": len(data)},
        )
    return data


def generate_token() -> bytes:
    """Generate a fresh canonical token of :data:`TOKEN_LENGTH` bytes."""
    return generate_random_bytes(TOKEN_LENGTH)
