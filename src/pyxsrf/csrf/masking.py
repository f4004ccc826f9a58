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
"""One-time-pad masking of canonical tokens.

A masked token is ``base64(pad + (token XOR pad))`` with a fresh random pad
per call, so the value embedded in a response body never repeats. This keeps
compression-oracle attacks (BREACH) from recovering the canonical token.
"""

from __future__ import annotations

import base64
import binascii

from pyxsrf.csrf.entropy import TOKEN_LENGTH, generate_random_bytes
from pyxsrf.kernel.exceptions import MalformedTokenException


def xor_bytes(a: bytes, b: bytes) -> bytes:
    """XOR two byte strings of equal length."""
    if len(a) != len(b):
        raise ValueError(f"Cannot XOR byte strings of length {len(a)} and {len(b)}")
    return bytes(x ^ y for x, y in zip(a, b))


def mask_token(token: bytes) -> str:
    """Encode *token* with a fresh one-time pad for transport."""
    pad = generate_random_bytes(len(token))
    return base64.b64encode(pad + xor_bytes(token, pad)).decode("ascii")


def unmask_token(masked: str, token_length: int = TOKEN_LENGTH) -> bytes:
    """Recover the canonical token from a masked token.

    Raises:
        MalformedTokenException: If *masked* is not valid base64 or does not
            decode to exactly ``2 * token_length`` bytes.
    """
    try:
        raw = base64.b64decode(masked, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedTokenException(
            "Masked token is not valid base64",
            code="CSRF_MALFORMED_TOKEN",
        ) from exc

    if len(raw) != 2 * token_length:
        raise MalformedTokenException(
            f"Masked token decodes to {len(raw)} bytes, expected {2 * token_length}",
            code="CSRF_MALFORMED_TOKEN",
            context={"length": len(raw)},
        )

    pad, ciphertext = raw[:token_length], raw[token_length:]
    return xor_bytes(pad, ciphertext)
