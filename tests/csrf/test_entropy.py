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
"""Tests for the secure random token generator."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from pyxsrf.csrf.entropy import TOKEN_LENGTH, generate_random_bytes, generate_token
from pyxsrf.kernel.exceptions import EntropySourceException, InfrastructureException


class TestGenerateRandomBytes:
    def test_returns_requested_length(self) -> None:
        assert len(generate_random_bytes(16)) == 16
        assert len(generate_random_bytes(64)) == 64

    def test_successive_calls_differ(self) -> None:
        assert generate_random_bytes(32) != generate_random_bytes(32)

    @pytest.mark.parametrize("n", [0, -1])
    def test_rejects_non_positive_length(self, n: int) -> None:
        with pytest.raises(ValueError):
            generate_random_bytes(n)

    def test_os_failure_is_fatal(self) -> None:
        with patch("pyxsrf.csrf.entropy.secrets.token_bytes", side_effect=OSError("no entropy")):
            with pytest.raises(EntropySourceException) as exc_info:
                generate_random_bytes(32)
        assert exc_info.value.code == "ENTROPY_UNAVAILABLE"
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_short_read_is_fatal(self) -> None:
        with patch("pyxsrf.csrf.entropy.secrets.token_bytes", return_value=b"\x00" * 8):
            with pytest.raises(EntropySourceException) as exc_info:
                generate_random_bytes(32)
        assert exc_info.value.context == {"requested": 32, "received": 8}

    def test_entropy_failure_is_infrastructure_error(self) -> None:
        assert issubclass(EntropySourceException, InfrastructureException)


class TestGenerateToken:
    def test_token_length(self) -> None:
        token = generate_token()
        assert isinstance(token, bytes)
        assert len(token) == TOKEN_LENGTH == 32
