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
"""Tests for structlog configuration and token redaction."""

import logging
import os
from unittest.mock import patch

import pytest
import structlog

from pyxsrf.core.config import Config
from pyxsrf.logging.setup import REDACTED, LoggingProperties, configure_logging, redact_tokens


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


class TestLoggingProperties:
    def test_defaults(self):
        props = Config({}).bind(LoggingProperties)
        assert props.format == "console"
        assert props.root_level == "INFO"
        assert props.logger_levels == {}

    def test_reads_levels_and_format(self):
        config = Config(
            {"pyxsrf": {"logging": {"format": "JSON", "level": {"root": "debug", "pyxsrf.csrf": "warning"}}}}
        )
        props = config.bind(LoggingProperties)
        assert props.format == "json"
        assert props.root_level == "DEBUG"
        assert props.logger_levels == {"pyxsrf.csrf": "WARNING"}

    def test_env_root_level_shorthand(self):
        with patch.dict(os.environ, {"PYXSRF_LOGGING_LEVEL": "error"}):
            props = Config({}).bind(LoggingProperties)
        assert props.root_level == "ERROR"

    def test_unknown_format_rejected(self):
        with pytest.raises(ValueError, match="LoggingProperties"):
            Config({"pyxsrf": {"logging": {"format": "xml"}}}).bind(LoggingProperties)


class TestConfigureLogging:
    def test_applies_root_and_logger_levels(self):
        config = Config({"pyxsrf": {"logging": {"level": {"root": "WARNING", "pyxsrf.csrf.store": "DEBUG"}}}})
        configure_logging(config)
        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("pyxsrf.csrf.store").level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        configure_logging(Config({"pyxsrf": {"logging": {"level": {"pyxsrf.other": "chatty"}}}}))
        assert logging.getLogger("pyxsrf.other").level == logging.INFO

    def test_json_output_never_contains_token(self, capsys):
        configure_logging(Config({"pyxsrf": {"logging": {"format": "json"}}}))

        structlog.get_logger("pyxsrf.redaction").info("submitted", token="s3cr3t", masked_token="m4sk")

        out = capsys.readouterr().out
        assert '"submitted"' in out
        assert "s3cr3t" not in out
        assert "m4sk" not in out


class TestRedactTokens:
    def test_token_fields_are_redacted(self):
        event = {"event": "csrf_token_issued", "token": "abc", "masked_token": "def", "reason": "NO_COOKIE"}
        assert redact_tokens(None, "info", event) == {
            "event": "csrf_token_issued",
            "token": REDACTED,
            "masked_token": REDACTED,
            "reason": "NO_COOKIE",
        }

    def test_event_name_is_kept(self):
        event = {"event": "token_rotated"}
        assert redact_tokens(None, "info", event) == {"event": "token_rotated"}
