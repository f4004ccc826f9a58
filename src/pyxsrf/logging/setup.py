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
"""structlog configuration driven by ``pyxsrf.logging.*``.

Keys::

    pyxsrf:
      logging:
        format: json            # or console (default)
        level:
          root: INFO
          pyxsrf.csrf: DEBUG    # per-logger overrides

``PYXSRF_LOGGING_FORMAT`` and ``PYXSRF_LOGGING_LEVEL`` (a single root level)
override the file. Whatever the renderer, fields carrying CSRF tokens are
redacted before output.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Literal

import structlog
from pydantic import BaseModel, Field, field_validator

from pyxsrf.core.config import Config, config_properties

REDACTED = "***"


@config_properties(prefix="pyxsrf.logging")
class LoggingProperties(BaseModel):
    format: Literal["console", "json"] = "console"
    level: dict[str, str] = Field(default_factory=lambda: {"root": "INFO"})

    @field_validator("format", mode="before")
    @classmethod
    def _lower_format(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @field_validator("level", mode="before")
    @classmethod
    def _root_level_shorthand(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"root": value}
        return value

    @property
    def root_level(self) -> str:
        return self.level.get("root", "INFO").upper()

    @property
    def logger_levels(self) -> dict[str, str]:
        return {name: lvl.upper() for name, lvl in self.level.items() if name != "root"}


def redact_tokens(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor: mask every field whose name mentions a token."""
    for key in event_dict:
        if "token" in key and key != "event":
            event_dict[key] = REDACTED
    return event_dict


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(config: Config) -> LoggingProperties:
    """Configure structlog and stdlib logging from *config*; return the bound settings."""
    props = config.bind(LoggingProperties)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        redact_tokens,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if props.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=_level(props.root_level), force=True)

    for name, lvl in props.logger_levels.items():
        logging.getLogger(name).setLevel(_level(lvl))
    return props
