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
"""Bootstrap — build the filter chain from configuration.

Follows an application start-up: load the configuration (base file plus
active profiles), configure logging from it, then build the filters from the
same configuration::

    config = load_config("pyxsrf.yaml")
    app = Starlette(routes=routes, middleware=[csrf_middleware(config)])
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path

import structlog
from pydantic import BaseModel
from starlette.middleware import Middleware

from pyxsrf.core.config import Config, config_properties
from pyxsrf.csrf.filter import CsrfFilter
from pyxsrf.csrf.options import CsrfProperties, Option, build_options
from pyxsrf.logging.setup import configure_logging
from pyxsrf.web.adapters.starlette.filter_chain import WebFilterChainMiddleware
from pyxsrf.web.adapters.starlette.filters.request_context_filter import RequestContextFilter
from pyxsrf.web.ports.filter import WebFilter

PROFILES_ENV = "PYXSRF_PROFILES_ACTIVE"

logger = structlog.get_logger(__name__)


@config_properties(prefix="pyxsrf.web")
class WebProperties(BaseModel):
    """Filter chain settings read from ``pyxsrf.web.*``."""

    request_context: bool = True


def active_profiles(config_path: Path | None = None) -> list[str]:
    """Profiles from ``PYXSRF_PROFILES_ACTIVE``, else ``pyxsrf.profiles.active`` in the base file."""
    env_profiles = os.environ.get(PROFILES_ENV, "")
    if env_profiles:
        return [p.strip() for p in env_profiles.split(",") if p.strip()]

    if config_path is None:
        return []
    active = Config.from_file(config_path).get("pyxsrf.profiles.active", "")
    return [p.strip() for p in str(active).split(",") if p.strip()]


def load_config(path: str | Path = "pyxsrf.yaml", profiles: Sequence[str] | None = None) -> Config:
    """Load *path* and its profile overlays. A missing file yields defaults only."""
    path = Path(path)
    resolved = list(profiles) if profiles is not None else active_profiles(path)
    return Config.from_file(path, active_profiles=resolved)


def build_filters(config: Config, *overrides: Option, configure_logs: bool = True) -> list[WebFilter]:
    """Configure logging, then build the CSRF filter chain from *config*.

    *overrides* are applied after the configured options, so code wins over
    files and environment variables. With ``pyxsrf.web.request-context``
    enabled (the default) a :class:`RequestContextFilter` runs first.
    """
    if configure_logs:
        configure_logging(config)

    csrf_props = config.bind(CsrfProperties)
    web_props = config.bind(WebProperties)
    options = build_options(*csrf_props.to_options(), *overrides)

    filters: list[WebFilter] = []
    if web_props.request_context:
        filters.append(RequestContextFilter())
    filters.append(
        CsrfFilter(
            options,
            url_patterns=csrf_props.url_patterns or None,
            exclude_patterns=csrf_props.exclude_patterns or None,
        )
    )

    logger.info(
        "csrf_filter_configured",
        sources=config.loaded_sources,
        cookie_name=options.cookie_name,
        secure=options.secure,
        safe_methods=sorted(options.safe_methods),
        key_count=len(options.secret_keys),
        exclude_patterns=csrf_props.exclude_patterns,
    )
    return filters


def csrf_middleware(config: Config, *overrides: Option, configure_logs: bool = True) -> Middleware:
    """Starlette ``Middleware`` entry running :func:`build_filters` in a filter chain."""
    return Middleware(WebFilterChainMiddleware, filters=build_filters(config, *overrides, configure_logs=configure_logs))
