"""
Logging setup.

Handlers and formatters come from the packaged `config/logging.yaml`; the level comes
from settings (`app.log_level`, or `BATHROOMFINDER_LOG_LEVEL`). Both the API module and
the CLI call `configure_logging()` on import/startup, so repeat calls are no-ops unless
a different level is requested.
"""

from __future__ import annotations

import copy
import logging.config

from bathroomfinder.config.settings import get_logging_config, get_settings

_configured_level: str | None = None


def configure_logging(level: str | None = None) -> str:
    """Apply the YAML logging config at `level` (default: settings); returns the level used."""
    global _configured_level

    level = (level or get_settings().app.log_level).upper()
    if level == _configured_level:
        return level

    # The cached dict is shared; never edit it in place.
    config = copy.deepcopy(get_logging_config())
    config.setdefault("root", {})["level"] = level
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict):
            handler["level"] = level

    logging.config.dictConfig(config)
    _configured_level = level
    return level
