"""Runtime settings for the merge service, read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def _env_number(name: str, default: float, cast=float, minimum: float = 0) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default
    if value <= minimum:
        logger.warning("Ignoring out-of-range %s=%r, using %s", name, raw, default)
        return default
    return value


@dataclass(frozen=True)
class Settings:
    fetch_timeout_s: float = 30.0
    max_workers: int = 8
    user_agent: str = f"collage-merge/{VERSION}"
    canvas_width: int = 600
    canvas_height: int = 400
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from ``COLLAGE_*`` environment variables."""
        return cls(
            fetch_timeout_s=_env_number("COLLAGE_FETCH_TIMEOUT", cls.fetch_timeout_s),
            max_workers=int(_env_number("COLLAGE_MAX_WORKERS", cls.max_workers, cast=int)),
            user_agent=os.environ.get("COLLAGE_USER_AGENT", "").strip() or cls.user_agent,
            canvas_width=int(_env_number("COLLAGE_CANVAS_WIDTH", cls.canvas_width, cast=int)),
            canvas_height=int(_env_number("COLLAGE_CANVAS_HEIGHT", cls.canvas_height, cast=int)),
            log_level=os.environ.get("COLLAGE_LOG_LEVEL", "").strip().upper() or cls.log_level,
        )

    @property
    def log_level_value(self) -> int:
        """Numeric level for ``log_level``; unknown names fall back to INFO."""
        level = logging.getLevelName(self.log_level)
        if not isinstance(level, int):
            logger.warning("Unknown log level %r, using INFO", self.log_level)
            return logging.INFO
        return level
