"""
Configuration service for reading settings from the environment.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, List

logger = logging.getLogger("app.config")


class ConfigService:
    """Service for managing application configuration."""

    def __init__(self):
        self._cache: dict[str, Any] = {}

    def get_setting(self, key: str, default: Any = None) -> Any:
        """
        Get setting value from environment.

        Priority: Override > Environment > Default
        """
        if key in self._cache:
            return self._cache[key]

        value = os.getenv(key, default)
        self._cache[key] = value

        logger.debug(f"Retrieved setting {key}={value}")
        return value

    def get_int(self, key: str, default: int) -> int:
        value = self.get_setting(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid integer for {key}: {value}, using {default}")
            return default

    def get_float(self, key: str, default: float) -> float:
        value = self.get_setting(key, default)
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid number for {key}: {value}, using {default}")
            return default

    def get_int_list(self, key: str, default: str) -> List[int]:
        """Parse a comma-separated list of integers."""
        raw = str(self.get_setting(key, default))
        values = []
        for part in raw.split(","):
            part = part.strip()
            if not part:
                continue
            try:
                values.append(int(part))
            except ValueError:
                logger.warning(f"Ignoring non-integer entry in {key}: {part}")
        return values

    def now(self) -> datetime:
        """
        Get current time (real or fake based on APP_NOW_MODE).

        Returns:
            Current datetime in UTC
        """
        now_mode = self.get_setting("APP_NOW_MODE", "real")

        if now_mode == "fake":
            fake_now_str = self.get_setting("APP_FAKE_NOW")
            if fake_now_str:
                try:
                    fake_date = datetime.strptime(fake_now_str, "%Y-%m-%d %H:%M:%S")
                    logger.debug(f"Using fake time: {fake_date}")
                    return fake_date.replace(tzinfo=timezone.utc)
                except ValueError:
                    logger.warning(f"Invalid APP_FAKE_NOW format: {fake_now_str}, using real time")

        return datetime.now(timezone.utc)

    def utcnow(self) -> datetime:
        """Naive UTC timestamp, the form stored in the DateTime columns."""
        return self.now().replace(tzinfo=None)


# Global instance
config_service = ConfigService()
