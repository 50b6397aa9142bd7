# Config
"""
Configuration for the quizparse decoder.
Values come from the environment (a local .env file is loaded first).
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from quizparse.utils.errors import InvalidConfigurationError

load_dotenv()

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise InvalidConfigurationError(name, raw, "a boolean")


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise InvalidConfigurationError(name, raw, "an integer") from None
    if value < minimum:
        raise InvalidConfigurationError(name, raw, f"an integer >= {minimum}")
    return value


class Settings:
    def __init__(self) -> None:
        # Logging
        self.log_level = os.getenv("QUIZPARSE_LOG_LEVEL", "INFO").upper()
        self.dev_mode = _env_bool("QUIZPARSE_DEV_MODE", False)
        self.log_file = os.getenv("QUIZPARSE_LOG_FILE") or None

        # Diagnostics never echo more than this many characters of model output
        self.preview_chars = _env_int("QUIZPARSE_PREVIEW_CHARS", 200, minimum=1)

        # Pipeline stages
        self.prefer_object = _env_bool("QUIZPARSE_PREFER_OBJECT", True)
        self.enable_repair = _env_bool("QUIZPARSE_ENABLE_REPAIR", True)
        self.enable_extraction = _env_bool("QUIZPARSE_ENABLE_EXTRACTION", True)
        self.enable_flat = _env_bool("QUIZPARSE_ENABLE_FLAT", True)

    def get_log_file_path(self) -> Optional[Path]:
        return Path(self.log_file) if self.log_file else None


# Singleton instance
_settings = None


def get_settings():
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
