"""
Configuration Module - Settings read from the environment (and .env)

Handles:
- Loading .env with python-dotenv
- Typed NLOGS_* settings with defaults
- Command line overrides
"""
import os
from dataclasses import dataclass, fields, replace
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

T = TypeVar("T")


class ConfigError(ValueError):
    """An NLOGS_* variable holds a value of the wrong type"""


def _read(name: str, default: T, cast: Callable[[str], T]) -> T:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ConfigError(f"{name}={raw!r} is not a valid {cast.__name__}") from e


@dataclass(frozen=True)
class Settings:
    api_url: str = "http://localhost:3000"
    poll_interval: float = 2.0
    max_logs: int = 10000
    throttle_interval: float = 0.1
    throttle_batch: int = 10
    export_dir: str = "exports"
    log_dir: str = "app_log"
    request_timeout: float = 10.0
    max_retries: int = 3

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """
        Build settings from NLOGS_* environment variables

        Variables already set in the environment win over the .env file.

        Raises:
            ConfigError: A numeric variable could not be parsed
        """
        load_dotenv(env_file)
        defaults = cls()
        values = {}
        for field in fields(cls):
            default = getattr(defaults, field.name)
            values[field.name] = _read(f"NLOGS_{field.name.upper()}", default, type(default))
        return cls(**values)

    def override(self, **changes) -> "Settings":
        """Apply command line values, ignoring options that were not given"""
        return replace(self, **{key: value for key, value in changes.items() if value is not None})
