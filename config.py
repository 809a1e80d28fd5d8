"""Bot configuration from environment variables."""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

# Paths
PROJECT_ROOT = Path(__file__).parent
DATA_DIR = PROJECT_ROOT / "data"

DEFAULT_DATABASE_PATH = DATA_DIR / "mss-bot.db"
DEFAULT_AUDIT_DATABASE_PATH = DATA_DIR / "audit.db"
DEFAULT_PING_TIMEOUT = "5s"
DEFAULT_LOG_LEVEL = "info"

# Placeholder left in .env.example; treated as unset
TOKEN_PLACEHOLDER = "YOUR_DISCORD_BOT_TOKEN"

_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m)?$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, None: 1.0}


class MissingEnvironmentVariableError(ValueError):
    """Raised when a required environment variable is missing."""

    pass


class InvalidConfigurationError(ValueError):
    """Raised when an environment variable has an unusable value."""

    pass


@dataclass(frozen=True)
class BotConfig:
    """Configuration from environment variables."""

    discord_token: str
    database_path: Path = DEFAULT_DATABASE_PATH
    audit_database_path: Path = DEFAULT_AUDIT_DATABASE_PATH
    ping_timeout: float = 5.0
    log_level: int = logging.INFO

    def __repr__(self) -> str:
        """Return string representation with masked token."""
        return (
            "BotConfig(discord_token='***', "
            f"database_path='{self.database_path}', "
            f"audit_database_path='{self.audit_database_path}', "
            f"ping_timeout={self.ping_timeout}, "
            f"log_level={logging.getLevelName(self.log_level)})"
        )


def parse_duration(value: str) -> float:
    """
    Parse a duration such as "5", "5s", "1500ms" or "1m" into seconds.

    Raises:
        InvalidConfigurationError: If the value is malformed or not positive
    """
    match = _DURATION_RE.match(value.strip().lower())
    if not match:
        raise InvalidConfigurationError(f"invalid duration: {value!r}")
    seconds = float(match.group(1)) * _DURATION_UNITS[match.group(2)]
    if seconds <= 0:
        raise InvalidConfigurationError(f"duration must be positive: {value!r}")
    return seconds


def parse_log_level(value: str | None) -> int:
    """Map a level name to a logging level; unknown names fall back to INFO."""
    level = logging.getLevelName((value or DEFAULT_LOG_LEVEL).strip().upper())
    return level if isinstance(level, int) else logging.INFO


def validate_environment() -> BotConfig:
    """
    Validate required environment variables.

    Returns:
        BotConfig with validated values

    Raises:
        MissingEnvironmentVariableError: If DISCORD_TOKEN is not set
        InvalidConfigurationError: If MSS_PING_TIMEOUT is malformed
    """
    token = os.getenv("DISCORD_TOKEN")
    if not token or token == TOKEN_PLACEHOLDER:
        raise MissingEnvironmentVariableError(
            "DISCORD_TOKEN environment variable is required. "
            "Set it in your .env file."
        )

    return BotConfig(
        discord_token=token,
        database_path=Path(os.getenv("MSS_DATABASE_PATH") or DEFAULT_DATABASE_PATH),
        audit_database_path=Path(
            os.getenv("MSS_AUDIT_DATABASE_PATH") or DEFAULT_AUDIT_DATABASE_PATH
        ),
        ping_timeout=parse_duration(os.getenv("MSS_PING_TIMEOUT") or DEFAULT_PING_TIMEOUT),
        log_level=parse_log_level(os.getenv("LOG_LEVEL")),
    )
