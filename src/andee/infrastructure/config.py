"""Configuration constants, .env parsing, and delivery/alarm settings."""

from __future__ import annotations

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def read_env_file(keys: list[str]) -> dict[str, str]:
    """Parse .env file and return values for requested keys.

    Values are NOT loaded into os.environ; callers decide what to do with them.
    This keeps the bot token and API key out of the process environment.
    """
    env_file = Path.cwd() / ".env"
    try:
        content = env_file.read_text()
    except OSError:
        return {}

    result: dict[str, str] = {}
    wanted = set(keys)

    for line in content.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        eq_idx = trimmed.find("=")
        if eq_idx == -1:
            continue
        key = trimmed[:eq_idx].strip()
        if key not in wanted:
            continue
        value = trimmed[eq_idx + 1 :].strip()
        if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
            value = value[1:-1]
        if value:
            result[key] = value

    return result


_env_config = read_env_file(["ANDEE_API_KEY", "SCHEDULED_TASK_URL", "TELEGRAM_API_BASE"])


def _setting(key: str, default: str) -> str:
    return os.environ.get(key) or _env_config.get(key, default)


ANDEE_API_KEY: str = _setting("ANDEE_API_KEY", "")

HOST: str = os.environ.get("HOST", "0.0.0.0")
PORT: int = int(os.environ.get("PORT", "8787"))

# Absolute paths
PROJECT_ROOT: Path = Path.cwd()
STORE_DIR: Path = Path(os.environ.get("STORE_DIR", str(PROJECT_ROOT / "store"))).resolve()

TELEGRAM_API_BASE: str = _setting("TELEGRAM_API_BASE", "https://api.telegram.org").rstrip("/")
# When set, recurring prompts are handed to the agent container instead of being sent verbatim.
SCHEDULED_TASK_URL: str = _setting("SCHEDULED_TASK_URL", "")

DELIVERY_TIMEOUT_S: float = float(os.environ.get("DELIVERY_TIMEOUT_S", "10"))

ALARM_POLL_INTERVAL: float = float(os.environ.get("ALARM_POLL_INTERVAL", "1.0"))  # seconds
ALARM_RETRY_BASE_S: float = 5.0
ALARM_MAX_RETRIES: int = 5
# Live actors with no alarm and no work are dropped after this long
ACTOR_IDLE_TTL_S: float = float(os.environ.get("ACTOR_IDLE_TTL_S", "600"))

EXECUTION_RETENTION_DAYS: int = int(os.environ.get("EXECUTION_RETENTION_DAYS", "30"))
EXECUTION_LIST_LIMIT: int = 50

CONFIG_VERSION: str = "1.0"


def _resolve_default_timezone() -> str:
    tz = os.environ.get("DEFAULT_TIMEZONE", "") or os.environ.get("TZ", "")
    if not tz:
        return "UTC"
    try:
        ZoneInfo(tz)
        return tz
    except (ZoneInfoNotFoundError, ValueError):
        return "UTC"


DEFAULT_TIMEZONE: str = _resolve_default_timezone()


class DeliveryConfig:
    """Delivery and alarm retry settings handed to the actors."""

    def __init__(
        self,
        delivery_timeout_s: float = DELIVERY_TIMEOUT_S,
        execution_retention_days: int = EXECUTION_RETENTION_DAYS,
    ) -> None:
        self.delivery_timeout_s = delivery_timeout_s
        self.execution_retention_days = execution_retention_days

    def retention_ms(self) -> int:
        return self.execution_retention_days * 24 * 60 * 60 * 1000

    def alarm_retry_delay_s(self, attempt: int) -> float:
        """Backoff before re-running an alarm handler that raised."""
        return ALARM_RETRY_BASE_S * (2 ** max(attempt - 1, 0))
