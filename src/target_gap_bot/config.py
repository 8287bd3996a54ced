import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .numeric import parse_int_prefix


def _env_float_opt(name: str) -> Optional[float]:
    """
    Read an optional float from env. Returns None if unset, blank, non-numeric,
    or not finite (``nan`` / ``inf``).
    """
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if raw == "" or raw.lower() in {"none", "null"} or raw.startswith("#"):
        return None
    try:
        value = float(raw)
    except Exception:
        return None
    return value if math.isfinite(value) else None


def _env_float(name: str, default: float) -> float:
    value = _env_float_opt(name)
    return default if value is None else value


def _env_int(name: str, default: int) -> int:
    try:
        return int((os.getenv(name) or str(default)).strip())
    except Exception:
        return default


def _b(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() in {
        "1",
        "true",
        "yes",
        "y",
        "on",
    }


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name) or ""
    return [token.strip() for token in raw.split(",") if token.strip()]


def _headless() -> bool:
    # Anything other than an explicit "false" keeps the browser headless.
    return os.getenv("HEADLESS_MODE", "true").strip().lower() != "false"


@dataclass
class Settings:
    # Instrument universe, in processing order
    stock_codes: List[str] = field(default_factory=lambda: _env_list("STOCK_CODES"))

    # Slack credentials; alerts are skipped when either is empty
    slack_token: str = os.getenv("SLACK_TOKEN", "")
    slack_channel_id: str = os.getenv("SLACK_CHANNEL_ID", "")

    # Scheduling.  Cron expression evaluated in ``timezone``.
    cron_schedule: str = os.getenv("CRON_SCHEDULE", "") or "0 7 * * *"
    timezone: str = os.getenv("BOT_TIMEZONE", "Asia/Seoul")

    # Browser
    headless: bool = _headless()
    page_timeout_seconds: float = _env_float("PAGE_TIMEOUT_SECONDS", 30.0)
    chromedriver_path: str = os.getenv("CHROMEDRIVER_PATH", "")

    # Behavior / thresholds.  A missing gap threshold disables gap analysis.
    price_gap_percentage: Optional[float] = _env_float_opt("PRICE_GAP_PERCENTAGE")
    # Market-cap floor in 억.  Non-numeric values fall back to 0.
    min_market_cap_billions: int = (
        parse_int_prefix(os.getenv("MIN_MARKET_CAP_BILLIONS")) or 0
    )

    # Pause between instruments, drawn uniformly from [min, max] seconds
    delay_min_seconds: float = _env_float("DELAY_MIN_SECONDS", 2.0)
    delay_max_seconds: float = _env_float("DELAY_MAX_SECONDS", 5.0)

    # Alert batching (Slack throughput)
    alert_batch_size: int = max(1, _env_int("ALERT_BATCH_SIZE", 5))
    alert_batch_delay_seconds: float = _env_float("ALERT_BATCH_DELAY_SECONDS", 1.0)

    # Exclusion list
    skip_list_file: Path = Path(os.getenv("SKIP_LIST_FILE", "skip-list.txt"))
    # Python weekday numbering: 0=Monday ... 6=Sunday
    skip_list_reset_weekday: int = _env_int("SKIP_LIST_RESET_WEEKDAY", 0)

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_plain: bool = _b("LOG_PLAIN", False)
    log_dir: Path = Path(os.getenv("LOG_DIR", "data/logs"))

    @property
    def slack_configured(self) -> bool:
        return bool(self.slack_token and self.slack_channel_id)


SETTINGS = Settings()


def get_settings() -> Settings:
    return SETTINGS
