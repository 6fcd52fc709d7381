"""Runtime settings read from the environment (and a .env file if present)."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Engine configuration."""

    rates_path: Path | None = None  # alternative rates.yaml
    reject_negative: bool = True  # reject negative usage and rates
    log_level: str = "WARNING"


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in TRUE_VALUES


def load_settings() -> Settings:
    """Build settings from THAI_TARIFF_* environment variables."""
    rates_path = os.environ.get("THAI_TARIFF_RATES_PATH")
    return Settings(
        rates_path=Path(rates_path) if rates_path else None,
        reject_negative=_env_flag("THAI_TARIFF_REJECT_NEGATIVE", True),
        log_level=os.environ.get("THAI_TARIFF_LOG_LEVEL", "WARNING").upper(),
    )
