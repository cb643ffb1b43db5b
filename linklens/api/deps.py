import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from linklens.adapters.clock import SystemClock
from linklens.adapters.memory_logs import InMemoryAccessLogRepo
from linklens.components.access_logs import AccessLogRepoPort, ClockPort
from linklens.rules.loader import load_rules
from linklens.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.rules_path = Path(
            os.environ.get("LINKLENS_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )
        self.default_timezone = os.environ.get("LINKLENS_DEFAULT_TIMEZONE")
        self.log_level = os.environ.get("LINKLENS_LOG_LEVEL", "INFO").upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


def get_default_timezone(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> str:
    """Env override first, then the rules file default."""
    return settings.default_timezone or rules.buckets.default_timezone


# --- Repos ---
_access_log_repo = InMemoryAccessLogRepo()


def get_access_log_repo() -> AccessLogRepoPort:
    return _access_log_repo


def get_clock() -> ClockPort:
    return SystemClock()
