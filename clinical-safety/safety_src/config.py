"""Configuration for the clinical safety service.

Values come from environment variables, optionally loaded from a ``.env`` file
next to the ``clinical-safety`` directory.
"""

import os
from pathlib import Path

import environ

from common.clinical_safety.redaction import DEFAULT_SALT

BASE_DIR = Path(__file__).resolve().parent.parent

env = environ.Env(
    INTERACTION_CACHE_TTL_SECONDS=(int, 3600),
    INTERACTION_CACHE_MAX_ENTRIES=(int, 1024),
    SAFETY_CHECK_TIMEOUT_SECONDS=(float, 5.0),
    SAFETY_CHECK_WORKERS=(int, 8),
    DEGRADED_SAFETY_POLICY=(str, "override"),
    BROADCAST_ASYNC=(bool, True),
    WEBHOOK_TIMEOUT_SECONDS=(float, 10.0),
    LOG_JSON=(bool, False),
)

_env_file = BASE_DIR / ".env"
if _env_file.exists():
    environ.Env.read_env(str(_env_file))

DEGRADED_POLICIES = ("override", "block")


class Config:
    """Clinical safety service settings."""

    def __init__(self):
        # Reference data; unset means the bundled seed dataset is used
        self.REFERENCE_DB_PATH = env("CLINICAL_REFERENCE_DB_PATH", default=None)
        self.ALERT_DB_PATH = os.path.expanduser(
            env("CLINICAL_ALERT_DB_PATH", default="~/.aegis/clinical_alerts.db")
        )

        self.INTERACTION_CACHE_TTL_SECONDS = env("INTERACTION_CACHE_TTL_SECONDS")
        self.INTERACTION_CACHE_MAX_ENTRIES = env("INTERACTION_CACHE_MAX_ENTRIES")

        self.SAFETY_CHECK_TIMEOUT_SECONDS = env("SAFETY_CHECK_TIMEOUT_SECONDS")
        self.SAFETY_CHECK_WORKERS = env("SAFETY_CHECK_WORKERS")
        self.DEGRADED_SAFETY_POLICY = env("DEGRADED_SAFETY_POLICY").lower()

        self.BROADCAST_ASYNC = env("BROADCAST_ASYNC")
        self.WEBHOOK_TIMEOUT_SECONDS = env("WEBHOOK_TIMEOUT_SECONDS")
        self.EVENT_PUBLISHER_URL = env("EVENT_PUBLISHER_URL", default=None)
        self.TEAMS_WEBHOOK_URL = env("CLINICAL_TEAMS_WEBHOOK_URL", default=None)

        self.LOG_LEVEL = env("LOG_LEVEL", default="INFO").upper()
        self.LOG_JSON = env("LOG_JSON")
        # Mixed into patient references in log lines
        self.LOG_SALT = env("CLINICAL_LOG_SALT", default=DEFAULT_SALT)

    def is_reference_db_configured(self) -> bool:
        return bool(self.REFERENCE_DB_PATH)

    def is_event_publisher_configured(self) -> bool:
        return bool(self.EVENT_PUBLISHER_URL)

    def validate(self) -> list[str]:
        """Return a list of configuration problems (empty if valid)."""
        errors = []
        if self.DEGRADED_SAFETY_POLICY not in DEGRADED_POLICIES:
            errors.append(
                f"DEGRADED_SAFETY_POLICY must be one of {', '.join(DEGRADED_POLICIES)}"
            )
        if self.SAFETY_CHECK_TIMEOUT_SECONDS <= 0:
            errors.append("SAFETY_CHECK_TIMEOUT_SECONDS must be positive")
        if self.INTERACTION_CACHE_TTL_SECONDS <= 0:
            errors.append("INTERACTION_CACHE_TTL_SECONDS must be positive")
        return errors


config = Config()
