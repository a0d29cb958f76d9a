"""CRM runtime configuration."""

import os
from datetime import timedelta

from dotenv import load_dotenv
from pydantic import BaseModel, Field

_ENV_PREFIX = "CRM_"


class CRMConfig(BaseModel):
    """
    Runtime settings for the reminder scanner and notification delivery.

    Durations are in their natural units (seconds for intervals, hours for
    the due-soon window). Secrets are not here; they come from Vault.
    """

    # Reminder scanner
    scan_interval_seconds: int = Field(
        default=900,
        description="Seconds between reminder scans",
        ge=10,
        le=86400,
    )
    due_soon_threshold_hours: int = Field(
        default=24,
        description="A task due within this many hours is DUE_SOON",
        ge=1,
        le=720,
    )
    scanner_lock_ttl_seconds: int = Field(
        default=300,
        description="Expiry of the single-flight scanner lock",
        ge=10,
    )

    # External delivery
    dispatch_timeout_seconds: float = Field(
        default=10.0,
        description="Upper bound on one external channel request",
        gt=0,
        le=60,
    )
    telegram_parse_mode: str = Field(
        default="HTML",
        description="Telegram parse_mode used for rendered messages",
    )
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Base URL for notification deep links",
    )

    @property
    def due_soon_threshold(self) -> timedelta:
        return timedelta(hours=self.due_soon_threshold_hours)

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "CRMConfig":
        """
        Build config from CRM_* environment variables.

        Unset variables keep their defaults. Invalid values raise
        pydantic.ValidationError (fail fast at startup).

        Example:
            CRM_DUE_SOON_THRESHOLD_HOURS=12 -> due_soon_threshold_hours=12
        """
        if load_dotenv_file:
            load_dotenv()

        values = {}
        for name in cls.model_fields:
            raw = os.getenv(_ENV_PREFIX + name.upper())
            if raw is not None and raw != "":
                values[name] = raw
        return cls(**values)
