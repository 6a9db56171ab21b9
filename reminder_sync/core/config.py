"""Explicit run configuration for the sync orchestrator."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from reminder_sync.core.errors import ConfigurationError
from reminder_sync.core.utils import get_config_value, load_env_file

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_ACCOUNT_PATHS = [
    Path("secrets/service_account.json"),
    Path("credentials/service_account.json"),
]
DEFAULT_ENV_FILE = Path("secrets/reminders.env")

EMAIL_PROVIDERS = ("smtp", "gmail", "sendgrid", "dry-run")
STATUS_POLICIES = ("ignore", "supplement", "override")


def _default_service_account_path() -> Optional[Path]:
    for candidate in DEFAULT_SERVICE_ACCOUNT_PATHS:
        if candidate.exists():
            return candidate
    return None


def _int_value(key: str, default: int) -> int:
    raw = get_config_value(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from exc


@dataclass
class SyncConfig:
    """Everything a sync run needs, resolved once and passed in explicitly."""

    spreadsheet_id: Optional[str] = None
    master_sheet: str = "Master"
    reminders_sheet: str = "Reminders"
    master_sorted_sheet: str = "Master_Sorted"
    status_log_sheet: str = "Status Log"
    service_account_path: Optional[Path] = None
    google_client_email: Optional[str] = None
    google_private_key: Optional[str] = None
    google_project_id: Optional[str] = None
    excel_path: Optional[Path] = None
    email_provider: str = "smtp"
    email_user: str = ""
    email_pass: str = ""
    email_from: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_secure: bool = False
    sendgrid_api_key: str = ""
    sender_name: str = "Service Team"
    interval_months: int = 3
    advance_days: int = 7
    offset_days: int = 0
    status_policy: str = "ignore"

    @classmethod
    def from_env(cls, **overrides: Any) -> "SyncConfig":
        """Build a config from environment variables and an optional env file.

        Keyword overrides win over the environment; ``None`` overrides are
        ignored so CLI flags that were not given fall through.
        """

        env_file = Path(os.getenv("REMINDER_ENV_FILE", DEFAULT_ENV_FILE))
        load_env_file(env_file)

        account_env = get_config_value("GOOGLE_SERVICE_ACCOUNT")
        excel_env = get_config_value("REMINDER_WORKBOOK")
        email_user = get_config_value("EMAIL_USER")
        values: Dict[str, Any] = {
            "spreadsheet_id": get_config_value("SPREADSHEET_ID")
            or get_config_value("GOOGLE_SHEET_ID")
            or None,
            "master_sheet": get_config_value("MASTER_SHEET", "Master"),
            "reminders_sheet": get_config_value("REMINDERS_SHEET", "Reminders"),
            # An explicitly empty value turns the sorted copy off.
            "master_sorted_sheet": os.getenv("MASTER_SORTED_SHEET", "Master_Sorted").strip(),
            "status_log_sheet": get_config_value("STATUS_LOG_SHEET", "Status Log"),
            "service_account_path": Path(account_env) if account_env else _default_service_account_path(),
            "google_client_email": get_config_value("GOOGLE_CLIENT_EMAIL") or None,
            "google_private_key": get_config_value("GOOGLE_PRIVATE_KEY") or None,
            "google_project_id": get_config_value("GOOGLE_PROJECT_ID") or None,
            "excel_path": Path(excel_env) if excel_env else None,
            "email_provider": get_config_value("EMAIL_PROVIDER", "smtp").lower(),
            "email_user": email_user,
            "email_pass": get_config_value("EMAIL_PASS"),
            "email_from": get_config_value("EMAIL_FROM", email_user),
            "smtp_host": get_config_value("SMTP_HOST"),
            "smtp_port": _int_value("SMTP_PORT", 587),
            "smtp_secure": get_config_value("SMTP_SECURE", "false").lower() == "true",
            "sendgrid_api_key": get_config_value("SENDGRID_API_KEY"),
            "sender_name": get_config_value("SENDER_NAME", "Service Team"),
            "interval_months": _int_value("REMINDER_INTERVAL_MONTHS", 3),
            "advance_days": _int_value("ADVANCE_NOTICE_DAYS", 7),
            "offset_days": _int_value("SEND_OFFSET_DAYS", 0),
            "status_policy": get_config_value("STATUS_POLICY", "ignore").lower(),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    @property
    def has_inline_credentials(self) -> bool:
        return bool(self.google_client_email and self.google_private_key)

    def service_account_info(self) -> Dict[str, str]:
        """Return inline service-account credentials in the JSON key layout."""

        return {
            "type": "service_account",
            "client_email": self.google_client_email or "",
            "private_key": (self.google_private_key or "").replace("\\n", "\n"),
            "project_id": self.google_project_id or "",
            "token_uri": "https://oauth2.googleapis.com/token",
        }

    def validate(self, storage: bool = True, transport: bool = True) -> None:
        """Raise ``ConfigurationError`` when the run cannot possibly succeed.

        ``storage`` and ``transport`` can be switched off when the caller
        supplies those collaborators directly.
        """

        if storage and self.excel_path is None:
            if not self.spreadsheet_id:
                raise ConfigurationError(
                    "SPREADSHEET_ID is required unless a local workbook is configured"
                )
            if not (self.service_account_path or self.has_inline_credentials):
                raise ConfigurationError(
                    "Provide GOOGLE_SERVICE_ACCOUNT, GOOGLE_CLIENT_EMAIL/GOOGLE_PRIVATE_KEY, "
                    f"or place a key file at {DEFAULT_SERVICE_ACCOUNT_PATHS[0]}"
                )
            if not self.has_inline_credentials and not self.service_account_path.exists():
                raise ConfigurationError(
                    f"Service account key file not found: {self.service_account_path}"
                )

        provider = self.email_provider
        if transport:
            if provider not in EMAIL_PROVIDERS:
                raise ConfigurationError(f"Unknown EMAIL_PROVIDER: {provider}")
            if provider in ("smtp", "gmail") and not (self.email_user and self.email_pass):
                raise ConfigurationError(f"EMAIL_USER and EMAIL_PASS are required for {provider}")
            if provider == "smtp" and not self.smtp_host:
                raise ConfigurationError("SMTP_HOST is required for the smtp provider")
            if provider == "sendgrid" and not (self.sendgrid_api_key and self.email_from):
                raise ConfigurationError("SENDGRID_API_KEY and EMAIL_FROM are required for sendgrid")

        if self.status_policy not in STATUS_POLICIES:
            raise ConfigurationError(f"Unknown STATUS_POLICY: {self.status_policy}")
        if self.interval_months < 1:
            raise ConfigurationError("REMINDER_INTERVAL_MONTHS must be at least 1")
        if self.advance_days < 0:
            raise ConfigurationError("ADVANCE_NOTICE_DAYS cannot be negative")

        logger.debug(
            "Configuration valid (provider=%s, backend=%s)",
            provider,
            "excel" if self.excel_path else "sheets",
        )
