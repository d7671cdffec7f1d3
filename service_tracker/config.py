import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import streamlit as st

APP_DIR = Path(__file__).resolve().parent.parent

log = logging.getLogger(__name__)


def _secret(name: str, default: Any = "") -> Any:
    """Look up a Streamlit secret, tolerating a missing secrets.toml."""
    try:
        if name in st.secrets:
            return st.secrets[name]
    except FileNotFoundError:
        pass
    return default


def _setting(env_name: str, secret_name: Optional[str] = None, default: str = "") -> str:
    value = os.getenv(env_name, "")
    if value.strip():
        return value.strip()
    if secret_name:
        return str(_secret(secret_name, default) or default).strip()
    return default


def _flag(value: str) -> bool:
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


def _number(value: str, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        log.warning("Ignoring non-numeric setting value %r, using %s", value, default)
        return default


def get_default_workbook_path() -> str:
    """Locate the local workbook used when no Google Sheet is configured."""
    env_path = os.getenv("SERVICE_TRACKER_WORKBOOK", "")
    if env_path:
        return env_path
    return str(APP_DIR / "service_records.xlsx")


def _service_account_info() -> Optional[Dict[str, Any]]:
    section = _secret("google_sheets", None)
    if not section:
        return None
    # Convert secrets object to plain dict
    return json.loads(json.dumps(dict(section)))


@dataclass(frozen=True)
class Settings:
    sheet_id: str = ""
    worksheet_title: str = "services"
    workbook_path: str = ""
    service_account_info: Optional[Dict[str, Any]] = field(default=None, repr=False)
    identity_api_key: str = field(default="", repr=False)
    identity_project_id: str = ""
    identity_timeout: float = 10.0
    poll_seconds: float = 5.0
    org_account_label: str = "Organization Account"
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def uses_google_sheets(self) -> bool:
        return bool(self.sheet_id)


def load_settings() -> Settings:
    settings = Settings(
        sheet_id=_setting("SERVICE_TRACKER_SHEET_ID", "google_sheets_id"),
        worksheet_title=_setting("SERVICE_TRACKER_WORKSHEET", "worksheet_title", "services"),
        workbook_path=get_default_workbook_path(),
        service_account_info=_service_account_info(),
        identity_api_key=_setting("IDENTITY_API_KEY", "identity_api_key"),
        identity_project_id=_setting("IDENTITY_PROJECT_ID", "identity_project_id"),
        identity_timeout=_number(_setting("IDENTITY_TIMEOUT_SECONDS", default="10"), 10.0),
        poll_seconds=_number(_setting("SERVICE_TRACKER_POLL_SECONDS", default="5"), 5.0),
        org_account_label=_setting("SERVICE_TRACKER_ORG_ACCOUNT_LABEL", "org_account_label", "Organization Account"),
        log_level=_setting("LOG_LEVEL", default="INFO").upper(),
        log_json=_flag(_setting("LOG_JSON", default="")),
    )
    if not settings.identity_project_id:
        log.warning(
            "Identity project ID is not set. Sign-in will not work until IDENTITY_PROJECT_ID "
            "(or the identity_project_id secret) is configured; restart the app after changing it."
        )
    if settings.sheet_id and not settings.service_account_info:
        log.warning("google_sheets_id is set but the google_sheets service account secret is missing.")
    return settings
