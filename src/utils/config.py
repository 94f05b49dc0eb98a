"""Runtime configuration for the portal client, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_API_BASE_URL = "http://localhost:8080"
DEFAULT_STORAGE_PATH = "data/portal.sqlite"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    """
    Fields:
      - api_base_url: portal API root, without the /api/v1 prefix
      - api_timeout: per-request timeout in seconds
      - storage_path: SQLite file holding the persisted session
      - google_client_id: enables the Google sign-in tab when set
      - orders_refresh_interval: seconds between orders auto-refreshes
      - session_refresh_interval: seconds between background session refreshes
      - download_dir: directory exported spreadsheets are written to
    """

    api_base_url: str = DEFAULT_API_BASE_URL
    api_timeout: float = 30.0
    storage_path: str = DEFAULT_STORAGE_PATH
    google_client_id: Optional[str] = None
    orders_refresh_interval: int = 60
    session_refresh_interval: int = 300
    download_dir: str = "."

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_client_id)

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        return cls(
            api_base_url=os.getenv("PUMA_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip(
                "/"
            ),
            api_timeout=float(_env_int("PUMA_API_TIMEOUT", 30)),
            storage_path=os.getenv("PUMA_STORAGE_PATH", DEFAULT_STORAGE_PATH),
            google_client_id=os.getenv("PUMA_GOOGLE_CLIENT_ID") or None,
            orders_refresh_interval=_env_int("PUMA_ORDERS_REFRESH_SECONDS", 60),
            session_refresh_interval=_env_int("PUMA_SESSION_REFRESH_SECONDS", 300),
            download_dir=os.getenv("PUMA_DOWNLOAD_DIR", "."),
        )
