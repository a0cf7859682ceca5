"""
Automation configuration and settings management.
"""
import os
from typing import List, Optional

from dotenv import load_dotenv

from .models import Credentials

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


class Config:
    """Automation configuration."""

    # Marketplace account
    FACEBOOK_EMAIL: str = os.getenv("FACEBOOK_EMAIL", "")
    FACEBOOK_PASSWORD: str = os.getenv("FACEBOOK_PASSWORD", "")

    # Remote browser cloud
    BROWSERBASE_API_KEY: str = os.getenv("BROWSERBASE_API_KEY", "")
    BROWSERBASE_PROJECT_ID: str = os.getenv("BROWSERBASE_PROJECT_ID", "")
    BROWSERBASE_API_URL: str = os.getenv("BROWSERBASE_API_URL", "https://www.browserbase.com/v1")
    BROWSERBASE_CONNECT_URL: str = os.getenv("BROWSERBASE_CONNECT_URL", "wss://connect.browserbase.com")
    USE_REMOTE_BROWSER: bool = _env_bool("USE_REMOTE_BROWSER", True)

    # Local browser
    HEADLESS: bool = _env_bool("HEADLESS", True)
    BROWSER_SLOW_MO: int = _env_int("BROWSER_SLOW_MO", 0)
    BROWSER_TIMEOUT: int = _env_int("BROWSER_TIMEOUT", 30_000)
    COOKIES_FILE: str = os.getenv("COOKIES_FILE", "facebook-cookies.json")

    # Google Sheets service account
    GOOGLE_CREDENTIALS_FILE: str = os.getenv("GOOGLE_CREDENTIALS_FILE", "google-credentials.json")
    GOOGLE_PROJECT_ID: str = os.getenv("GOOGLE_PROJECT_ID", "")
    GOOGLE_PRIVATE_KEY: str = os.getenv("GOOGLE_PRIVATE_KEY", "")
    GOOGLE_SERVICE_ACCOUNT_EMAIL: str = os.getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL", "")

    # Queue pacing (milliseconds, as in the sheet-side tooling)
    AUTOMATION_DELAY_MIN: int = _env_int("AUTOMATION_DELAY_MIN", 30_000)
    AUTOMATION_DELAY_MAX: int = _env_int("AUTOMATION_DELAY_MAX", 60_000)

    # Files
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "./uploads")
    LOG_DIR: str = os.getenv("LOG_DIR", "./logs")
    SELECTORS_FILE: Optional[str] = os.getenv("SELECTORS_FILE") or None

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def credentials(cls) -> Credentials:
        return Credentials(email=cls.FACEBOOK_EMAIL, password=cls.FACEBOOK_PASSWORD)

    @classmethod
    def delay_range_seconds(cls) -> tuple:
        low = max(0, cls.AUTOMATION_DELAY_MIN) / 1000.0
        high = max(0, cls.AUTOMATION_DELAY_MAX) / 1000.0
        return (low, high) if low <= high else (high, low)

    @classmethod
    def google_service_account_info(cls) -> Optional[dict]:
        """Service-account dict built from environment variables, if set."""
        if not (cls.GOOGLE_PRIVATE_KEY and cls.GOOGLE_SERVICE_ACCOUNT_EMAIL):
            return None
        return {
            "type": "service_account",
            "project_id": cls.GOOGLE_PROJECT_ID,
            "private_key": cls.GOOGLE_PRIVATE_KEY.replace("\\n", "\n"),
            "client_email": cls.GOOGLE_SERVICE_ACCOUNT_EMAIL,
            "token_uri": "https://oauth2.googleapis.com/token",
        }

    @classmethod
    def validate(cls) -> List[str]:
        """Return the names of missing required settings."""
        missing = []
        if not cls.FACEBOOK_EMAIL:
            missing.append("FACEBOOK_EMAIL")
        if not cls.FACEBOOK_PASSWORD:
            missing.append("FACEBOOK_PASSWORD")
        if not os.path.exists(cls.GOOGLE_CREDENTIALS_FILE) and cls.google_service_account_info() is None:
            missing.append("GOOGLE_CREDENTIALS_FILE")
        if cls.USE_REMOTE_BROWSER and not (cls.BROWSERBASE_API_KEY and cls.BROWSERBASE_PROJECT_ID):
            missing.append("BROWSERBASE_API_KEY/BROWSERBASE_PROJECT_ID")
        return missing


# Global config instance
config = Config()
