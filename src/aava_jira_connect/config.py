"""
Configuration for the AAVA Jira Connect app.
"""
import os
from typing import Optional


DEFAULT_GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment ("1", "true", "yes", "on")."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class AppConfig:
    """
    Configuration settings for the Connect app.

    Built once at startup and handed to the app factory and the clients.
    Nothing reads the process environment after this object exists.
    """

    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # Gemini
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = DEFAULT_GEMINI_MODEL
    GEMINI_API_BASE_URL: str = DEFAULT_GEMINI_API_BASE_URL
    GEMINI_TIMEOUT: Optional[float] = None
    PROMPT_TEMPLATE: str = "structured"
    STRICT_REPORT_VALIDATION: bool = False

    # Atlassian Connect
    APP_KEY: str = "aava-jira-connect"
    APP_NAME: str = "AAVA Jira Refiner"
    APP_BASE_URL: str = "http://localhost:3000"
    CONNECT_SKIP_QSH_FOR_AJAX: bool = True
    CONNECT_STORE_PATH: Optional[str] = None
    CONNECT_STORE_KEY: Optional[str] = None

    def __init__(self, **overrides):
        for key, value in overrides.items():
            if not hasattr(type(self), key):
                raise ValueError(f"Unknown configuration setting: {key}")
            setattr(self, key, value)
        self.APP_BASE_URL = self.APP_BASE_URL.rstrip("/")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Create config from environment variables.

        GEMINI_API_KEY is optional here: a missing key only fails the
        enhancement calls, not startup.

        Returns:
            AppConfig instance

        Raises:
            ValueError: If a numeric environment variable cannot be parsed
        """
        port = os.getenv("PORT", "3000")
        timeout = os.getenv("GEMINI_TIMEOUT")

        try:
            port_value = int(port)
        except ValueError:
            raise ValueError(f"PORT must be an integer, got {port!r}")

        timeout_value = None
        if timeout and timeout.strip():
            try:
                timeout_value = float(timeout)
            except ValueError:
                raise ValueError(f"GEMINI_TIMEOUT must be a number of seconds, got {timeout!r}")

        return cls(
            PORT=port_value,
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
            GEMINI_API_KEY=os.getenv("GEMINI_API_KEY") or None,
            GEMINI_MODEL=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            GEMINI_API_BASE_URL=os.getenv("GEMINI_API_BASE_URL", DEFAULT_GEMINI_API_BASE_URL).rstrip("/"),
            GEMINI_TIMEOUT=timeout_value,
            PROMPT_TEMPLATE=os.getenv("PROMPT_TEMPLATE", "structured").strip().lower(),
            STRICT_REPORT_VALIDATION=_env_flag("STRICT_REPORT_VALIDATION", False),
            APP_KEY=os.getenv("APP_KEY", cls.APP_KEY),
            APP_NAME=os.getenv("APP_NAME", cls.APP_NAME),
            APP_BASE_URL=os.getenv("APP_BASE_URL", f"http://localhost:{port_value}"),
            CONNECT_SKIP_QSH_FOR_AJAX=_env_flag("CONNECT_SKIP_QSH_FOR_AJAX", True),
            CONNECT_STORE_PATH=os.getenv("CONNECT_STORE_PATH") or None,
            CONNECT_STORE_KEY=os.getenv("CONNECT_STORE_KEY") or None,
        )
