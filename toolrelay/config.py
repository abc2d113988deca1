import os
import logging
from pydantic_settings import BaseSettings
from pydantic import model_validator
from typing import Optional


logger = logging.getLogger(__name__)


def _env_or_dotenv(key: str, dotenv_path: str = ".env") -> Optional[str]:
    """Get a value from env var (if non-empty) or from .env file.

    Pydantic-settings prefers env vars over .env files. If the env var
    is set to an empty string, pydantic treats it as the actual value and
    ignores the .env file. This helper ensures that empty env vars fall
    through to the .env file value.
    """
    val = os.environ.get(key)
    if val:  # non-empty env var wins
        return val
    from dotenv import dotenv_values
    vals = dotenv_values(dotenv_path)
    return vals.get(key) or None


class Settings(BaseSettings):
    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    server_name: str = "Infobyte MCP Server"
    server_version: str = "1.0.0"
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    # Transport
    sse_keepalive_seconds: float = 15.0
    # Frames a subscriber may fall behind before its channel is closed (0 = unbounded)
    sse_max_queued_frames: int = 1000
    shutdown_timeout: float = 10.0

    # Product catalog (DummyJSON)
    dummy_json_api_url: str = "https://dummyjson.com"

    # Jira Cloud
    jira_api_url: Optional[str] = None
    jira_username: Optional[str] = None
    jira_api_token: Optional[str] = None

    # Outbound HTTP
    request_timeout: float = 30.0

    # Client
    server_url: str = "http://localhost:8000"
    client_call_timeout: Optional[float] = None

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _resolve_empty_env_vars(self) -> "Settings":
        """Fix empty env vars overriding .env file values."""
        optional_keys = [
            "jira_api_url",
            "jira_username",
            "jira_api_token",
        ]
        for key in optional_keys:
            if not getattr(self, key):
                val = _env_or_dotenv(key.upper())
                if val:
                    object.__setattr__(self, key, val)
        return self

    @property
    def jira_configured(self) -> bool:
        return bool(self.jira_api_url)


settings = Settings()
