from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """
    Application configuration loaded from environment variables and .env file.
    """

    # LLM credentials and endpoint
    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_BASE_URL",
    )
    request_timeout_seconds: float = Field(default=60.0, alias="LLM_REQUEST_TIMEOUT")

    # Token limits
    token_limit: int = Field(default=1048576, alias="TOKEN_LIMIT")
    daily_token_limit: int = Field(default=0, alias="DAILY_TOKEN_LIMIT")
    token_window_hours: float = Field(default=24.0, alias="TOKEN_WINDOW_HOURS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_to_file: bool = Field(default=False, alias="LOG_TO_FILE")

    # Pause between two fallback attempts
    fallback_backoff_seconds: float = Field(default=1.0, alias="FALLBACK_BACKOFF_SECONDS")

    # Readiness gate
    health_check_timeout: float = Field(default=10.0, alias="HEALTH_CHECK_TIMEOUT")
    health_poll_interval: float = Field(default=0.5, alias="HEALTH_POLL_INTERVAL")

    # Collaborating services
    llm_addr: str = Field(default="http://localhost:50051", alias="LLM_ADDR")
    todo_addr: str = Field(default="http://localhost:50052", alias="TODO_ADDR")
    database_addr: str = Field(default="http://localhost:50053", alias="DATABASE_ADDR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def token_window(self) -> timedelta:
        return timedelta(hours=self.token_window_hours)

    def service_addresses(self) -> dict:
        """Name -> base address of every service the gateway waits on."""
        return {
            "llm": self.llm_addr,
            "todo": self.todo_addr,
            "database": self.database_addr,
        }


def load_config() -> "Config":
    return Config()
