import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class ScraperSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    Concurrency and rate-limit backoff are fixed constants, not settings.
    """

    program_endpoint_url: str = "https://tvprofil.com/gb/tvschedule/program/"
    output_path: str = "out.txt"
    cookie_file: str = "tvp_login"  # Holds the tvp_login cookie value
    request_timeout_sec: float = 100.0
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("program_endpoint_url")
    @classmethod
    def validate_endpoint_url(cls, value: str) -> str:
        """Validate the schedule endpoint is HTTP/HTTPS."""
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"Program endpoint URL must be HTTP/HTTPS: {value}")
        return value

    @field_validator("output_path", "cookie_file")
    @classmethod
    def validate_paths(cls, value: str, info) -> str:
        """Ensure file paths are not blank."""
        if not value.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return value

    @field_validator("request_timeout_sec")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Validate HTTP timeout (seconds)."""
        if value <= 0:
            raise ValueError("request_timeout_sec must be > 0")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.debug("Configuration loaded:")
        logger.debug("  Program Endpoint: %s", self.program_endpoint_url)
        logger.debug("  Output File: %s", self.output_path)
        logger.debug("  Cookie File: %s", self.cookie_file)
        logger.debug("  Request Timeout: %ss", self.request_timeout_sec)
        logger.debug("  Log Level: %s", self.log_level)


settings = ScraperSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
