from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigError(ValueError):
    """Raised at startup when the service cannot run with the given configuration."""


class SMTPSettings(BaseModel):
    host: str = "smtp.gmail.com"
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True
    from_email: Optional[str] = None


class SchedulerConfig(BaseModel):
    hour: int = Field(ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)
    second: int = Field(default=0, ge=0, le=59)
    # IANA zone for the target time; unset means the host's local time
    timezone: Optional[str] = None
    max_template_index: int = Field(default=7, ge=1)
    send_concurrency: int = Field(default=5, ge=1)
    send_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    interval_seconds: float = Field(default=24 * 60 * 60, gt=0)

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value


class Settings(BaseSettings):
    """
    Read from GMS_* environment variables and .env. Nested values use a
    double underscore, e.g. GMS_SCHEDULER__HOUR=8 or GMS_SMTP__HOST=smtp.example.com.
    """

    model_config = SettingsConfigDict(
        env_prefix="GMS_",
        env_nested_delimiter="__",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    scheduler: SchedulerConfig
    expiry_days: int = Field(default=30, ge=1)
    database_path: str = "gms.db"
    results_dir: Optional[str] = None
    scheduler_enabled: bool = True
    mail_page_url: str = "http://localhost:8080/auth/gms"
    email_mx_check: bool = False
    jwt_secret: str
    jwt_ttl_minutes: int = Field(default=60, ge=1)
    mail_provider: str = "log"
    smtp: SMTPSettings = Field(default_factory=SMTPSettings)

    @field_validator("mail_provider")
    @classmethod
    def _known_provider(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("smtp", "log"):
            raise ValueError(f"Unsupported mail provider: {value}")
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        """Loads settings once at startup. Raises ConfigError when a required value is missing or invalid."""
        try:
            return cls()
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
