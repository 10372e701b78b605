"""Application configuration from environment variables."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Hosts never schedule periodic background work more often than this.
MIN_BACKGROUND_INTERVAL_MINUTES = 15


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./heattrail.db",
        description="Database connection URL backing the persistence gateway",
    )

    # Application
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    cors_origins: list[str] = Field(
        default=["http://localhost:5173", "http://localhost:8080"],
        description="Allowed CORS origins (comma-separated or JSON array)",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str] | None) -> list[str]:
        """Parse CORS origins from comma-separated string or list."""
        if v is None:
            return ["http://localhost:5173", "http://localhost:8080"]
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # History
    history_capacity: int = Field(
        default=1000,
        ge=1,
        le=100_000,
        description="Maximum number of samples kept in the persisted history",
    )

    # Sample filter
    accuracy_threshold_m: float = Field(
        default=50.0,
        gt=0,
        description="Fixes with a reported accuracy above this radius are rejected",
    )
    min_distance_m: float = Field(
        default=10.0,
        ge=0,
        description="Movement below this distance counts as stationary",
    )
    min_interval_ms: int = Field(
        default=120_000,
        ge=0,
        description="Stationary fixes closer together than this are rejected",
    )

    # Scheduling
    foreground_poll_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Backup poll interval while the host is in the foreground",
    )
    background_interval_minutes: int = Field(
        default=MIN_BACKGROUND_INTERVAL_MINUTES,
        description="Nominal interval for the periodic background job (lower bound only)",
    )

    @field_validator("background_interval_minutes")
    @classmethod
    def validate_background_interval(cls, v: int) -> int:
        """Reject intervals finer than the host scheduling minimum."""
        if v < MIN_BACKGROUND_INTERVAL_MINUTES:
            raise ValueError(
                f"background_interval_minutes must be at least {MIN_BACKGROUND_INTERVAL_MINUTES}"
            )
        return v

    # Heatmap
    heatmap_precision: int = Field(
        default=3,
        ge=3,
        le=4,
        description="Decimal places used to bucket coordinates (3 ~ 111m, 4 ~ 11m)",
    )
    heatmap_saturation: float = Field(
        default=25.0,
        ge=20.0,
        le=25.0,
        description="Visit count at which a cell reaches full intensity",
    )
    heatmap_base_radius_m: float = Field(default=50.0, gt=0)
    heatmap_radius_step_m: float = Field(default=5.0, ge=0)
    heatmap_max_radius_m: float = Field(default=150.0, gt=0)

    # Fix providers
    provider_url: str | None = Field(
        default=None, description="Base URL of an HTTP location provider"
    )
    provider_mqtt_host: str | None = Field(
        default=None, description="MQTT broker publishing OwnTracks locations"
    )
    provider_mqtt_port: int = Field(default=1883, ge=1, le=65535)
    provider_mqtt_username: str | None = Field(default=None)
    provider_mqtt_password: str | None = Field(default=None)
    provider_mqtt_topic: str = Field(default="owntracks/+/+")

    @field_validator("provider_url")
    @classmethod
    def validate_provider_url(cls, v: str | None) -> str | None:
        """Ensure the provider URL has a scheme."""
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("provider_url must start with http:// or https://")
        return v.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
