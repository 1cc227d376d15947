"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="HOUSIE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "HOUSIE Geo Coordination API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root log level applied by create_app().")
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:8080",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    # Location privacy
    default_confidentiality_radius_m: float = Field(
        default=10_000.0,
        gt=0.0,
        description="Radius substituted when a caller passes a non-positive fuzzing radius.",
    )
    provider_fallback_radius_m: float = Field(
        default=15_000.0,
        gt=0.0,
        description="Radius used when a provider has no coordinates and the city center is fuzzed instead.",
    )
    city_center_lat: float = Field(default=45.5017, ge=-90.0, le=90.0)
    city_center_lng: float = Field(default=-73.5673, ge=-180.0, le=180.0)

    # Proximity / imprints
    position_freshness_seconds: float = Field(default=30.0, ge=0.0)
    position_timeout_seconds: float = Field(default=10.0, gt=0.0)
    watch_timeout_seconds: float = Field(default=15.0, gt=0.0)
    high_accuracy: bool = True
    nearby_default_radius_m: float = Field(default=1_000.0, gt=0.0)
    imprint_history_limit: int = Field(default=50, ge=1)
    session_idle_timeout_seconds: float = Field(
        default=900.0,
        gt=0.0,
        description="Proximity sessions with no request for this long are closed.",
    )
    max_sessions_per_user: int = Field(
        default=5,
        ge=1,
        description="Opening one more session closes the caller's least recently used one.",
    )

    # Cluster optimizer
    cluster_slot_minutes: int = Field(default=45, ge=1)
    cluster_buffer_minutes: int = Field(default=5, ge=0)
    confidence_high_ratio: float = Field(default=0.8, ge=0.0, le=1.0)
    confidence_medium_ratio: float = Field(default=0.5, ge=0.0, le=1.0)

    # Routing provider
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "walking", "cycling"] = Field(
        default="driving",
        description="OSRM profile to use when requesting routes.",
    )
    osrm_max_retries: int = Field(default=3, ge=0)
    osrm_backoff_seconds: float = Field(default=1.0, ge=0.0)
    osrm_timeout_seconds: float = Field(default=15.0, gt=0.0)

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> tuple[str, ...]:
        """Accept a JSON array or a comma-separated string of origins."""
        if isinstance(value, (list, tuple)):
            return tuple(str(origin) for origin in value)
        if not isinstance(value, str):
            return ()
        text = value.strip()
        if text.startswith("["):
            try:
                return tuple(str(origin) for origin in json.loads(text))
            except json.JSONDecodeError:
                pass
        return tuple(origin.strip() for origin in text.split(",") if origin.strip())

    @field_validator("confidence_medium_ratio")
    @classmethod
    def _medium_not_above_high(cls, value: float, info) -> float:
        high = info.data.get("confidence_high_ratio")
        if high is not None and value > high:
            raise ValueError("confidence_medium_ratio must not exceed confidence_high_ratio")
        return value


settings = Settings()
