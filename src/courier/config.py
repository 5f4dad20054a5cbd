"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="COURIER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Courier Dispatch API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root log level applied by create_app().")
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Customer lookup
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )
    customers_table: str = Field(default="customers", description="Supabase table holding customer records.")
    store_id: Optional[str] = Field(
        default=None,
        description="Optional store scope applied to every customer lookup.",
    )
    customer_file: Path = Field(
        default=Path("data/customers.csv"),
        description="CSV fallback used when Supabase is not configured.",
    )
    lookup_batch_size: int = Field(default=10, ge=1, le=30)

    # Routing
    osrm_base_url: Optional[str] = Field(
        default="https://router.project-osrm.org",
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "bike", "foot"] = Field(
        default="driving",
        description="OSRM profile to use when computing routes.",
    )
    osrm_timeout_seconds: float = Field(default=10.0, gt=0.0)
    osrm_max_retries: int = Field(default=0, ge=0)
    osrm_backoff_seconds: float = Field(default=1.0, ge=0.0)
    route_min_interval_seconds: float = Field(default=4.0, ge=0.0)
    route_min_displacement_m: float = Field(default=15.0, ge=0.0)

    # Position tracking
    position_window: int = Field(default=3, ge=1)
    position_reject_accuracy_m: float = Field(default=10.0, gt=0.0)
    position_advisory_accuracy_m: float = Field(default=50.0, gt=0.0)

    # Orientation
    heading_window: int = Field(default=3, ge=1)
    heading_min_interval_ms: int = Field(default=100, ge=0)
    magnetic_declination_deg: float = Field(
        default=0.0,
        ge=-180.0,
        le=180.0,
        description="Added to magnetic headings to obtain true-north headings.",
    )

    # Map
    map_default_center: tuple[float, float] = Field(default=(29.0723, 80.1035))
    map_default_zoom: int = Field(default=13, ge=0, le=19)
    map_tracking_zoom: int = Field(default=16, ge=0, le=19)

    # Payments
    payee_upi_id: str = Field(default="9770123692@ptyes")
    payee_currency: str = Field(default="INR", min_length=3, max_length=3)

    advisory_history: int = Field(default=50, ge=1)

    @field_validator("customer_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("map_default_center", mode="before")
    @classmethod
    def _parse_center_from_env(cls, value: Any) -> tuple[float, float]:
        """Accept "lat,lon" or a JSON array for the default map centre."""
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError:
                parsed = [item.strip() for item in value.split(",")]
            value = parsed
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return (float(value[0]), float(value[1]))
        raise ValueError("map_default_center must be a latitude/longitude pair.")


settings = Settings()
