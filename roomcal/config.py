from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List


DEFAULT_ROOMS = (
    "İnceburun,Gökliman,Armutlusu,Çetisuyu,İncirliin,Hurmalıbük,"
    "Kızılbük,Değirmenbükü,İskaroz,İskorpit,Lopa"
)


class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Database - PostgreSQL for production, SQLite for development
    database_url: str = Field(
        default="sqlite:///./roomcal.db",
        alias="DATABASE_URL"
    )

    # Document store backend: "sql" (SQLAlchemy) or "memory" (single process)
    store_backend: str = Field(default="sql", alias="STORE_BACKEND")

    # Conditional write retries per date before giving up
    store_write_retries: int = Field(default=3, alias="STORE_WRITE_RETRIES")

    # ==============================================
    # Calendar Settings
    # ==============================================
    # Ordered room catalog (comma-separated). Order defines range selection.
    rooms: str = Field(default=DEFAULT_ROOMS, alias="ROOMS")

    # "Today" is decided in this timezone
    timezone: str = Field(default="Europe/Istanbul", alias="TIMEZONE")

    # Weekend days (Monday=0, Sunday=6) - Saturday and Sunday by default
    weekend_days: str = Field(default="5,6", alias="WEEKEND_DAYS")

    # "accumulate" keeps every rectangle visited during a drag,
    # "rectangle" keeps only the current one
    selection_drag_mode: str = Field(default="accumulate", alias="SELECTION_DRAG_MODE")

    # Operator sessions idle longer than this are dropped
    session_ttl_minutes: int = Field(default=120, ge=1, alias="SESSION_TTL_MINUTES")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # CORS - Frontend URLs (comma-separated)
    allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173",
        alias="ALLOWED_ORIGINS"
    )

    # Rate limiting on write endpoints
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    write_rate_limit: str = Field(default="60/minute", alias="WRITE_RATE_LIMIT")

    @field_validator('rooms')
    @classmethod
    def validate_rooms(cls, v: str) -> str:
        """Room catalog must be non-empty and free of duplicates"""
        names = [r.strip() for r in v.split(",") if r.strip()]
        if not names:
            raise ValueError("ROOMS must list at least one room")
        if len(set(names)) != len(names):
            raise ValueError("ROOMS must not contain duplicate room names")
        return v

    @field_validator('selection_drag_mode')
    @classmethod
    def validate_drag_mode(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("accumulate", "rectangle"):
            raise ValueError("SELECTION_DRAG_MODE must be 'accumulate' or 'rectangle'")
        return v

    @field_validator('store_backend')
    @classmethod
    def validate_store_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("sql", "memory"):
            raise ValueError("STORE_BACKEND must be 'sql' or 'memory'")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def room_list(self) -> List[str]:
        """Ordered room names from the ROOMS setting"""
        return [r.strip() for r in self.rooms.split(",") if r.strip()]

    @property
    def cors_origins(self) -> List[str]:
        """
        Parse allowed origins from comma-separated string.
        Returns a list suitable for CORSMiddleware.
        """
        if not self.allowed_origins:
            return ["http://localhost:5173"]

        origins = []
        seen = set()
        for origin in self.allowed_origins.split(","):
            origin = origin.strip().rstrip("/")
            if origin and origin not in seen:
                seen.add(origin)
                origins.append(origin)

        return origins if origins else ["http://localhost:5173"]

    @property
    def weekend_day_numbers(self) -> List[int]:
        """
        Parse weekend days into list of weekday numbers.
        Default: [5, 6] (Saturday, Sunday)
        """
        try:
            return [int(d.strip()) for d in self.weekend_days.split(",") if d.strip()]
        except ValueError:
            return [5, 6]

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Initialize settings on module load
settings = get_settings()
