"""Application settings loaded from the environment."""

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    url: str = "sqlite+aiosqlite:///./decivue.db"
    echo: bool = False


class APISettings(BaseModel):
    """HTTP server settings."""

    host: str = "127.0.0.1"
    port: int = 8000
    reload: bool = False


class SecuritySettings(BaseModel):
    """API key and request limiting."""

    api_key: str | None = None
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )
    rate_limit_default: int = 120
    rate_limit_strict: int = 30


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_output: bool = True


class EvaluationSettings(BaseModel):
    """Health scoring weights and lifecycle thresholds."""

    specific_broken_max_penalty: int = 60
    shaky_penalty: int = 5
    conflict_penalty: int = 10
    stable_threshold: int = 80
    under_review_threshold: int = 50
    at_risk_threshold: int = 20


class ConflictSettings(BaseModel):
    """Confidence table and persistence thresholds for conflict detection."""

    assumption_min_confidence: float = 0.7
    decision_min_confidence: float = 0.65
    confidences: dict[str, float] = Field(
        default_factory=lambda: {
            "budget_min_max": 0.99,
            "budget_fixed_mismatch": 0.95,
            "budget_outcome": 0.9,
            "timeline_min_exceeds_deadline": 0.98,
            "timeline_max_below_min": 0.97,
            "timeline_outcome": 0.9,
            "resource_shortfall": 0.96,
            "resource_max_below_min": 0.95,
            "resource_availability": 0.92,
            "resource_competition": 0.85,
            "market_direction": 0.94,
        }
    )


class Settings(BaseSettings):
    """Top-level settings.

    Nested values are read with a double underscore delimiter, e.g.
    ``DATABASE__URL`` or ``EVALUATION__SHAKY_PENALTY``. ``DATABASE_URL`` and
    ``DECIVUE_API_KEY`` are honoured as shortcuts.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    environment: str = "development"
    debug: bool = False

    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    decivue_api_key: str | None = Field(default=None, alias="DECIVUE_API_KEY")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    api: APISettings = Field(default_factory=APISettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    evaluation: EvaluationSettings = Field(default_factory=EvaluationSettings)
    conflicts: ConflictSettings = Field(default_factory=ConflictSettings)

    def model_post_init(self, __context) -> None:
        if self.database_url:
            self.database.url = self.database_url
        if self.decivue_api_key:
            self.security.api_key = self.decivue_api_key

    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
