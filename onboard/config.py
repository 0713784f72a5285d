from pydantic import BaseModel
from pydantic_settings import BaseSettings


class CompletionPolicy(BaseModel):
    """Weights and thresholds used by the completion calculator.

    Weights are percentage points of the overall 100 keyed by phase id.
    """

    phase_weights: dict[str, int] = {"essential": 50, "core": 30, "rich": 20}
    completion_threshold: int = 90
    core_complete_ratio: float = 0.7
    rich_complete_ratio: float = 0.5

    model_config = {"frozen": True}

    @classmethod
    def default(cls) -> "CompletionPolicy":
        return cls()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "YoFam Onboarding"
    app_env: str = "development"
    debug: bool = False

    # Remote backend
    api_base_url: str = "http://localhost:8000/api"
    request_timeout_seconds: float = 10.0

    # Local key-value cache
    cache_database_url: str = "sqlite+aiosqlite:///./onboarding_cache.db"

    # Reference backend
    database_url: str = "sqlite+aiosqlite:///./onboarding_backend.db"

    # Completion policy
    essential_weight: int = 50
    core_weight: int = 30
    rich_weight: int = 20
    completion_threshold: int = 90
    core_complete_ratio: float = 0.7
    rich_complete_ratio: float = 0.5

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def completion_policy(self) -> CompletionPolicy:
        return CompletionPolicy(
            phase_weights={
                "essential": self.essential_weight,
                "core": self.core_weight,
                "rich": self.rich_weight,
            },
            completion_threshold=self.completion_threshold,
            core_complete_ratio=self.core_complete_ratio,
            rich_complete_ratio=self.rich_complete_ratio,
        )

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


settings = Settings()
