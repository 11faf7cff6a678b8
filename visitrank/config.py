"""All settings, loaded from the .env file."""
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_url: str = "http://localhost:8000"

    # Score weights (must add to 1.0)
    weight_completion: float = 0.40
    weight_recency: float = 0.30
    weight_volume: float = 0.20
    weight_findings: float = 0.10

    # Score constants
    recency_decay_per_day: float = 2.0
    volume_points_per_visit: float = 25.0
    findings_min_length: int = 50
    stale_days_sentinel: int = 365
    tracked_visit_count: int = 4

    # Status bands (closed lower bounds)
    status_excellent_min: float = 80
    status_good_min: float = 60
    status_fair_min: float = 40

    # Membership renewal
    renewal_min_completed: int = 2
    renewal_max_days: int = 90
    renewal_min_completion_rate: float = 70

    # Pig addition
    pig_addition_min_score: float = 65
    pig_addition_min_completed: int = 1
    pig_addition_max_days: int = 60

    # Snapshot memoization
    ranking_cache_enabled: bool = True
    ranking_cache_max_entries: int = 128

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def weights_sum_to_one(self) -> "Settings":
        total = self.weight_completion + self.weight_recency + self.weight_volume + self.weight_findings
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Score weights must add to 1.0 (got {total:.4f})")
        return self

    @property
    def score_weights(self) -> dict[str, float]:
        return {
            "completion": self.weight_completion,
            "recency": self.weight_recency,
            "volume": self.weight_volume,
            "findings_quality": self.weight_findings,
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()
