from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    app_name: str = "BranchWeaver"
    # Local sqlite file unless overridden (postgresql+asyncpg:// works too)
    database_url: str = "sqlite+aiosqlite:///./branchweaver.db"

    # Logging
    log_file: str = "branchweaver.log"
    log_level: str = "INFO"

    # Variation generation
    default_variation_count: int = 3

    # Deviation policy applied when the caller supplies none
    default_deviation_level: str = "moderate"

    # Refinement loop defaults (the loop clamps iterations to 1..5)
    refinement_max_iterations: int = 3
    refinement_min_improvement: float = 0.05
    satisfaction_threshold: float = 0.7

    # Multi-branch comparison
    similarity_threshold: float = 0.7
    comparison_workers: int = 4

    # Optional text-generation backend used by the refiners
    model_refiner: str = "gemini-2.5-flash"
    generation_timeout_seconds: float = 60.0
    generation_max_retries: int = 5
    generation_base_delay: float = 2.0  # seconds, used with exponential backoff
    google_api_key: str = ""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="BRANCHWEAVER_", extra="ignore")

@lru_cache
def get_settings():
    return Settings()
