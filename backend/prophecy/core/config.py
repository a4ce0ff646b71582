from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    PROJECT_NAME: str = "Prophecy Engine"
    API_V1_STR: str = "/api/v1"

    # Database
    DATABASE_URL: str = "sqlite:///./prophecy.db"

    # Redis (celery broker and optional prediction cache store)
    REDIS_URL: str = "redis://localhost:6379"

    # Prediction cache
    PREDICTION_CACHE_BACKEND: str = "memory"  # memory, redis
    PREDICTION_CACHE_TTL: int = 900  # 15 minutes
    PREDICTION_CACHE_PREFIX: str = "prophecy"
    PREDICTION_CACHE_MAX_SIZE: int = 10000  # in-memory store only

    # Prediction model
    TREND_MIN_RECORDS: int = 3
    MULTI_VARIANT_MIN_RECORDS: int = 5
    FALLBACK_GROWTH_FACTOR: float = 1.1
    FALLBACK_CONFIDENCE: int = 70
    DEFAULT_MODEL_VARIANT: str = "linear"  # linear, random_forest, ensemble
    RANDOM_FOREST_ESTIMATORS: int = 50
    RANDOM_SEED: int = 42
    PREDICTION_INTERVAL_Z: float = 1.96  # 95% interval on predicted views

    # Prediction output
    RECOMMENDED_DURATION_SECONDS: int = 45
    TRENDING_HASHTAGS: List[str] = ["fyp", "viral", "trending", "tutorial", "howto"]
    MAX_RECOMMENDATIONS: int = 3

    # Feedback calibration
    FEEDBACK_QUERY_LIMIT: int = 100
    CALIBRATION_WINDOW: int = 20
    RECALIBRATION_INTERVAL: int = 86400  # 24 hours
    RECALIBRATION_MAX_RETRIES: int = 3

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = False
    LOG_JSON: bool = False


settings = Settings()
