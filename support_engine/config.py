"""
Centralized Configuration System
Environment-aware settings for the conversation intelligence engine.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Dict, Literal, Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow"
    )
    """
    Production-grade configuration management.
    Loads from environment variables with sensible defaults.
    """

    # ============================================
    # CONVERSATION RULES
    # ============================================
    max_user_turns: int = 5  # Hard cap on collection turns before hand-off
    budget_priority_threshold_man_yen: float = 100.0  # Budgets >= this (in 万円) are at least medium
    category_schema_path: Optional[str] = None  # JSON file overriding the packaged schemas

    # ============================================
    # SENTIMENT ESCALATION TRIGGERS
    # ============================================
    sentiment_threshold: float = -3.0
    frustration_count_threshold: int = 2
    urgent_count_threshold: int = 1
    negative_trend_length: int = 3
    complaint_repetition_threshold: int = 2

    # ============================================
    # CONVERSATION STORE (MongoDB)
    # ============================================
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "support_engine"
    mongodb_max_pool_size: int = 10
    mongodb_min_pool_size: int = 1
    mongodb_server_selection_timeout_ms: int = 5000
    store_max_write_attempts: int = 3

    # ============================================
    # NOTIFICATIONS
    # ============================================
    slack_webhook_url: Optional[str] = None  # Default webhook for channels without their own
    slack_webhook_urls: Dict[str, str] = {}  # Per-channel webhooks, e.g. {"#urgent-support": "https://hooks..."}
    notifier_timeout_seconds: float = 10.0
    notifier_max_attempts: int = 3
    retry_min_wait_seconds: float = 1.0
    retry_max_wait_seconds: float = 8.0
    urgent_notify_channel: str = "#urgent-support"
    oncall_mention: str = "@oncall"
    app_url: str = "http://localhost:3000"

    # ============================================
    # LLM KEYWORD REFINEMENT (optional)
    # ============================================
    openai_api_key: Optional[str] = None
    enable_keyword_refinement: bool = False
    keyword_refiner_model: str = "openai:gpt-4o-mini"

    # ============================================
    # OBSERVABILITY
    # ============================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    enable_structured_logging: bool = False  # Set to True for production JSON logs

    # ============================================
    # ENVIRONMENT
    # ============================================
    environment: Literal["development", "test", "staging", "production"] = "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Singleton pattern for settings.
    Uses LRU cache to ensure only one Settings instance exists.
    """
    return Settings()


# Convenience accessor for common use
settings = get_settings()
