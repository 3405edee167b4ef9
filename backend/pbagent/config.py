"""Application configuration via pydantic-settings.

Reads from environment variables and .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Anthropic
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"

    # Infrastructure
    redis_url: str = "redis://localhost:6379"
    log_level: str = "INFO"

    # Frontend
    frontend_url: str = "http://localhost:3000"

    # Productboard
    productboard_token: str = ""
    productboard_base_url: str = "https://api.productboard.com"
    productboard_api_version: str = "1"
    productboard_default_product: str = "coder"
    productboard_timeout_seconds: float = 10.0
    productboard_max_attempts: int = 3
    productboard_retry_base_delay_ms: int = 250
    productboard_default_limit: int = 20
    productboard_max_pages: int = 5
    productboard_metadata_ttl_seconds: int = 3600  # feature status taxonomy

    # Slack
    slack_bot_token: str = ""
    slack_signing_secret: str = ""
    slack_ack_reaction: str = "eyes"

    # Budget
    max_budget_per_session_usd: float = 2.0
    max_turns: int = 30

    # Agent sessions (one per chat session or Slack thread)
    max_agent_sessions: int = 50
    agent_session_idle_seconds: int = 1800

    @property
    def anthropic_configured(self) -> bool:
        return bool(self.anthropic_api_key)

    @property
    def productboard_configured(self) -> bool:
        return bool(self.productboard_token)

    @property
    def slack_configured(self) -> bool:
        return bool(self.slack_bot_token and self.slack_signing_secret)


settings = Settings()
