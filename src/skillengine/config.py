"""Configuration settings for the skill engine."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Define the settings with default values and types
    # These will be loaded from environment variables or a .env file if not provided
    API_PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical
    AGENT_NAME: str = "KLOEL"

    # LLM Configuration
    MODEL_PROVIDER: str = "openai"  # Options: openai, anthropic
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o"
    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_MODEL: str = "claude-3-5-haiku-latest"
    MAX_TOKENS: int = 1024
    MODEL_TEMPERATURE: float = 0.4

    # Turn limits
    MODEL_TIMEOUT_SECONDS: float = 60.0
    SKILL_TIMEOUT_SECONDS: float = 20.0
    HISTORY_WINDOW: int = 10

    # Knowledge store
    VECTOR_DB_HOST: str = "chroma"  # Service name in docker-compose
    VECTOR_DB_PORT: int = 8000
    KNOWLEDGE_COLLECTION: str = "sales_knowledge"

    # Payment gateway; when PAYMENT_API_URL is unset links are generated locally
    PAYMENT_API_URL: str | None = None
    PAYMENT_API_KEY: str | None = None
    PAYMENT_LINK_BASE_URL: str = "http://localhost:3000"

    # CRM; when CRM_API_URL is unset leads are kept in memory
    CRM_API_URL: str | None = None
    CRM_API_KEY: str | None = None

    # Scheduling
    BUSINESS_HOURS_START: int = 9
    BUSINESS_HOURS_END: int = 18

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
