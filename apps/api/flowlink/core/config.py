"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version
    VERSION: str = "0.1.0"

    # Database
    DATABASE_URL: str

    # Credential encryption (Fernet key for integration API tokens)
    FERNET_KEY: str = ""  # Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: float = 30.0
    HTTP_MAX_ATTEMPTS: int = 3

    # Sync scheduling
    SYNC_INTERVAL_SECONDS: int = 900  # 15 minutes
    SYNC_TIMEOUT_SECONDS: float = 300.0  # Abandon a pass after 5 minutes
    SYNC_BATCH_SIZE: int = 10
    SYNC_BATCH_DELAY_SECONDS: float = 0.1
    SYNC_PAGE_DELAY_SECONDS: float = 0.25
    LINKING_AFTER_SYNC: bool = True

    # Provider page sizes
    ZENDESK_PAGE_SIZE: int = 100
    JIRA_PAGE_SIZE: int = 100

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
