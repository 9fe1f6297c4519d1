from pydantic_settings import BaseSettings, SettingsConfigDict

from pkg.db_util.types import PostgresConfig


class Settings(BaseSettings):
    """Global configuration for environment variables."""

    APP_NAME: str = "Mdukuzi Chat Backend"
    ENV: str = "development"

    # Server config
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Debug: exposes exception detail in 500 responses
    DEBUG: bool = False

    # Database
    DATABASE_URL: str | None = None
    POSTGRES_HOST: str | None = None
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "postgres"
    SQLITE_PATH: str = "./data/chat.db"
    AUTO_CREATE_TABLES: bool = True

    # Auth
    JWT_SUPER_SECRET: str = "dev-secret"

    # Primary provider (Hugging Face router, OpenAI-compatible)
    HF_TOKEN: str | None = None
    HF_MODEL: str = "DeepHat/DeepHat-V1-7B:featherless-ai"
    HF_API_URL: str = "https://router.huggingface.co/v1/chat/completions"
    HF_TIMEOUT_SECONDS: float = 90.0

    # Secondary provider (OpenAI-compatible)
    OPENAI_API_KEY: str | None = None
    AI_API_URL: str = "https://api.openai.com/v1/chat/completions"
    AI_MODEL: str = "gpt-3.5-turbo"
    AI_TIMEOUT_SECONDS: float = 30.0
    AI_INPUT_COST_PER_1K: float = 0.0015
    AI_OUTPUT_COST_PER_1K: float = 0.002

    # Dispatch
    RETRY_BACKOFF_SECONDS: float = 3.0
    CHAT_TEMPERATURE: float = 0.7
    CHAT_MAX_TOKENS: int = 500

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def database_url(self) -> str:
        """DATABASE_URL wins, then POSTGRES_* (asyncpg), then a local SQLite file."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.POSTGRES_HOST:
            return PostgresConfig(
                host=self.POSTGRES_HOST,
                port=self.POSTGRES_PORT,
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD,
                database=self.POSTGRES_DB,
            ).connection_url
        return f"sqlite+aiosqlite:///{self.SQLITE_PATH}"


settings = Settings()
