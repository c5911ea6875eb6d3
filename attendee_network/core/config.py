from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import PostgresDsn, RedisDsn, computed_field
from typing import Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, extra="ignore")

    ENV: str = "production"

    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: str = "attendee_network"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432

    @computed_field
    def DATABASE_URL(self) -> PostgresDsn:
        return PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_HOST,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    REDIS_URL: RedisDsn = "redis://localhost:6379/0"

    # Matching
    MATCH_SCORE_THRESHOLD: int = 40  # Minimum score persisted by a recompute
    TOP_MATCH_SCORE: int = 80  # Score from which a match is shown as "top"
    MATCH_RECOMPUTE_INTERVAL_MINUTES: int = 30  # 0 disables the scheduled recompute

    # Store access
    STORE_TIMEOUT_SECONDS: float = 10.0

    # Realtime feed
    FEED_QUEUE_SIZE: int = 256  # Bounded per-subscription queue
    FEED_CHANNEL_PREFIX: str = "attendee_network:messages"

    @property
    def is_dev_mode(self) -> bool:
        return self.ENV.lower() in ["dev", "development", "local"]

settings = Settings()
