"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Database (PostgreSQL in production, SQLite accepted for dev/tests)
    DATABASE_URL: str

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 12

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_API: int = 120
    RATE_LIMIT_IMPORT: int = 10
    RATE_LIMIT_SYNC: int = 30
    REDIS_URL: str = "redis://localhost:6379/0"

    # Object storage for staged import files and exports
    STORAGE_BACKEND: str = "local"  # local | s3
    LOCAL_STORAGE_PATH: str = "/tmp/voterfield"
    S3_BUCKET: str = "voterfield"
    S3_REGION: str = "us-east-1"
    S3_ENDPOINT_URL: str = ""  # MinIO / LocalStack
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""

    # Worker
    WORKER_POLL_INTERVAL: int = 5
    WORKER_BATCH_SIZE: int = 10
    JOB_MAX_RUNTIME_SECONDS: int = 1800

    # Voter defaults for manual entry without a geocoordinate
    DEFAULT_VOTER_LAT: float = 40.7128
    DEFAULT_VOTER_LNG: float = -74.0060
    GEOM_JITTER_DEGREES: float = 0.01

    # Request limits
    MAX_IMPORT_RECORDS: int = 50000
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


settings = Settings()
