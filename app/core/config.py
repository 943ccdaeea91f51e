"""Application configuration management."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str

    # JWT Configuration
    SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440

    # DigitalOcean Spaces / MinIO (document uploads)
    SPACES_ENDPOINT: str
    SPACES_REGION: str
    SPACES_BUCKET: str
    SPACES_KEY: str
    SPACES_SECRET: str

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000"

    # Google Maps (geocoding + directions)
    GOOGLE_MAPS_API_KEY: Optional[str] = None
    GOOGLE_MAPS_BASE_URL: str = "https://maps.googleapis.com/maps/api"
    TRAFFIC_DEFAULT_ORIGIN_LAT: float = 18.0123
    TRAFFIC_DEFAULT_ORIGIN_LNG: float = -76.7973

    # Gemini (training assistant, OpenAI-compatible endpoint)
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai/"

    # xAI Grok (social media sentiment)
    XAI_API_KEY: Optional[str] = None
    XAI_BASE_URL: str = "https://api.x.ai/v1"
    GROK_MODEL: str = "grok-2-1212"

    # BigQuery event analytics
    GOOGLE_CLOUD_PROJECT_ID: Optional[str] = None
    GOOGLE_CLOUD_KEY_FILE: Optional[str] = None
    BIGQUERY_DATASET: str = "electoral_observation"

    # Certificates
    CERTIFICATE_PREFIX: str = "CAFFE"
    CERTIFICATE_VERIFY_BASE_URL: str = "https://caffe.org.jm/verify"
    CERTIFICATE_VALIDITY_DAYS: int = 365

    # Field operations
    CHECK_IN_RADIUS_METERS: int = 500

    # Environment
    ENVIRONMENT: str = "development"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def bigquery_enabled(self) -> bool:
        return bool(self.GOOGLE_CLOUD_PROJECT_ID)


settings = Settings()


def get_settings() -> Settings:
    return settings
