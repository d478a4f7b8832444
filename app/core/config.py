from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    PROJECT_NAME: str = "Location Tracker"
    PROJECT_DESCRIPTION: str = "Capture, save and review device locations"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # Database Settings
    # Empty means no database: the in-memory store is used instead.
    DATABASE_URL: str = ""
    # One of "auto", "memory", "database"
    LOCATION_STORE: str = "auto"

    # Position provider: "none", "fixed" or "http"
    POSITION_PROVIDER: str = "none"
    FIXED_LATITUDE: float = 0.0
    FIXED_LONGITUDE: float = 0.0
    FIXED_ACCURACY: float = 10.0
    GEOIP_API_URL: str = "http://ip-api.com/json"
    POSITION_WATCH_INTERVAL_SECONDS: float = 5.0

    # Geolocation request defaults
    GEOLOCATION_ENABLE_HIGH_ACCURACY: bool = True
    GEOLOCATION_TIMEOUT_MS: int = 10000
    GEOLOCATION_MAXIMUM_AGE_MS: int = 60000

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
