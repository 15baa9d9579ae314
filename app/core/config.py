from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API Settings
    PROJECT_NAME: str = "Warakado Members API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Membership, loyalty points and tarot credits for Warakado"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Directory service (MongoDB)
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "warakado"
    DIRECTORY_ENABLED: bool = True
    DIRECTORY_CHANGE_STREAMS: bool = True
    DIRECTORY_POLL_INTERVAL: float = 5.0
    DIRECTORY_HANDSHAKE_TIMEOUT_MS: int = 3000

    # Local cache
    LOCAL_CACHE_PATH: str = "data/local_cache.json"

    # Business day
    BUSINESS_TIMEZONE: str = "Asia/Tokyo"

    # Quotas and allowances
    DAILY_RECIPE_LIMIT: int = 10
    LOCAL_RECIPE_CAP: int = 30
    FREE_TAROT_USES: int = 3
    TAROT_KEY_CREDITS: int = 30
    TAROT_KEY_LENGTH: int = 6
    POINTS_PER_GRANT: int = 1
    POINTS_REWARD_THRESHOLD: int = 10

    # Recipes
    MAX_REMOTE_IMAGE_LENGTH: int = 1_000_000
    DEFAULT_RECIPE_IMAGE: str = "https://images.unsplash.com/photo-1546069901-ba9599a7e63c?w=500"

    # Members
    DEFAULT_NICKNAME: str = "Guest"
    TAROT_PAYMENT_URL: str = "https://warakado-vision.square.site/"

    # Staff / operator console
    STAFF_PASSPHRASE: str = "change-this-in-production"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
