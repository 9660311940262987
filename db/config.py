from functools import lru_cache
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

class Settings(BaseSettings):
    # Database settings
    mongo_uri: str = "mongodb://localhost:27017"
    db_name: str = "storefront"

    # Cache settings
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl_seconds: int = 3600

    # Order placement: check-and-decrement per item (False) or conditional
    # decrement with compensation of earlier items (True)
    atomic_stock_reservation: bool = False

    # App settings
    environment: str = "Development"
    log_level: str = "INFO"
    port: int = 8000
    allowed_origins: str = "http://localhost:3000"
    slow_request_threshold: float = 2.0

    class Config:
        extra = "ignore"
        env_file = ".env"
        env_file_encoding = 'utf-8'
        case_sensitive = False

@lru_cache()
def get_settings() -> Settings:
    """Get settings instance"""
    return Settings()
