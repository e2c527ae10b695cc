"""
Application settings for NACS Car Rental
Loaded from environment variables and the backend .env file
"""
from decimal import Decimal
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    API_TITLE: str = "NACS Car Rental API"
    API_DESCRIPTION: str = "Fleet catalog, pricing quotes and booking confirmation"
    API_VERSION: str = "1.0.0"
    CORS_ORIGINS: List[str] = ["*"]

    # Firebase
    USE_MOCK_FIREBASE: bool = False
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = None
    FIREBASE_CREDENTIALS_JSON: Optional[str] = None

    # Money / calendar
    CURRENCY_SYMBOL: str = "₱"
    BUSINESS_TIMEZONE: str = "Asia/Manila"

    # Pricing
    DRIVER_FEE_PER_DAY: Decimal = Decimal("750")
    PRICING_MEMO_SIZE: int = 512

    # Catalog
    CATALOG_CACHE_TTL_SECONDS: int = 300  # 5 minutes

    # Booking
    BOOKING_SUBMIT_TIMEOUT_SECONDS: float = 15.0

    # Chat
    CHAT_RECONCILE_WINDOW_SECONDS: int = 30

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
