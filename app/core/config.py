from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    REDIS_URL: str = "redis://localhost:6379/0"
    STORAGE_BACKEND: str = "memory"  # memory | redis

    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    EMAIL_VERIFICATION_TTL: int = 86400  # 24 hours

    RATE_LIMIT: int = 100
    RATE_LIMIT_WINDOW: int = 600  # 10 minutes

    IDEMPOTENCY_TTL: int = 300  # 5 minutes
    ROUTE_CACHE_TTL: int = 600
    QUOTE_SESSION_TTL: int = 3600

    VAT_RATE: Decimal = Decimal("0.09")
    SERVICE_FEE: Decimal = Decimal("5.00")
    CURRENCY: str = "eur"

    BOOKING_ID_PREFIX: str = "TX"
    BOOKING_ID_STRATEGY: str = "sequential"  # sequential | random

    MAPBOX_TOKEN: Optional[str] = None
    MAPBOX_API_URL: str = "https://api.mapbox.com"
    MAPBOX_COUNTRY: str = "nl"
    ROUTING_TIMEOUT: float = 10.0

    PAYMENT_PROVIDER: str = "offline"  # offline | stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_API_URL: str = "https://api.stripe.com"
    PAYMENT_SUCCESS_URL: str = "http://localhost:8000/success.html?session_id={CHECKOUT_SESSION_ID}"
    PAYMENT_CANCEL_URL: str = "http://localhost:8000/cancel.html"
    PAYMENT_TIMEOUT: float = 15.0

    WEBHOOK_URL: Optional[str] = None
    WEBHOOK_TIMEOUT: int = 10
    WEBHOOK_RETRIES: int = 3

    API_TITLE: str = "Taxi Booking Service"
    API_DESCRIPTION: str = "Fare quotes, payment-backed bookings and contact messages"
    API_VERSION: str = "1.0.0"

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
