from decimal import Decimal
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")
    db_echo: bool = Field(False, alias="DB_ECHO")
    db_pool_recycle_seconds: int = Field(300, alias="DB_POOL_RECYCLE_SECONDS")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")

    # Razorpay credentials are only required once a payment is initiated
    razorpay_key_id: Optional[str] = Field(None, alias="RAZORPAY_KEY_ID")
    razorpay_key_secret: Optional[str] = Field(None, alias="RAZORPAY_KEY_SECRET")
    razorpay_base_url: str = Field("https://api.razorpay.com/v1", alias="RAZORPAY_BASE_URL")
    payment_currency: str = Field("INR", alias="PAYMENT_CURRENCY")
    gateway_timeout_seconds: float = Field(15.0, alias="GATEWAY_TIMEOUT_SECONDS")

    # Dues and payment rules
    payment_pending_window_minutes: int = Field(5, alias="PAYMENT_PENDING_WINDOW_MINUTES")
    dues_months_ahead: int = Field(3, alias="DUES_MONTHS_AHEAD")
    # Capped at 28 so every month has the day
    due_day_of_month: int = Field(10, ge=1, le=28, alias="DUE_DAY_OF_MONTH")
    default_monthly_fee: Decimal = Field(Decimal("5000"), alias="DEFAULT_MONTHLY_FEE")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
