# config.py
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class ExchangeRateSettings(BaseModel):
    cache_key: str = "exchange_rate"
    cache_ttl: float = Field(default=3600, gt=0)
    api_url: str = "https://open.er-api.com/v6/latest/USD"
    api_timeout: float = Field(default=5, gt=0)
    default_rate: float = 0.85
    currency: str = "EUR"


class MailSettings(BaseModel):
    host: str = "localhost"
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    from_address: str = "storefront@example.com"
    use_tls: bool = True
    timeout: float = 20
    rate_per_minute: float = Field(default=50, gt=0)


class QueueSettings(BaseModel):
    workers: int = Field(default=1, ge=1)
    maxsize: int = Field(default=0, ge=0)
    retries: int = Field(default=3, ge=1)
    backoff_base: float = 2


class Settings(BaseModel):
    database_url: str = "sqlite:///data/storefront.db"
    notification_email: str = "admin@example.com"
    upload_root: str = "public"
    exchange_rate: ExchangeRateSettings = Field(default_factory=ExchangeRateSettings)
    mail: MailSettings = Field(default_factory=MailSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Build settings from environment variables, reading `.env` first"""
        if dotenv:
            load_dotenv()

        def env(name: str, default: Optional[str] = None) -> Optional[str]:
            value = os.getenv(name)
            return value if value not in (None, "") else default

        # pydantic coerces the string values and falls back to field defaults
        exchange_rate = {
            "cache_key": env("EXCHANGE_RATE_CACHE_KEY"),
            "cache_ttl": env("EXCHANGE_RATE_CACHE_TTL"),
            "api_url": env("EXCHANGE_RATE_API_URL"),
            "api_timeout": env("EXCHANGE_RATE_API_TIMEOUT"),
            "default_rate": env("EXCHANGE_RATE_DEFAULT"),
            "currency": env("EXCHANGE_RATE_CURRENCY"),
        }
        mail = {
            "host": env("MAIL_HOST"),
            "port": env("MAIL_PORT"),
            "username": env("MAIL_USERNAME"),
            "password": env("MAIL_PASSWORD"),
            "from_address": env("MAIL_FROM"),
            "use_tls": env("MAIL_USE_TLS"),
            "rate_per_minute": env("MAIL_RATE_PER_MINUTE"),
        }
        queue = {
            "workers": env("QUEUE_WORKERS"),
            "maxsize": env("QUEUE_MAXSIZE"),
            "retries": env("QUEUE_RETRIES"),
        }
        top = {
            "database_url": env("DATABASE_URL"),
            "notification_email": env("PRICE_NOTIFICATION_EMAIL"),
            "upload_root": env("UPLOAD_ROOT"),
        }

        def present(values: dict) -> dict:
            return {k: v for k, v in values.items() if v is not None}

        return cls(
            **present(top),
            exchange_rate=ExchangeRateSettings(**present(exchange_rate)),
            mail=MailSettings(**present(mail)),
            queue=QueueSettings(**present(queue)),
        )
