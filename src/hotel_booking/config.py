"""
Настройки приложения.
Читаются из переменных окружения с префиксом HOTEL_BOOKING_ и файла .env.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Настройки ядра бронирования."""

    model_config = SettingsConfigDict(
        env_prefix="HOTEL_BOOKING_", env_file=".env", extra="ignore"
    )

    # Хранилище
    storage_backend: Literal["memory", "sqlalchemy"] = "memory"
    database_url: str = "sqlite:///./hotel_booking.db"

    # Платежи
    default_currency: str = Field(default="USD", min_length=3, max_length=3)
    # Отменять ожидающее бронирование при неудачном платеже
    cancel_booking_on_payment_failure: bool = False

    # Логирование
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Глобальный экземпляр настроек."""
    return Settings()
