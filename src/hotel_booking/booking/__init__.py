"""
Модуль контекста бронирования (Booking Context).

Отвечает за бронирование номеров в отеле, включая:
- Проверку доступности номеров и поиск свободных номеров
- Создание, отмену и завершение бронирований
- Управление состоянием бронирований
"""

from . import application, domain, interfaces

__all__ = [
    "domain",
    "application",
    "interfaces",
]
