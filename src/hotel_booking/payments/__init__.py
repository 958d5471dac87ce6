"""
Модуль контекста платежей (Payments Context).

Отвечает за платежи по бронированиям и их влияние на статус бронирования.
"""

from . import application, domain, interfaces

__all__ = [
    "domain",
    "application",
    "interfaces",
]
