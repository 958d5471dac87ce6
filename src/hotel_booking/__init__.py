"""
Ядро системы бронирования отеля.

Проверка доступности номеров и жизненный цикл бронирований и платежей.
"""

from .bootstrap import bootstrap_app

__version__ = "0.1.0"

__all__ = ["bootstrap_app"]
