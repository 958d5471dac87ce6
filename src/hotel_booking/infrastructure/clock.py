"""Источники текущей даты."""

from datetime import date, timedelta

from ..shared_kernel import today


class SystemClock:
    def today(self) -> date:
        return today()


class FixedClock:
    """Часы с фиксированной датой (для тестов и пересчетов задним числом)."""

    def __init__(self, current: date):
        self.current = current

    def today(self) -> date:
        return self.current

    def advance(self, days: int = 1) -> None:
        self.current += timedelta(days=days)
