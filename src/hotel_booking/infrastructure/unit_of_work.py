"""
Базовая единица работы.

Отвечает за границы транзакции и публикацию доменных событий после
успешной фиксации. Состояние единицы работы хранится отдельно для
каждого потока, поэтому один экземпляр можно разделять между потоками.
"""

import threading
from typing import Any, List, Optional

from ..booking import interfaces as ports
from ..shared_kernel import DomainEvent


class TrackingRepository:
    """Запоминает агрегаты, прошедшие через репозиторий, для сбора их событий."""

    def __init__(self) -> None:
        self.seen: List[Any] = []

    def _track(self, aggregate: Any) -> None:
        if all(aggregate is not item for item in self.seen):
            self.seen.append(aggregate)


class AbstractUnitOfWork:
    """Единица работы с вложенностью и публикацией событий."""

    def __init__(self, event_bus: ports.IEventBus, logger: ports.ILogger):
        self._event_bus = event_bus
        self._logger = logger
        self._local = threading.local()

    # Реализуется адаптерами хранилища

    def _begin(self) -> None:
        raise NotImplementedError

    def _commit(self) -> None:
        raise NotImplementedError

    def _rollback(self) -> None:
        raise NotImplementedError

    def _end(self) -> None:
        raise NotImplementedError

    def _repositories(self) -> List[TrackingRepository]:
        raise NotImplementedError

    # Общая логика

    @property
    def event_bus(self) -> ports.IEventBus:
        return self._event_bus

    @property
    def _depth(self) -> int:
        return getattr(self._local, "depth", 0)

    def _state(self, name: str) -> Any:
        value = getattr(self._local, name, None)
        if value is None:
            raise RuntimeError("Репозитории доступны только внутри единицы работы")
        return value

    def __enter__(self):
        if self._depth == 0:
            self._begin()
        self._local.depth = self._depth + 1
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> Optional[bool]:
        self._local.depth = self._depth - 1
        if self._depth > 0:
            return False
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self._end()
        return False  # Пробрасываем исключение дальше, если оно было

    def commit(self) -> None:
        """Фиксирует изменения и публикует накопленные события."""
        try:
            self._commit()
        except Exception:
            self.rollback()
            raise
        for event in self._collect_events():
            self._event_bus.publish(event)

    def rollback(self) -> None:
        """Откатывает изменения и отбрасывает накопленные события."""
        self._rollback()
        discarded = self._collect_events()
        if discarded:
            self._logger.warning(
                "Unit of work rolled back", discarded_events=len(discarded)
            )

    def _collect_events(self) -> List[DomainEvent]:
        events: List[DomainEvent] = []
        for repository in self._repositories():
            for aggregate in repository.seen:
                events.extend(aggregate.domain_events)
                aggregate.clear_events()
            repository.seen.clear()
        return events
