"""
Шина доменных событий в памяти.
"""

from typing import Callable, Dict, List, Optional, Type

from ..booking import interfaces as ports
from ..shared_kernel import DomainEvent
from .log import StdLogger


class InMemoryEventBus(ports.IEventBus):
    """Реализация шины событий в памяти.

    Обработчики вызываются синхронно после фиксации единицы работы;
    ошибка обработчика логируется и не отменяет уже зафиксированные изменения.
    """

    def __init__(self, logger: Optional[ports.ILogger] = None):
        self._subscribers: Dict[Type[DomainEvent], List[Callable]] = {}
        self._logger = logger or StdLogger("hotel_booking.events")
        self.published: List[DomainEvent] = []

    def publish(self, event: DomainEvent) -> None:
        """Публикует событие."""
        self.published.append(event)
        handlers = self._subscribers.get(type(event), [])
        if not handlers:
            self._logger.debug(f"No subscribers for event type {event.event_type}")
            return

        self._logger.info(f"Publishing event: {event.event_type}", event_id=event.event_id)

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                self._logger.error(
                    f"Error in event handler for {event.event_type}",
                    error=str(e),
                    event=event.model_dump(mode="json"),
                )

    def subscribe(self, event_type: Type[DomainEvent], handler: Callable) -> None:
        """Подписывает обработчик на события указанного типа."""
        self._subscribers.setdefault(event_type, []).append(handler)
        self._logger.debug(f"Subscribed handler to {event_type.__name__} events")
