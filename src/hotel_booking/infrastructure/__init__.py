"""
Инфраструктурный слой: хранилища, единицы работы, шина событий, логирование.
"""

from .clock import FixedClock, SystemClock
from .event_bus import InMemoryEventBus
from .log import StdLogger, configure_logging
from .memory import InMemoryStore, InMemoryUnitOfWork
from .sqlalchemy_store import SqlAlchemyUnitOfWork

__all__ = [
    "SystemClock",
    "FixedClock",
    "InMemoryEventBus",
    "StdLogger",
    "configure_logging",
    "InMemoryStore",
    "InMemoryUnitOfWork",
    "SqlAlchemyUnitOfWork",
]
