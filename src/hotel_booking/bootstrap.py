from typing import Any, Dict, Optional

from .booking.application import BookingApplicationService
from .booking.interfaces import IClock
from .config import Settings, get_settings
from .infrastructure.clock import SystemClock
from .infrastructure.event_bus import InMemoryEventBus
from .infrastructure.log import StdLogger, configure_logging
from .infrastructure.memory import InMemoryUnitOfWork
from .infrastructure.sqlalchemy_store import SqlAlchemyUnitOfWork
from .payments.application import PaymentApplicationService
from .payments.interfaces import IHotelUnitOfWork


def bootstrap_app(
    settings: Optional[Settings] = None,
    clock: Optional[IClock] = None,
    uow: Optional[IHotelUnitOfWork] = None,
) -> Dict[str, Any]:
    """Создает и настраивает все компоненты приложения."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    logger = StdLogger("hotel_booking")

    # 1. Единица работы выбранного хранилища
    if uow is None:
        event_bus = InMemoryEventBus(StdLogger("hotel_booking.events"))
        if settings.storage_backend == "sqlalchemy":
            uow = SqlAlchemyUnitOfWork.from_url(settings.database_url, event_bus=event_bus)
        else:
            uow = InMemoryUnitOfWork(event_bus=event_bus)

    # 2. Сервисы получают зависимости явно
    booking_service = BookingApplicationService(
        uow=uow, clock=clock or SystemClock(), logger=StdLogger("hotel_booking.booking")
    )
    payment_service = PaymentApplicationService(
        uow=uow,
        logger=StdLogger("hotel_booking.payments"),
        cancel_booking_on_payment_failure=settings.cancel_booking_on_payment_failure,
        default_currency=settings.default_currency,
    )

    logger.debug("Application bootstrapped", storage=settings.storage_backend)
    return {
        "uow": uow,
        "event_bus": uow.event_bus,
        "booking_service": booking_service,
        "payment_service": payment_service,
    }
