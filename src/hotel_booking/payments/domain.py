"""
Доменная модель контекста платежей.

Платеж связан ровно с одним бронированием и меняет статус только
по таблице PAYMENT_TRANSITIONS. Записи не удаляются: возвращенные
и неудачные платежи остаются для аудита.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, PrivateAttr

from ..shared_kernel import (
    PAYMENT_TRANSITIONS,
    DomainEvent,
    EntityId,
    InvalidInputError,
    MissingRefundReasonError,
    Money,
    PaymentMethod,
    PaymentStatus,
    ensure_transition,
    generate_id,
    now,
)


class PaymentCreated(DomainEvent):
    """Событие создания платежа."""

    payment_id: EntityId
    booking_id: EntityId
    amount: Money


class PaymentStatusChanged(DomainEvent):
    """Событие смены статуса платежа."""

    payment_id: EntityId
    booking_id: EntityId
    old_status: PaymentStatus
    new_status: PaymentStatus


class Payment(BaseModel):
    """Платеж по бронированию."""

    id: EntityId = Field(default_factory=generate_id)
    booking_id: EntityId
    amount: Money
    method: PaymentMethod = PaymentMethod.CREDIT_CARD
    status: PaymentStatus = PaymentStatus.PENDING
    refund_reason: Optional[str] = None
    transaction_id: Optional[str] = None  # Внешний идентификатор транзакции
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)
    version: int = 0

    _domain_events: List[DomainEvent] = PrivateAttr(default_factory=list)

    @property
    def domain_events(self) -> List[DomainEvent]:
        return self._domain_events

    def clear_events(self) -> None:
        self._domain_events = []

    @property
    def currency(self) -> str:
        return self.amount.currency

    def transition_to(
        self, new_status: PaymentStatus, refund_reason: Optional[str] = None
    ) -> None:
        """Переводит платеж в новый статус.

        Raises:
            MissingRefundReasonError: возврат без причины.
            InvalidStateTransitionError: переход не разрешен таблицей.
        """
        if new_status == PaymentStatus.REFUNDED and not (refund_reason or "").strip():
            raise MissingRefundReasonError(
                "Для возврата платежа необходимо указать причину", payment_id=self.id
            )
        ensure_transition("Payment", PAYMENT_TRANSITIONS, self.status, new_status)

        old_status = self.status
        self.status = new_status
        if new_status == PaymentStatus.REFUNDED:
            self.refund_reason = refund_reason.strip()
        self.updated_at = now()
        self._domain_events.append(
            PaymentStatusChanged(
                payment_id=self.id,
                booking_id=self.booking_id,
                old_status=old_status,
                new_status=new_status,
            )
        )

    @classmethod
    def create(
        cls,
        booking_id: EntityId,
        amount: Money,
        method: PaymentMethod,
        transaction_id: Optional[str] = None,
    ) -> "Payment":
        """Создает платеж в статусе PENDING."""
        if not amount.is_positive():
            raise InvalidInputError("Сумма платежа должна быть положительной", amount=amount.amount)

        payment = cls(
            booking_id=booking_id,
            amount=amount,
            method=method,
            transaction_id=transaction_id,
        )
        payment._domain_events.append(
            PaymentCreated(payment_id=payment.id, booking_id=booking_id, amount=amount)
        )
        return payment
