import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Protocol, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from plantry.app.models import OrderDB, OrderStatus, PaymentDB, PaymentStatus
from plantry.app.schemas import PaymentConfirm

logger = logging.getLogger("plantry.payments")


class PaymentError(Exception):
    pass


class OrderNotFoundError(Exception):
    """No order with that id belongs to the paying user."""


@dataclass
class PaymentIntent:
    id: str
    client_secret: str
    amount: int
    currency: str


class PaymentGateway(Protocol):
    async def create_intent(self, amount: int, currency: str, metadata: dict) -> PaymentIntent:
        ...


class SimulatedPaymentGateway:
    """Stands in for the card processor; issues intents without charging anything."""

    async def create_intent(self, amount: int, currency: str, metadata: dict) -> PaymentIntent:
        intent_id = f"pi_{uuid.uuid4().hex}"
        return PaymentIntent(
            id=intent_id,
            client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:16]}",
            amount=amount,
            currency=currency,
        )


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


async def create_payment_intent(
    session_factory: async_sessionmaker,
    gateway: PaymentGateway,
    user_id: int,
    order_id: int,
    currency: str,
) -> PaymentIntent:
    async with session_factory() as session:
        order = await session.scalar(
            select(OrderDB).where(OrderDB.id == order_id, OrderDB.user_id == user_id)
        )
    if order is None:
        raise OrderNotFoundError(order_id)
    if order.status == OrderStatus.CANCELLED.value:
        raise PaymentError("Cannot pay for a cancelled order")

    return await gateway.create_intent(
        to_minor_units(order.total_amount),
        currency,
        {"order_id": order.id, "user_id": user_id},
    )


async def confirm_payment(
    session_factory: async_sessionmaker,
    user_id: int,
    confirmation: PaymentConfirm,
) -> Tuple[PaymentDB, bool]:
    """Record the charge for an order and mark the order paid and confirmed.

    Returns the payment and whether it was created by this call; a repeated
    confirmation hands back the payment already on file.
    """
    created = False
    async with session_factory() as session, session.begin():
        order: Optional[OrderDB] = await session.scalar(
            select(OrderDB)
            .where(OrderDB.id == confirmation.order_id, OrderDB.user_id == user_id)
            .with_for_update()
        )
        if order is None:
            raise OrderNotFoundError(confirmation.order_id)

        payment = await session.scalar(select(PaymentDB).where(PaymentDB.order_id == order.id))
        if payment is None:
            if order.status == OrderStatus.CANCELLED.value:
                raise PaymentError("Cannot pay for a cancelled order")
            payment = PaymentDB(
                order_id=order.id,
                charge_id=confirmation.charge_id,
                amount=order.total_amount,
                status="completed",
                payment_method=confirmation.payment_method,
            )
            session.add(payment)
            order.payment_status = PaymentStatus.PAID.value
            order.status = OrderStatus.CONFIRMED.value
            created = True

    if created:
        logger.info("Payment confirmed", extra={
            "user_id": user_id,
            "order_id": payment.order_id,
            "payment_id": payment.id,
        })
    return payment, created
