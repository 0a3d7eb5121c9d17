"""Order placement.

Converts a user's cart into an order and its line items inside a single
database transaction. Prices are read from the catalog in the same
transaction and frozen on each line as ``price_at_purchase``; the order
total is the exact Decimal sum of those lines.
"""
import logging
import secrets
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from plantry.app.models import CartItemDB, OrderDB, OrderItemDB, OrderStatus, PaymentDB, PaymentStatus, ProductDB
from plantry.app.schemas import (
    OrderCreate, OrderDetailResponse, OrderLineResponse, OrderResponse, PaymentResponse
)
from plantry.shared.utils import utcnow

logger = logging.getLogger("plantry.orders")


class EmptyCartError(Exception):
    """The cart holds no items; nothing was written."""


class OrderTransactionError(Exception):
    """Order placement failed and its transaction was rolled back."""


class CartChangedError(Exception):
    pass


def generate_order_number(user_id: int, now: Optional[datetime] = None) -> str:
    """Human readable order number: ``ORD-<epoch ms>-<user id>-<random hex>``.

    The random suffix keeps two checkouts of one user in the same millisecond
    apart; the column's unique constraint rejects anything that still collides.
    """
    now = now or utcnow()
    return f"ORD-{int(now.timestamp() * 1000)}-{user_id}-{secrets.token_hex(3).upper()}"


def order_total(lines: Iterable[Tuple[Decimal, int]]) -> Decimal:
    return sum((price * quantity for price, quantity in lines), Decimal("0.00"))


async def place_order(
    session_factory: async_sessionmaker,
    user_id: int,
    details: OrderCreate,
) -> OrderDB:
    """Place an order from the user's cart.

    Raises EmptyCartError when the cart is empty and OrderTransactionError for
    any other failure. Either way the transaction is rolled back and the cart
    is left as it was.
    """
    try:
        async with session_factory() as session, session.begin():
            # Cart rows stay locked until commit, so a concurrent checkout of
            # the same user waits and then finds the cart empty.
            result = await session.execute(
                select(CartItemDB.id, CartItemDB.product_id, CartItemDB.quantity, ProductDB.price)
                .join(ProductDB, CartItemDB.product_id == ProductDB.id)
                .where(CartItemDB.user_id == user_id)
                .order_by(CartItemDB.id)
                .with_for_update(of=CartItemDB)
            )
            lines = result.all()
            if not lines:
                raise EmptyCartError("Cart is empty")

            order = OrderDB(
                user_id=user_id,
                order_number=generate_order_number(user_id),
                total_amount=order_total((line.price, line.quantity) for line in lines),
                shipping_address=details.shipping_address,
                billing_address=details.billing_address,
                notes=details.notes or "",
                status=OrderStatus.PLACED.value,
                payment_status=PaymentStatus.PENDING.value,
                items=[],
            )
            session.add(order)
            await session.flush()

            for line in lines:
                order.items.append(OrderItemDB(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price_at_purchase=line.price,
                ))
            await session.flush()

            # Only the lines read above; a line added meanwhile stays in the cart
            deleted = await session.execute(
                delete(CartItemDB).where(CartItemDB.id.in_([line.id for line in lines]))
            )
            # Lines gone already were taken by a checkout that committed first
            if deleted.rowcount == 0:
                raise EmptyCartError("Cart is empty")
            if deleted.rowcount != len(lines):
                raise CartChangedError("Cart changed during checkout")
    except EmptyCartError:
        raise
    except Exception as exc:
        logger.error("Order placement rolled back", extra={"user_id": user_id}, exc_info=True)
        raise OrderTransactionError(str(exc)) from exc

    logger.info("Order placed", extra={
        "user_id": user_id,
        "order_id": order.id,
        "order_number": order.order_number,
        "total_amount": str(order.total_amount),
        "item_count": len(order.items),
    })
    return order


async def load_order_detail(
    session: AsyncSession,
    order_id: int,
    user_id: Optional[int] = None,
) -> Optional[OrderDetailResponse]:
    """Order with its lines (joined with product name and category) and payment.

    Passing ``user_id`` restricts the lookup to that user's orders.
    """
    query = select(OrderDB).where(OrderDB.id == order_id)
    if user_id is not None:
        query = query.where(OrderDB.user_id == user_id)
    order = await session.scalar(query)
    if order is None:
        return None

    rows = await session.execute(
        select(OrderItemDB, ProductDB.name, ProductDB.category)
        .join(ProductDB, OrderItemDB.product_id == ProductDB.id)
        .where(OrderItemDB.order_id == order.id)
        .order_by(OrderItemDB.id)
    )
    items = [
        OrderLineResponse(
            id=item.id,
            product_id=item.product_id,
            quantity=item.quantity,
            price_at_purchase=item.price_at_purchase,
            name=name,
            category=category,
        )
        for item, name, category in rows
    ]
    payment = await session.scalar(select(PaymentDB).where(PaymentDB.order_id == order.id))

    return OrderDetailResponse(
        order=OrderResponse.model_validate(order),
        items=items,
        payment=PaymentResponse.model_validate(payment) if payment else None,
    )
