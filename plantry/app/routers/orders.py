from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from plantry.shared.utils import SuccessResponse, AppException, BadRequestException, NotFoundException
from plantry.app.dependencies import get_current_user, get_session, get_session_factory
from plantry.app.models import OrderDB
from plantry.app.orders import EmptyCartError, OrderTransactionError, load_order_detail, place_order
from plantry.app.schemas import (
    OrderCreate, OrderCreatedResponse, OrderDetailResponse, OrderResponse, PlacedOrderResponse
)

router = APIRouter(prefix="/api/orders", tags=["orders"])

@router.post("/create", response_model=OrderCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    details: OrderCreate,
    user: dict = Depends(get_current_user),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    try:
        order = await place_order(session_factory, user["id"], details)
    except EmptyCartError:
        raise BadRequestException("Cart is empty")
    except OrderTransactionError as exc:
        # The underlying error text goes back to the client as-is
        raise AppException(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    return OrderCreatedResponse(
        order=PlacedOrderResponse.model_validate(order),
        message="Order created successfully",
    )

@router.get("", response_model=SuccessResponse[List[OrderResponse]])
async def list_orders(user: dict = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    orders = await session.scalars(
        select(OrderDB)
        .where(OrderDB.user_id == user["id"])
        .order_by(OrderDB.created_at.desc(), OrderDB.id.desc())
    )
    return SuccessResponse(data=[OrderResponse.model_validate(o) for o in orders])

@router.get("/{order_id}", response_model=SuccessResponse[OrderDetailResponse])
async def get_order(order_id: int, user: dict = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    detail = await load_order_detail(session, order_id, user_id=user["id"])
    if detail is None:
        raise NotFoundException("Order not found")
    return SuccessResponse(data=detail)
