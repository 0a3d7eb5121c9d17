import logging
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from plantry.shared.utils import SuccessResponse, BadRequestException, NotFoundException
from plantry.app.dependencies import get_session, require_admin
from plantry.app.models import OrderDB, OrderStatus, PaymentStatus, ProductDB, UserDB
from plantry.app.orders import load_order_detail
from plantry.app.schemas import (
    AdminOrderDetailResponse, CustomerResponse, DashboardStats, OrderResponse,
    OrderStatusUpdate, ProductCreate, ProductResponse, ProductUpdate
)

logger = logging.getLogger("plantry.admin")

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])

# Orders
@router.get("/orders", response_model=SuccessResponse[List[OrderResponse]])
async def list_all_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
):
    query = select(OrderDB)
    if status_filter:
        query = query.where(OrderDB.status == status_filter.value)
    query = query.order_by(OrderDB.created_at.desc(), OrderDB.id.desc()).limit(limit).offset(offset)

    orders = await session.scalars(query)
    return SuccessResponse(data=[OrderResponse.model_validate(o) for o in orders])

@router.get("/orders/{order_id}", response_model=SuccessResponse[AdminOrderDetailResponse])
async def get_order_details(order_id: int, session: AsyncSession = Depends(get_session)):
    detail = await load_order_detail(session, order_id)
    if detail is None:
        raise NotFoundException("Order not found")

    customer = await session.get(UserDB, detail.order.user_id)
    return SuccessResponse(data=AdminOrderDetailResponse(
        order=detail.order,
        items=detail.items,
        payment=detail.payment,
        customer=CustomerResponse.model_validate(customer) if customer else None,
    ))

@router.put("/orders/{order_id}/status", response_model=SuccessResponse[OrderResponse])
async def update_order_status(
    order_id: int,
    status_update: OrderStatusUpdate,
    session: AsyncSession = Depends(get_session),
):
    valid_statuses = {s.value for s in OrderStatus}
    if status_update.status not in valid_statuses:
        raise BadRequestException("Invalid status")

    order = await session.get(OrderDB, order_id)
    if not order:
        raise NotFoundException("Order not found")

    previous = order.status
    order.status = status_update.status
    await session.commit()

    logger.info(
        f"Order status changed {previous} -> {order.status}",
        extra={"order_id": order.id, "order_number": order.order_number},
    )
    return SuccessResponse(data=OrderResponse.model_validate(order))

# Products
@router.post("/products", response_model=SuccessResponse[ProductResponse], status_code=status.HTTP_201_CREATED)
async def create_product(product: ProductCreate, session: AsyncSession = Depends(get_session)):
    product_db = ProductDB(**product.model_dump(), available=True)
    session.add(product_db)
    await session.commit()
    return SuccessResponse(data=ProductResponse.model_validate(product_db), message="Product created successfully")

@router.put("/products/{product_id}", response_model=SuccessResponse[ProductResponse])
async def update_product(
    product_id: int,
    product_update: ProductUpdate,
    session: AsyncSession = Depends(get_session),
):
    product = await session.get(ProductDB, product_id)
    if not product:
        raise NotFoundException("Product not found")

    # Catalog only; order lines keep their price_at_purchase
    update_data = {k: v for k, v in product_update.model_dump(exclude_unset=True).items() if v is not None}
    for field, value in update_data.items():
        setattr(product, field, value)

    await session.commit()
    return SuccessResponse(data=ProductResponse.model_validate(product), message="Product updated successfully")

# Stats
@router.get("/stats/dashboard", response_model=SuccessResponse[DashboardStats])
async def dashboard_stats(session: AsyncSession = Depends(get_session)):
    total_orders = await session.scalar(select(func.count()).select_from(OrderDB))
    total_revenue = await session.scalar(
        select(func.coalesce(func.sum(OrderDB.total_amount), 0))
        .where(OrderDB.payment_status == PaymentStatus.PAID.value)
    )
    total_products = await session.scalar(select(func.count()).select_from(ProductDB))
    total_users = await session.scalar(select(func.count()).select_from(UserDB))

    return SuccessResponse(data=DashboardStats(
        total_orders=total_orders,
        total_revenue=Decimal(str(total_revenue)),
        total_products=total_products,
        total_users=total_users,
    ))
