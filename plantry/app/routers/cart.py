from decimal import Decimal

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from plantry.shared.utils import SuccessResponse, NotFoundException
from plantry.shared.security_config import limiter, BROWSE_LIMIT
from plantry.app.dependencies import get_current_user, get_session
from plantry.app.models import CartItemDB, ProductDB
from plantry.app.schemas import (
    CartItemAdd, CartItemUpdate, CartItemResponse, CartLineResponse, CartResponse
)

router = APIRouter(prefix="/api/cart", tags=["cart"])

@router.get("", response_model=SuccessResponse[CartResponse])
@limiter.limit(BROWSE_LIMIT)
async def get_cart(request: Request, user: dict = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    rows = await session.execute(
        select(CartItemDB, ProductDB)
        .join(ProductDB, CartItemDB.product_id == ProductDB.id)
        .where(CartItemDB.user_id == user["id"])
        .order_by(CartItemDB.created_at.desc(), CartItemDB.id.desc())
    )

    items = []
    total = Decimal("0.00")
    for cart_item, product in rows:
        total += product.price * cart_item.quantity
        items.append(CartLineResponse(
            id=cart_item.id,
            product_id=cart_item.product_id,
            quantity=cart_item.quantity,
            name=product.name,
            price=product.price,
            image_url=product.image_url,
        ))

    return SuccessResponse(data=CartResponse(items=items, total=total))

@router.post("/add", response_model=SuccessResponse[CartItemResponse])
async def add_to_cart(
    item: CartItemAdd,
    response: Response,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    product = await session.get(ProductDB, item.product_id)
    if not product:
        raise NotFoundException("Product not found")

    # One line per product; adding again merges quantities
    existing = await session.scalar(
        select(CartItemDB).where(
            CartItemDB.user_id == user["id"],
            CartItemDB.product_id == item.product_id,
        )
    )
    if existing:
        existing.quantity += item.quantity
        cart_item = existing
    else:
        cart_item = CartItemDB(user_id=user["id"], product_id=item.product_id, quantity=item.quantity)
        session.add(cart_item)
        response.status_code = status.HTTP_201_CREATED

    await session.commit()
    return SuccessResponse(data=CartItemResponse.model_validate(cart_item), message="Item added to cart")

@router.put("/{item_id}", response_model=SuccessResponse[CartItemResponse])
async def update_cart_item(
    item_id: int,
    update: CartItemUpdate,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    cart_item = await session.scalar(
        select(CartItemDB).where(CartItemDB.id == item_id, CartItemDB.user_id == user["id"])
    )
    if not cart_item:
        raise NotFoundException("Cart item not found")

    cart_item.quantity = update.quantity
    await session.commit()
    return SuccessResponse(data=CartItemResponse.model_validate(cart_item))

@router.delete("/{item_id}", response_model=SuccessResponse[dict])
async def remove_cart_item(item_id: int, user: dict = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    result = await session.execute(
        delete(CartItemDB).where(CartItemDB.id == item_id, CartItemDB.user_id == user["id"])
    )
    if result.rowcount == 0:
        raise NotFoundException("Cart item not found")
    await session.commit()
    return SuccessResponse(data={"id": item_id}, message="Item removed from cart")

@router.delete("", response_model=SuccessResponse[dict])
async def clear_cart(user: dict = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    await session.execute(delete(CartItemDB).where(CartItemDB.user_id == user["id"]))
    await session.commit()
    return SuccessResponse(message="Cart cleared")
