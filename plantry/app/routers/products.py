from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from plantry.shared.utils import SuccessResponse, NotFoundException
from plantry.shared.security_config import limiter, BROWSE_LIMIT
from plantry.app.dependencies import get_session
from plantry.app.models import ProductDB
from plantry.app.schemas import ProductResponse

router = APIRouter(prefix="/api/products", tags=["products"])

@router.get("", response_model=SuccessResponse[List[ProductResponse]])
@limiter.limit(BROWSE_LIMIT)
async def list_products(
    request: Request,
    category: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    query = select(ProductDB).where(ProductDB.available.is_(True))
    if category:
        query = query.where(ProductDB.category == category)
    query = query.order_by(ProductDB.created_at.desc(), ProductDB.id.desc())

    products = (await session.scalars(query)).all()
    return SuccessResponse(data=[ProductResponse.model_validate(p) for p in products])

@router.get("/categories/all", response_model=SuccessResponse[List[str]])
async def list_categories(session: AsyncSession = Depends(get_session)):
    result = await session.scalars(
        select(ProductDB.category)
        .where(ProductDB.category.is_not(None))
        .distinct()
        .order_by(ProductDB.category)
    )
    return SuccessResponse(data=list(result))

@router.get("/{product_id}", response_model=SuccessResponse[ProductResponse])
@limiter.limit(BROWSE_LIMIT)
async def get_product(product_id: int, request: Request, session: AsyncSession = Depends(get_session)):
    product = await session.get(ProductDB, product_id)
    if not product:
        raise NotFoundException("Product not found")
    return SuccessResponse(data=ProductResponse.model_validate(product))
