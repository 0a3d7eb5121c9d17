from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from plantry.shared.utils import SuccessResponse, BadRequestException, NotFoundException, settings
from plantry.shared.security_config import limiter, WRITE_LIMIT
from plantry.app.dependencies import get_current_user, get_session, get_session_factory
from plantry.app.models import OrderDB, PaymentDB
from plantry.app.payments import OrderNotFoundError, PaymentError, confirm_payment, create_payment_intent
from plantry.app.schemas import (
    PaymentConfirm, PaymentIntentCreate, PaymentIntentResponse, PaymentResponse
)

router = APIRouter(prefix="/api/payment", tags=["payment"])

@router.post("/create-intent", response_model=SuccessResponse[PaymentIntentResponse])
@limiter.limit(WRITE_LIMIT)
async def create_intent(
    payload: PaymentIntentCreate,
    request: Request,
    user: dict = Depends(get_current_user),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    try:
        intent = await create_payment_intent(
            session_factory,
            request.app.state.payment_gateway,
            user["id"],
            payload.order_id,
            settings.CURRENCY,
        )
    except OrderNotFoundError:
        raise NotFoundException("Order not found")
    except PaymentError as exc:
        raise BadRequestException(str(exc))

    return SuccessResponse(data=PaymentIntentResponse(
        client_secret=intent.client_secret,
        payment_intent_id=intent.id,
    ))

@router.post("/confirm", response_model=SuccessResponse[PaymentResponse])
@limiter.limit(WRITE_LIMIT)
async def confirm(
    payload: PaymentConfirm,
    request: Request,
    user: dict = Depends(get_current_user),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    try:
        payment, created = await confirm_payment(session_factory, user["id"], payload)
    except OrderNotFoundError:
        raise NotFoundException("Order not found")
    except PaymentError as exc:
        raise BadRequestException(str(exc))

    message = "Payment confirmed" if created else "Payment already processed"
    return SuccessResponse(data=PaymentResponse.model_validate(payment), message=message)

@router.get("/{order_id}", response_model=SuccessResponse[PaymentResponse])
async def get_payment(order_id: int, user: dict = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    payment = await session.scalar(
        select(PaymentDB)
        .join(OrderDB, PaymentDB.order_id == OrderDB.id)
        .where(PaymentDB.order_id == order_id, OrderDB.user_id == user["id"])
    )
    if not payment:
        raise NotFoundException("Payment not found")
    return SuccessResponse(data=PaymentResponse.model_validate(payment))
