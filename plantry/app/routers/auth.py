from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from plantry.shared.utils import (
    SuccessResponse, BadRequestException, NotFoundException, UnauthorizedException,
    create_access_token, get_password_hash, verify_password
)
from plantry.shared.security_config import limiter, LOGIN_LIMIT, WRITE_LIMIT
from plantry.app.dependencies import get_current_user, get_session
from plantry.app.models import UserDB
from plantry.app.schemas import UserRegister, UserLogin, Token, UserResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.post("/register", response_model=SuccessResponse[UserResponse], status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
async def register(user: UserRegister, request: Request, session: AsyncSession = Depends(get_session)):
    email = user.email.lower()
    existing_user = await session.scalar(select(UserDB).where(UserDB.email == email))
    if existing_user:
        raise BadRequestException("Email already registered")

    user_db = UserDB(
        email=email,
        password_hash=get_password_hash(user.password),
        full_name=user.full_name,
        phone=user.phone,
        role="customer",
    )
    session.add(user_db)
    try:
        await session.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        await session.rollback()
        raise BadRequestException("Email already registered")

    return SuccessResponse(data=UserResponse.model_validate(user_db), message="User registered successfully")

@router.post("/login", response_model=SuccessResponse[Token])
@limiter.limit(LOGIN_LIMIT)
async def login(user_credentials: UserLogin, request: Request, session: AsyncSession = Depends(get_session)):
    user = await session.scalar(select(UserDB).where(UserDB.email == user_credentials.email.lower()))
    if not user or not verify_password(user_credentials.password, user.password_hash):
        raise UnauthorizedException("Incorrect email or password")

    access_token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return SuccessResponse(data=Token(access_token=access_token, token_type="bearer"))

@router.get("/me", response_model=SuccessResponse[UserResponse])
async def me(user: dict = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    user_db = await session.get(UserDB, user["id"])
    if not user_db:
        raise NotFoundException("User not found")
    return SuccessResponse(data=UserResponse.model_validate(user_db))
