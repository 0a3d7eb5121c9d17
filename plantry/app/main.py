from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from plantry.shared.utils import (
    get_db_engine, get_sessionmaker, settings, utcnow, ErrorResponse, HealthResponse
)
from plantry.shared.logging_config import setup_logging, RequestLoggingMiddleware
from plantry.shared.security_config import setup_rate_limiting, SecurityHeadersMiddleware

from plantry.app.models import Base
from plantry.app.payments import SimulatedPaymentGateway
from plantry.app.routers import admin, auth, cart, orders, payment, products

# Setup Logging
logger = setup_logging(settings.SERVICE_NAME)

@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.engine = get_db_engine()
    app.state.sessionmaker = get_sessionmaker(app.state.engine)
    if settings.CREATE_TABLES:
        async with app.state.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    logger.info("Database engine started")
    yield
    await app.state.engine.dispose()

app = FastAPI(title="Plantry", lifespan=lifespan)
app.state.payment_gateway = SimulatedPaymentGateway()

# Security Setup
setup_rate_limiting(app)
app.add_middleware(SecurityHeadersMiddleware)

# Middleware
app.add_middleware(RequestLoggingMiddleware, service_name=settings.SERVICE_NAME)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Error Handlers ---
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    body = ErrorResponse(error=str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    body = ErrorResponse(error="Validation error", details=jsonable_encoder(exc.errors()))
    return JSONResponse(status_code=422, content=body.model_dump())

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    body = ErrorResponse(error=str(exc) or "Internal server error")
    return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))

# --- Routers ---
app.include_router(auth.router)
app.include_router(products.router)
app.include_router(cart.router)
app.include_router(orders.router)
app.include_router(payment.router)
app.include_router(admin.router)

@app.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    db_status = "disconnected"
    try:
        async with request.app.state.sessionmaker() as session:
            await session.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception:
        logger.error("Health Check Failed: database unreachable", exc_info=True)

    if db_status != "connected":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service Unhealthy"
        )

    return HealthResponse(
        service=settings.SERVICE_NAME,
        status="healthy",
        timestamp=utcnow(),
        version="1.0.0",
        database=db_status,
    )

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("plantry.app.main:app", host="0.0.0.0", port=5000)
