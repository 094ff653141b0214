from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from shared.config.database import engine, Base
from shared.observability import setup_observability
from .errors import (
    DuplicateOrderNumber,
    InvalidLineItem,
    InvalidStatusTransition,
    MalformedOrder,
    OrderError,
    OrderNotFound,
)
from .router import router, public_router
from .models import Order # Import to register with Base

order_app = FastAPI(title="Order Service", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(order_app, "order_service")

# --- ERROR MAPPING ---
ERROR_STATUS = {
    DuplicateOrderNumber: 503,
    InvalidLineItem: 422,
    MalformedOrder: 422,
    InvalidStatusTransition: 409,
    OrderNotFound: 404,
}

async def order_error_handler(request: Request, exc: OrderError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": exc.code, "retryable": exc.retryable},
        headers=headers,
    )

order_app.add_exception_handler(OrderError, order_error_handler)

order_app.include_router(public_router)
order_app.include_router(router)

@order_app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        if conn.dialect.name == "postgresql":
            await conn.execute(text("CREATE SCHEMA IF NOT EXISTS order_schema"))
        await conn.run_sync(Base.metadata.create_all)
