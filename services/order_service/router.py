from datetime import date as calendar_date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security.dependencies import verify_internal_api_key

from .schemas import (
    OrderCreate,
    OrderFilter,
    OrderFilterResponse,
    OrderResponse,
    OrderStatusUpdate,
    PaymentStatusUpdate,
    SalesReport,
    ShippingUpdate,
)
from .service import OrderService

# THIS PROTECTS THE ENTIRE SERVICE
router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "order", "status": "running"}


@router.post("/", response_model=OrderResponse, status_code=201)
async def create_order(order: OrderCreate, db: AsyncSession = Depends(get_db)):
    return await OrderService.create_order(db, order)


@router.get("/", response_model=List[OrderResponse])
async def list_orders(
    user_id: Optional[int] = Query(default=None),
    status: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.list_orders(db, user_id=user_id, status=status, limit=limit, offset=offset)


@router.get("/filter", response_model=OrderFilterResponse)
async def filter_orders(
    filter_type: Optional[str] = Query(default=None),
    date: Optional[calendar_date] = Query(default=None),
    week: Optional[int] = Query(default=None, ge=1, le=53),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    year: Optional[int] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    criteria = OrderFilter(filter_type=filter_type, date=date, week=week, month=month, year=year)
    orders = await OrderService.filter_orders(db, criteria)
    return OrderFilterResponse(
        orders=[OrderResponse.model_validate(o) for o in orders],
        count=len(orders),
        filter=criteria,
    )


@router.get("/reports", response_model=SalesReport)
async def sales_report(db: AsyncSession = Depends(get_db)):
    return await OrderService.sales_report(db)


@router.get("/number/{order_number}", response_model=OrderResponse)
async def get_order_by_number(order_number: str, db: AsyncSession = Depends(get_db)):
    return await OrderService.get_order_by_number(db, order_number)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: int, db: AsyncSession = Depends(get_db)):
    return await OrderService.get_order(db, order_id)


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_status(order_id: int, payload: OrderStatusUpdate, db: AsyncSession = Depends(get_db)):
    return await OrderService.update_status(
        db, order_id, payload.status, note=payload.note, updated_by=payload.updated_by
    )


@router.patch("/{order_id}/payment", response_model=OrderResponse)
async def update_payment(order_id: int, payload: PaymentStatusUpdate, db: AsyncSession = Depends(get_db)):
    return await OrderService.update_payment_status(db, order_id, payload.payment_status, payload.details)


@router.patch("/{order_id}/shipping", response_model=OrderResponse)
async def update_shipping(order_id: int, payload: ShippingUpdate, db: AsyncSession = Depends(get_db)):
    return await OrderService.update_shipping(db, order_id, payload)


# THIS IS REQUIRED FOR THE CHECKOUT SAGA ROLLBACK
@router.patch("/{order_id}/cancel")
async def cancel_order(order_id: int, db: AsyncSession = Depends(get_db)):
    order = await OrderService.cancel_order(db, order_id)
    return {"message": "Order cancelled", "order_number": order.order_number, "status": order.status}


@router.patch("/{order_id}/refund", response_model=OrderResponse)
async def refund_order(order_id: int, db: AsyncSession = Depends(get_db)):
    return await OrderService.refund_order(db, order_id)
