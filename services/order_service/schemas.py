from datetime import date as calendar_date, datetime
from typing import List, Optional

from pydantic import BaseModel


class ShippingAddress(BaseModel):
    full_name: str
    phone: str
    address: str
    city: str
    state: str
    country: str = "India"
    pincode: str


class PaymentDetails(BaseModel):
    transaction_id: Optional[str] = None
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None


class LineItemCreate(BaseModel):
    product_id: int
    name: str
    unit_price: float
    unit_cost: float # snapshot of the product's cost price at checkout
    quantity: int
    image: Optional[str] = None


class OrderCreate(BaseModel):
    # Money and payment fields come from the checkout flow and are trusted;
    # their presence and sign are checked by the lifecycle, not here.
    user_id: int
    items: List[LineItemCreate] = []
    shipping_address: Optional[ShippingAddress] = None
    subtotal: Optional[float] = None
    shipping_cost: float = 0
    tax: float = 0
    discount: float = 0
    total_amount: Optional[float] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: str
    note: Optional[str] = None
    updated_by: Optional[int] = None


class PaymentStatusUpdate(BaseModel):
    payment_status: str
    details: Optional[PaymentDetails] = None


class ShippingUpdate(BaseModel):
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None


class LineItemResponse(BaseModel):
    product_id: int
    name: str
    unit_price: float
    unit_cost: float
    quantity: int
    image: Optional[str]

    class Config:
        from_attributes = True


class StatusHistoryEntry(BaseModel):
    status: str
    timestamp: datetime
    note: Optional[str]
    updated_by: Optional[int]

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: str
    user_id: int
    items: List[LineItemResponse] = []
    shipping_address: ShippingAddress
    subtotal: float
    shipping_cost: float
    tax: float
    discount: float
    total_amount: float
    total_cost: float
    profit: float
    profit_margin: float
    status: str
    payment_method: str
    payment_status: str
    payment_details: Optional[PaymentDetails]
    tracking_number: Optional[str]
    estimated_delivery: Optional[datetime]
    actual_delivery: Optional[datetime]
    notes: Optional[str]
    status_history: List[StatusHistoryEntry] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderFilter(BaseModel):
    filter_type: Optional[str] = None
    date: Optional[calendar_date] = None
    week: Optional[int] = None
    month: Optional[int] = None
    year: Optional[int] = None


class OrderFilterResponse(BaseModel):
    orders: List[OrderResponse]
    count: int
    filter: OrderFilter


class SalesTotals(BaseModel):
    orders: int
    revenue: float
    cost: float
    profit: float


class SalesTrendPoint(BaseModel):
    year: int
    month: int
    sales: float
    orders: int


class RecentOrder(BaseModel):
    order_number: str
    total_amount: float
    status: str
    payment_status: str
    created_at: datetime

    class Config:
        from_attributes = True


class SalesReport(BaseModel):
    overview: SalesTotals
    monthly: SalesTotals
    weekly: SalesTotals
    sales_trend: List[SalesTrendPoint]
    recent_orders: List[RecentOrder]
