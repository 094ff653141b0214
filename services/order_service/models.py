from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship, validates

from shared.config.database import Base

from .financials import profit, profit_margin


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"
    # We use a separate schema to simulate microservice isolation
    __table_args__ = (
        UniqueConstraint("order_number", name="uq_orders_order_number"),
        Index("ix_orders_user_created", "user_id", "created_at"),
        Index("ix_orders_status_created", "status", "created_at"),
        Index("ix_orders_created", "created_at"),
        Index("ix_orders_payment_status", "payment_status"),
        {"schema": "order_schema"},
    )

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(32), nullable=False) # SH + YYYYMMDD + daily sequence
    user_id = Column(Integer, nullable=False)

    shipping_address = Column(JSON, nullable=False)

    subtotal = Column(Float, nullable=False)
    shipping_cost = Column(Float, nullable=False, default=0)
    tax = Column(Float, nullable=False, default=0)
    discount = Column(Float, nullable=False, default=0)
    total_amount = Column(Float, nullable=False) # charged to the customer
    total_cost = Column(Float, nullable=False) # recomputed from items on every flush

    status = Column(String(20), nullable=False, default="pending")
    payment_method = Column(String(20), nullable=False)
    payment_status = Column(String(20), nullable=False, default="pending")
    payment_details = Column(JSON, nullable=True)

    tracking_number = Column(String(64), nullable=True)
    estimated_delivery = Column(DateTime(timezone=True), nullable=True)
    actual_delivery = Column(DateTime(timezone=True), nullable=True)
    notes = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
    )
    status_history = relationship(
        "OrderStatusEvent",
        back_populates="order",
        lazy="selectin",
        order_by="OrderStatusEvent.id",
        cascade="all, delete-orphan",
    )

    @validates("order_number")
    def _freeze_order_number(self, key, value):
        if self.order_number and value != self.order_number:
            raise ValueError(f"Order number {self.order_number} cannot be reassigned")
        return value

    def set_status(self, status: str, note: str | None = None, updated_by: int | None = None):
        """Change status; the note and actor land on the history entry written at flush."""
        if status == self.status:
            return
        self.status = status
        self._transition_note = note
        self._transition_actor = updated_by

    @property
    def profit(self) -> float:
        return profit(self)

    @property
    def profit_margin(self) -> float:
        return profit_margin(self)


class OrderItem(Base):
    """Price and cost snapshot taken at checkout, independent of the live product."""

    __tablename__ = "order_items"
    __table_args__ = {"schema": "order_schema"}

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("order_schema.orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    unit_price = Column(Float, nullable=False)
    unit_cost = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False)
    image = Column(String(1024), nullable=True)

    order = relationship("Order", back_populates="items")


class OrderStatusEvent(Base):
    __tablename__ = "order_status_history"
    __table_args__ = {"schema": "order_schema"}

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("order_schema.orders.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    note = Column(String(500), nullable=True)
    updated_by = Column(Integer, nullable=True)

    order = relationship("Order", back_populates="status_history")


class OrderDaySequence(Base):
    """Last order sequence handed out for a calendar day (YYYYMMDD)."""

    __tablename__ = "order_day_sequences"
    __table_args__ = {"schema": "order_schema"}

    day = Column(String(8), primary_key=True)
    last_value = Column(Integer, nullable=False)
