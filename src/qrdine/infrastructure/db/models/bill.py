from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qrdine.infrastructure.db.models.menu import Base


class BillModel(Base):
    __tablename__ = "bills"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    restaurant_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
    )
    table_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("tables.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    tax_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    grand_total_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    closed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    closed_by: Mapped[str | None] = mapped_column(String(50), nullable=True)

    lines: Mapped[list["BillLineModel"]] = relationship(
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="BillLineModel.position",
    )
    orders: Mapped[list["BillOrderModel"]] = relationship(
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="BillOrderModel.position",
    )

    __table_args__ = (
        Index("ix_bills_restaurant_closed_at", "restaurant_id", "closed_at"),
        Index("ix_bills_table_closed_at", "restaurant_id", "table_id", "closed_at"),
    )


class BillLineModel(Base):
    __tablename__ = "bill_lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bill_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("bills.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    item_id: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    line_total_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    bill: Mapped[BillModel] = relationship(back_populates="lines")


class BillOrderModel(Base):
    __tablename__ = "bill_orders"

    bill_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("bills.id", ondelete="CASCADE"),
        primary_key=True,
    )
    order_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    bill: Mapped[BillModel] = relationship(back_populates="orders")
