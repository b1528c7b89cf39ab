"""
Table declarations for the customer database.

The schema is owned by the database itself; these models only describe the
columns the API reads and writes so that statements are built with SQLAlchemy
Core instead of string formatting. Tests use them to create a SQLite schema.
"""
from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, Unicode
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Customer(Base):
    __tablename__ = "customer"

    # "row" is a reserved word on SQL Server; always quote it.
    row: Mapped[int] = mapped_column("row", Integer, primary_key=True, autoincrement=True, quote=True)
    id: Mapped[str] = mapped_column(Unicode(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Unicode(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(Unicode(50), nullable=True)
    e_mail: Mapped[str | None] = mapped_column(Unicode(320), nullable=True, unique=True)
    company_name: Mapped[str | None] = mapped_column(Unicode(200), nullable=True)


class CustomerUser(Base):
    """Login accounts attached to a customer (by surrogate key)."""

    __tablename__ = "customer_user"

    row: Mapped[int] = mapped_column("row", Integer, primary_key=True, autoincrement=True, quote=True)
    customer_row: Mapped[int] = mapped_column(ForeignKey("customer.row"), nullable=False)
    user_name: Mapped[str | None] = mapped_column(Unicode(200), nullable=True)


class OrderRecord(Base):
    """Orders placed for a customer (by business id)."""

    __tablename__ = "order_recored"

    row: Mapped[int] = mapped_column("row", Integer, primary_key=True, autoincrement=True, quote=True)
    customer_id: Mapped[str] = mapped_column(ForeignKey("customer.id"), nullable=False)
    description: Mapped[str | None] = mapped_column(Unicode(500), nullable=True)


customer_table = Customer.__table__
customer_user_table = CustomerUser.__table__
order_record_table = OrderRecord.__table__
