from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy import (
    String, Integer, Numeric, Text, Date, ForeignKey, DateTime, CheckConstraint,
)

ROLE_ADMIN = "admin"
ROLE_CASHIER = "cashier"
ROLES = (ROLE_ADMIN, ROLE_CASHIER)

ORDER_DINE_IN = "dine-in"
ORDER_TAKEAWAY = "takeaway"
ORDER_TYPES = (ORDER_DINE_IN, ORDER_TAKEAWAY)

PAYMENT_PENDING = "pending"
PAYMENT_COMPLETED = "completed"
PAYMENT_CANCELLED = "cancelled"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_COMPLETED, PAYMENT_CANCELLED)

Money = Numeric(10, 2)


def utcnow() -> datetime:
    # stored naive, always UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default=ROLE_CASHIER, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def display_name(self) -> str:
        return self.first_name or self.username

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "is_active": self.is_active,
        }


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str] = mapped_column(String(50), default="Utensils", nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    menu_items = relationship("MenuItem", back_populates="category", cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "is_active": self.is_active,
        }


class MenuItem(Base):
    __tablename__ = "menu_items"
    __table_args__ = (CheckConstraint("price >= 0", name="ck_menu_items_price"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_available: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    category = relationship("Category", back_populates="menu_items")

    def to_dict(self, with_category: bool = True) -> dict:
        data = {
            "id": self.id,
            "category_id": self.category_id,
            "name": self.name,
            "description": self.description,
            "price": str(self.price),
            "image_url": self.image_url,
            "is_available": self.is_available,
        }
        if with_category and self.category is not None:
            data["category"] = self.category.to_dict()
        return data


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("paid_amount >= total", name="ck_transactions_paid"),
        CheckConstraint(
            "payment_status IN ('pending', 'completed', 'cancelled')",
            name="ck_transactions_payment_status",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    transaction_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    cashier_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    order_type: Mapped[str] = mapped_column(String(20), nullable=False)
    table_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False)
    tax: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    change_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    payment_status: Mapped[str] = mapped_column(String(20), default=PAYMENT_COMPLETED, nullable=False)
    business_date: Mapped[date] = mapped_column(Date, index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    cashier = relationship("User")
    items = relationship(
        "TransactionItem",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionItem.id",
    )

    def to_dict(self, with_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "transaction_number": self.transaction_number,
            "cashier_id": self.cashier_id,
            "order_type": self.order_type,
            "table_number": self.table_number,
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "total": str(self.total),
            "paid_amount": str(self.paid_amount),
            "change_amount": str(self.change_amount),
            "payment_status": self.payment_status,
            "business_date": self.business_date.isoformat(),
            "created_at": self.created_at.isoformat(),
        }
        if self.cashier is not None:
            data["cashier"] = {
                "id": self.cashier.id,
                "username": self.cashier.username,
                "name": self.cashier.display_name,
            }
        if with_items:
            data["items"] = [i.to_dict() for i in self.items]
        return data


class TransactionItem(Base):
    __tablename__ = "transaction_items"
    __table_args__ = (CheckConstraint("quantity >= 1", name="ck_transaction_items_qty"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    transaction_id: Mapped[int] = mapped_column(ForeignKey("transactions.id"), nullable=False)
    menu_item_id: Mapped[int] = mapped_column(ForeignKey("menu_items.id"), index=True, nullable=False)
    # copy of the name at sale time, independent of later catalog edits
    menu_item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Money, nullable=False)

    transaction = relationship("Transaction", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "menu_item_id": self.menu_item_id,
            "name": self.menu_item_name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "total_price": str(self.total_price),
        }


class DailySequence(Base):
    """Last transaction sequence handed out for a business date."""

    __tablename__ = "daily_sequences"

    business_date: Mapped[date] = mapped_column(Date, primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
