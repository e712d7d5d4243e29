"""SQLModel models for POS financial events (sales, purchases, payments, expenses, adjustments).

The POS application owns these tables; the reporting engine only reads them.
Rows are immutable apart from a soft-delete `status` transition.
"""
from typing import Optional
from datetime import date, datetime
from sqlmodel import SQLModel, Field

from kosh_ledger.models.enums import BillType, EntityType, TransactionType


class Sale(SQLModel, table=True):
    """GST sale invoice (or a quote when `is_quote`)."""

    __tablename__ = "sales"

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: Optional[int] = Field(default=None, foreign_key="customers.id", index=True)
    reference_no: str = Field(index=True, unique=True)
    payment_mode: str = Field(default="Cash")
    paid_amount: float = Field(default=0.0)
    total_amount: float = Field(default=0.0)
    note: Optional[str] = None
    status: Optional[str] = Field(default=None, index=True)
    is_reverse_charge: bool = Field(default=False)
    is_quote: bool = Field(default=False)
    # Invoice timestamp; ledger math truncates it to the calendar date
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


class SaleItem(SQLModel, table=True):
    __tablename__ = "sales_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    sale_id: int = Field(foreign_key="sales.id", index=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    rate: float
    quantity: float
    gst_rate: float = Field(default=0.0)
    discount: float = Field(default=0.0)  # percent
    price: float = Field(default=0.0)


class NonGstSale(SQLModel, table=True):
    """Cash-memo sale outside GST invoicing; still moves stock."""

    __tablename__ = "sales_non_gst"

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: Optional[int] = Field(default=None, foreign_key="customers.id", index=True)
    reference_no: str = Field(index=True, unique=True)
    payment_mode: str = Field(default="Cash")
    paid_amount: float = Field(default=0.0)
    total_amount: float = Field(default=0.0)
    note: Optional[str] = None
    status: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


class NonGstSaleItem(SQLModel, table=True):
    __tablename__ = "sales_items_non_gst"

    id: Optional[int] = Field(default=None, primary_key=True)
    sale_id: int = Field(foreign_key="sales_non_gst.id", index=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    rate: float
    quantity: float
    discount: float = Field(default=0.0)
    price: float = Field(default=0.0)


class Purchase(SQLModel, table=True):
    __tablename__ = "purchases"

    id: Optional[int] = Field(default=None, primary_key=True)
    supplier_id: int = Field(foreign_key="suppliers.id", index=True)
    reference_no: str = Field(index=True)
    purchase_date: date = Field(index=True)
    status: str = Field(default="completed")
    note: Optional[str] = None
    total_amount: float = Field(default=0.0)
    paid_amount: float = Field(default=0.0)
    payment_mode: Optional[str] = Field(default="Cash")
    is_reverse_charge: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class PurchaseItem(SQLModel, table=True):
    __tablename__ = "purchase_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    purchase_id: int = Field(foreign_key="purchases.id", index=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    quantity: float
    rate: float
    gst_rate: float = Field(default=0.0)
    discount: float = Field(default=0.0)
    price: float = Field(default=0.0)


class Transaction(SQLModel, table=True):
    """A payment or a credit/debit note, optionally linked to a bill."""

    __tablename__ = "transactions"

    id: Optional[int] = Field(default=None, primary_key=True)
    reference_no: str = Field(index=True, unique=True)
    type: TransactionType = Field(index=True)

    # Original sale or purchase this row settles or adjusts
    bill_id: Optional[int] = Field(default=None, index=True)
    bill_type: Optional[BillType] = None

    entity_id: int = Field(index=True)
    entity_type: EntityType = Field(index=True)

    transaction_date: date = Field(index=True)
    amount: float = Field(default=0.0)
    payment_mode: Optional[str] = None
    status: str = Field(default="completed")
    note: Optional[str] = None
    gst_amount: float = Field(default=0.0)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Expense(SQLModel, table=True):
    __tablename__ = "expenses"

    id: Optional[int] = Field(default=None, primary_key=True)
    expense_date: date = Field(index=True)
    category: str = Field(index=True)  # Rent, Salary, Electricity …
    amount: float
    payment_mode: Optional[str] = Field(default="Cash")
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class StockAdjustment(SQLModel, table=True):
    """Manual stock correction; its effect is always new_quantity - old_quantity."""

    __tablename__ = "stock_adjustments"

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    category: str  # Damaged, Theft, Stocktaking, Expiry …
    old_quantity: float
    new_quantity: float
    reason: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
