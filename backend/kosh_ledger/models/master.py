"""SQLModel models for POS master data (shop, customers, suppliers, products)."""
from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field


class Shop(SQLModel, table=True):
    """Single-row shop settings; GSTIN and state drive GST reporting."""

    __tablename__ = "shop"

    id: Optional[int] = Field(default=None, primary_key=True)
    shop_name: str
    state: Optional[str] = None
    gstin: Optional[str] = Field(default=None, index=True)
    gst_registration_type: Optional[str] = None  # regular, composition, unregistered
    # Line rates already include GST when True
    is_inclusive: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Customer(SQLModel, table=True):
    __tablename__ = "customers"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    phone: Optional[str] = None
    state: Optional[str] = None
    gst_no: Optional[str] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Supplier(SQLModel, table=True):
    __tablename__ = "suppliers"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    phone: Optional[str] = None
    state: Optional[str] = None
    gst_number: Optional[str] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Product(SQLModel, table=True):
    """Product master. `quantity` is the only authoritative stock figure."""

    __tablename__ = "products"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    product_code: Optional[str] = Field(default=None, index=True)
    hsn: Optional[str] = None
    gst_rate: float = Field(default=0.0)
    quantity: float = Field(default=0.0)
    mrp: Optional[float] = None
    mop: Optional[float] = None  # minimum operating price
    average_purchase_price: Optional[float] = None
    low_stock_threshold: float = Field(default=0.0)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
