"""Pydantic response schemas for ledgers, stock and analytics reports."""
from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel

from kosh_ledger.models.enums import AccountKind, RecordType


class HealthResponse(BaseModel):
    status: str
    db: str
    version: str = "1.0.0"


class FinancialYearResponse(BaseModel):
    date: dt.date
    financial_year: str  # "2025-26"


# ── Ledgers ──────────────────────────────────────────────────────────────────


class LedgerRow(BaseModel):
    id: int
    date: dt.date
    record_type: RecordType
    reference_no: Optional[str]
    debit: float
    credit: float
    note: Optional[str] = None
    payment_mode: Optional[str] = None  # cash/bank books only
    balance: float = 0.0  # running balance after this row


class LedgerReport(BaseModel):
    account_kind: AccountKind
    account_id: Optional[int]
    period_start: date
    period_end: date
    opening_balance: float
    closing_balance: float
    rows: list[LedgerRow]


class DayBookRow(BaseModel):
    id: int
    source: str  # "transaction" or "expense"
    type_label: str  # payment_in, credit_note … or "Expense"
    created_at: datetime
    party_name: str  # expense category for expenses
    payment_mode: Optional[str]
    reference_no: Optional[str]
    description: Optional[str]
    money_in: float
    money_out: float
    balance: float


class DayBookReport(BaseModel):
    date: dt.date
    opening_balance: float
    total_in: float
    total_out: float
    closing_balance: float
    rows: list[DayBookRow]


# ── Stock ────────────────────────────────────────────────────────────────────


class StockSummaryRow(BaseModel):
    product_id: int
    product_name: str
    opening_qty: float
    purchased_qty: float
    sold_qty: float
    adjusted_qty: float  # signed sum of new_quantity - old_quantity
    net_change: float
    closing_qty: float


class StockHistoryEntry(BaseModel):
    date: dt.date
    type: str  # "Purchase", "Sale", "Non-GST Sale", "Adjustment (Damaged)" …
    reference_no: Optional[str]
    quantity: float  # signed


class StockReconciliation(BaseModel):
    total_purchased: float
    total_sold: float
    total_adjusted: float
    expected_quantity: float
    current_quantity: float
    unmarked_added: float  # stock present that no event explains
    unmarked_removed: float  # stock missing that no event explains


class StockHistoryReport(BaseModel):
    product_id: int
    product_name: str
    history: list[StockHistoryEntry]  # newest first
    summary: StockReconciliation


class StockValuation(BaseModel):
    master_valuation: float


# ── Profit & loss ────────────────────────────────────────────────────────────


class ExpenseLine(BaseModel):
    category: str
    total: float


class PnLStatement(BaseModel):
    period_start: date
    period_end: date
    total_revenue: float
    total_cogs: float
    gross_profit: float
    expenses: list[ExpenseLine]
    total_expenses: float
    net_profit: float


# ── Analytics ────────────────────────────────────────────────────────────────


class CustomerSegment(BaseModel):
    id: int
    name: str
    phone: Optional[str]
    join_date: Optional[datetime]
    order_count: int
    total_revenue: float
    last_purchase_date: Optional[datetime]
    days_inactive: int
    aov: int  # average order value, whole rupees
    segment: str  # "Dormant", "VIP", "New", "Regular"


class ProductClass(BaseModel):
    id: int
    name: str
    product_code: Optional[str]
    current_stock: float
    total_revenue: float
    classification: str  # "A", "B", "C"
    share: float  # percent of total revenue


class DeadStockItem(BaseModel):
    id: int
    name: str
    product_code: Optional[str]
    current_stock: float
    unit_cost: Optional[float]
    mrp: Optional[float]
    capital_stuck: float
    last_sold_date: Optional[datetime]


class ReorderItem(BaseModel):
    id: int
    name: str
    product_code: Optional[str]
    current_stock: float
    unit_cost: Optional[float]
    low_stock_threshold: float
    sold_last_x_days: float
    daily_velocity: float
    days_remaining: int
    suggested_order: float
    estimated_cost: float
    status: str  # "critical", "warning", "healthy"
