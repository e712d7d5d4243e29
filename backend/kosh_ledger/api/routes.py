"""
REST API routes for the ledger and tax reporting engine.

Endpoints:
  GET  /api/health
  GET  /api/financial-year
  GET  /api/accounting/ledger/customer/{customer_id}
  GET  /api/accounting/ledger/supplier/{supplier_id}
  GET  /api/accounting/book/{mode}
  GET  /api/accounting/daybook
  GET  /api/accounting/stock-summary
  GET  /api/accounting/stock-history/{product_id}
  GET  /api/accounting/stock-valuation
  GET  /api/accounting/pnl
  GET  /api/reports/gstr1
  GET  /api/analytics/customers
  GET  /api/analytics/abc
  GET  /api/analytics/dead-stock
  GET  /api/analytics/reorder

Ledger and stock endpoints default to the current calendar month when no
dates are given. Engine errors are translated to HTTP statuses in main.py.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from loguru import logger
from sqlmodel import Session, select

from kosh_ledger.core.config import settings
from kosh_ledger.core.database import get_session
from kosh_ledger.engine import analytics
from kosh_ledger.engine.adapters import EventStore
from kosh_ledger.engine.gstr import Gstr1Builder
from kosh_ledger.engine.ledger import LedgerMerger
from kosh_ledger.engine.period import Period, financial_year, month_to_date_range, resolve_period
from kosh_ledger.engine.statements import profit_and_loss
from kosh_ledger.engine.stock import StockReconciler
from kosh_ledger.models.enums import PaymentBucket, PeriodType
from kosh_ledger.models.master import Shop
from kosh_ledger.schemas.gstr import Gstr1Report
from kosh_ledger.schemas.responses import (
    CustomerSegment,
    DayBookReport,
    DeadStockItem,
    FinancialYearResponse,
    HealthResponse,
    LedgerReport,
    PnLStatement,
    ProductClass,
    ReorderItem,
    StockHistoryReport,
    StockSummaryRow,
    StockValuation,
)

router = APIRouter(prefix="/api")


# ── Helpers ───────────────────────────────────────────────────────────────────


def get_store(session: Session = Depends(get_session)) -> EventStore:
    """FastAPI dependency: an EventStore bound to the request's session."""
    return EventStore(session, timeout_seconds=settings.REPORT_TIMEOUT_SECONDS)


def _date_range(date_from: Optional[date], date_to: Optional[date]) -> Period:
    """Explicit range, with missing ends taken from the current month."""
    current = month_to_date_range(date.today())
    return resolve_period(date_from or current.start, date_to or current.end)


# ── Health ────────────────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
def health(session: Session = Depends(get_session)):
    try:
        session.exec(select(Shop).limit(1))
        db_status = "ok"
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        db_status = f"error: {e}"
    return HealthResponse(status="ok", db=db_status)


@router.get("/financial-year", response_model=FinancialYearResponse)
def get_financial_year(on: Optional[date] = Query(default=None, description="Defaults to today")):
    on = on or date.today()
    return FinancialYearResponse(date=on, financial_year=financial_year(on))


# ── Ledgers ───────────────────────────────────────────────────────────────────


@router.get("/accounting/ledger/customer/{customer_id}", response_model=LedgerReport)
def customer_ledger(
    customer_id: int,
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    store: EventStore = Depends(get_store),
):
    period = _date_range(date_from, date_to)
    with store.budget():
        return LedgerMerger(store).customer_ledger(customer_id, period.start, period.end)


@router.get("/accounting/ledger/supplier/{supplier_id}", response_model=LedgerReport)
def supplier_ledger(
    supplier_id: int,
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    store: EventStore = Depends(get_store),
):
    period = _date_range(date_from, date_to)
    with store.budget():
        return LedgerMerger(store).supplier_ledger(supplier_id, period.start, period.end)


@router.get("/accounting/book/{mode}", response_model=LedgerReport)
def cash_bank_book(
    mode: PaymentBucket,
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    store: EventStore = Depends(get_store),
):
    """Cash book (`cash`) or bank book (`bank`: UPI, card and transfers)."""
    period = _date_range(date_from, date_to)
    with store.budget():
        return LedgerMerger(store).cash_bank_book(mode, period.start, period.end)


@router.get("/accounting/daybook", response_model=DayBookReport)
def day_book(
    on: Optional[date] = Query(default=None, alias="date", description="Defaults to today"),
    store: EventStore = Depends(get_store),
):
    """All money in and out on one day, with the balance carried in."""
    with store.budget():
        return LedgerMerger(store).day_book(on or date.today())


# ── Stock ─────────────────────────────────────────────────────────────────────


@router.get("/accounting/stock-summary", response_model=list[StockSummaryRow])
def stock_summary(
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    product_id: Optional[int] = Query(default=None),
    store: EventStore = Depends(get_store),
):
    period = _date_range(date_from, date_to)
    with store.budget():
        return StockReconciler(store).stock_summary(period.start, period.end, product_id)


@router.get("/accounting/stock-history/{product_id}", response_model=StockHistoryReport)
def stock_history(product_id: int, store: EventStore = Depends(get_store)):
    with store.budget():
        return StockReconciler(store).stock_history(product_id)


@router.get("/accounting/stock-valuation", response_model=StockValuation)
def stock_valuation(store: EventStore = Depends(get_store)):
    with store.budget():
        return StockReconciler(store).stock_valuation()


# ── Statements & GST ──────────────────────────────────────────────────────────


@router.get("/accounting/pnl", response_model=PnLStatement)
def pnl(
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    period_type: Optional[PeriodType] = Query(default=None),
    year: Optional[int] = Query(default=None, description="Financial year start, e.g. 2024 for 2024-25"),
    month: Optional[int] = Query(default=None),
    quarter: Optional[int] = Query(default=None),
    store: EventStore = Depends(get_store),
):
    if period_type is not None:
        period = resolve_period(period_type=period_type, year=year, month=month, quarter=quarter)
    else:
        period = _date_range(date_from, date_to)
    with store.budget():
        return profit_and_loss(store, period)


@router.get("/reports/gstr1", response_model=Gstr1Report)
def gstr1(
    period_type: PeriodType = Query(...),
    year: int = Query(..., description="Financial year start, e.g. 2024 for 2024-25"),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    quarter: Optional[int] = Query(default=None, ge=1, le=4),
    store: EventStore = Depends(get_store),
):
    return Gstr1Builder(store).build(period_type, year, month=month, quarter=quarter)


# ── Analytics ─────────────────────────────────────────────────────────────────


@router.get("/analytics/customers", response_model=list[CustomerSegment])
def customer_analytics(
    dormant_days: int = Query(default=settings.DORMANT_DAYS, ge=1),
    store: EventStore = Depends(get_store),
):
    with store.budget():
        return analytics.customer_segments(store, date.today(), dormant_days=dormant_days)


@router.get("/analytics/abc", response_model=list[ProductClass])
def abc_analysis(
    days: int = Query(default=365, ge=1),
    store: EventStore = Depends(get_store),
):
    with store.budget():
        return analytics.abc_analysis(store, date.today(), days=days)


@router.get("/analytics/dead-stock", response_model=list[DeadStockItem])
def dead_stock(
    days: int = Query(default=180, ge=1),
    store: EventStore = Depends(get_store),
):
    with store.budget():
        return analytics.dead_stock(store, date.today(), days=days)


@router.get("/analytics/reorder", response_model=list[ReorderItem])
def reorder(
    lookback_days: int = Query(default=30, ge=1),
    target_days: int = Query(default=30, ge=1),
    store: EventStore = Depends(get_store),
):
    with store.budget():
        return analytics.reorder_recommendations(
            store, date.today(), lookback_days=lookback_days, target_days=target_days
        )
