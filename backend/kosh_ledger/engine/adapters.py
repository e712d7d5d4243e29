"""
Event Source Adapters: read-only typed queries over the POS store.

Every engine component receives an `EventStore` built around a SQLModel
session instead of reaching for a global handle, so tests can hand it an
in-memory database.

Filtering rules applied by every query unless stated otherwise:
  - sales:         status != cancelled (NULL counts as active), quotes excluded
  - non-GST sales: status != cancelled
  - purchases:     status != cancelled
  - transactions:  status != deleted
Dates are compared at calendar-date granularity through `DateColumn`.
"""
from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from datetime import time as dtime
from typing import Any, Iterable, NamedTuple, Optional

from loguru import logger
from sqlalchemy import and_, case, or_
from sqlmodel import Session, col, func, select

from kosh_ledger.core.errors import ReportTimeoutError
from kosh_ledger.models.enums import (
    CANCELLED,
    DELETED,
    BillType,
    EntityType,
    PaymentBucket,
    TransactionType,
)
from kosh_ledger.models.master import Customer, Product, Shop, Supplier
from kosh_ledger.models.transaction import (
    Expense,
    NonGstSale,
    NonGstSaleItem,
    Purchase,
    PurchaseItem,
    Sale,
    SaleItem,
    StockAdjustment,
    Transaction,
)


# ── Typed date filters ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class DateColumn:
    """
    Date-truncated comparisons against one column.

    Timestamp columns are compared against midnight bounds so that a whole
    calendar day is matched without applying SQL functions to the column.
    """

    column: Any
    is_timestamp: bool = False

    def _bound(self, d: date):
        return datetime.combine(d, dtime.min) if self.is_timestamp else d

    def before(self, d: date):
        return self.column < self._bound(d)

    def on_or_after(self, d: date):
        return self.column >= self._bound(d)

    def on_or_before(self, d: date):
        if self.is_timestamp:
            return self.column < self._bound(d + timedelta(days=1))
        return self.column <= d

    def between(self, start: date, end: date):
        return and_(self.on_or_after(start), self.on_or_before(end))

    def window(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        before: Optional[date] = None,
    ) -> list:
        """Conditions for an optional [start, end] range and/or a strict upper cutoff."""
        conds = []
        if start is not None:
            conds.append(self.on_or_after(start))
        if end is not None:
            conds.append(self.on_or_before(end))
        if before is not None:
            conds.append(self.before(before))
        return conds


# Party shown for a transaction whose customer or supplier no longer exists
GENERAL_PARTY = "General"

SALE_DATE = DateColumn(Sale.created_at, is_timestamp=True)
NON_GST_SALE_DATE = DateColumn(NonGstSale.created_at, is_timestamp=True)
PURCHASE_DATE = DateColumn(Purchase.purchase_date)
TRANSACTION_DATE = DateColumn(Transaction.transaction_date)
EXPENSE_DATE = DateColumn(Expense.expense_date)
ADJUSTMENT_DATE = DateColumn(StockAdjustment.created_at, is_timestamp=True)


def _sale_active():
    return and_(
        or_(col(Sale.status).is_(None), Sale.status != CANCELLED),
        Sale.is_quote == False,  # noqa: E712
    )


def _non_gst_sale_active():
    return or_(col(NonGstSale.status).is_(None), NonGstSale.status != CANCELLED)


def _purchase_active():
    return Purchase.status != CANCELLED


def _transaction_active():
    return Transaction.status != DELETED


def _mode_in(column, bucket: PaymentBucket):
    return func.lower(column).in_(bucket.modes)


# ── Row shapes returned by the multi-table feeds ─────────────────────────────


class Movement(NamedTuple):
    """Quantity moved in the report period and since its first day."""

    period: float
    since_start: float


class StockEvent(NamedTuple):
    event_date: date
    created_at: datetime
    kind: str
    reference_no: Optional[str]
    quantity: float  # signed effect on stock


class SaleLine(NamedTuple):
    sale: Sale
    item: SaleItem
    product: Optional[Product]
    customer: Optional[Customer]


class NoteRow(NamedTuple):
    note: Transaction
    party_gstin: Optional[str]
    party_state: Optional[str]
    original_invoice: Optional[Sale]


class PartyTransaction(NamedTuple):
    txn: Transaction
    party_name: str


class CustomerSales(NamedTuple):
    order_count: int
    total_revenue: float
    last_purchase: Optional[datetime]


# ── Store ────────────────────────────────────────────────────────────────────


class EventStore:
    """Read-only access to the financial event streams."""

    def __init__(self, session: Session, timeout_seconds: Optional[float] = None):
        self.session = session
        self.timeout_seconds = timeout_seconds
        self._budget: Optional[float] = None
        self._started: Optional[float] = None

    # -- execution budget --------------------------------------------------

    @contextmanager
    def budget(self, seconds: Optional[float] = None):
        """
        Bound the wall-clock time of the report built inside the block.

        Queries check the deadline on their own. Builders call `check_budget`
        between their in-memory phases.
        """
        seconds = self.timeout_seconds if seconds is None else seconds
        if not seconds or self._budget is not None:
            yield self
            return
        self._budget, self._started = seconds, time.monotonic()
        try:
            yield self
        finally:
            self._budget, self._started = None, None

    def check_budget(self) -> None:
        """Raise ReportTimeoutError once the active budget is spent."""
        if self._budget is None:
            return
        elapsed = time.monotonic() - self._started
        if elapsed > self._budget:
            logger.warning(f"Report budget of {self._budget}s exceeded ({elapsed:.2f}s)")
            raise ReportTimeoutError(self._budget, elapsed)

    def _all(self, stmt) -> list:
        self.check_budget()
        rows = self.session.exec(stmt).all()
        self.check_budget()
        return list(rows)

    def _scalar(self, stmt) -> float:
        self.check_budget()
        value = self.session.exec(stmt).one()
        self.check_budget()
        return float(value or 0.0)

    # -- master lookups ----------------------------------------------------

    def shop(self) -> Optional[Shop]:
        return self.session.exec(select(Shop).order_by(Shop.id).limit(1)).first()

    def customer(self, customer_id: int) -> Optional[Customer]:
        return self.session.get(Customer, customer_id)

    def supplier(self, supplier_id: int) -> Optional[Supplier]:
        return self.session.get(Supplier, supplier_id)

    def product(self, product_id: int) -> Optional[Product]:
        return self.session.get(Product, product_id)

    def customers(self) -> list[Customer]:
        return self._all(select(Customer).order_by(Customer.id))

    def active_products(self) -> list[Product]:
        return self._all(
            select(Product).where(Product.is_active == True).order_by(Product.id)  # noqa: E712
        )

    # -- event records -----------------------------------------------------

    def sales(
        self,
        customer_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[Sale]:
        stmt = select(Sale).where(_sale_active(), *SALE_DATE.window(start, end))
        if customer_id is not None:
            stmt = stmt.where(Sale.customer_id == customer_id)
        return self._all(stmt.order_by(Sale.created_at, Sale.id))

    def purchases(
        self,
        supplier_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[Purchase]:
        stmt = select(Purchase).where(_purchase_active(), *PURCHASE_DATE.window(start, end))
        if supplier_id is not None:
            stmt = stmt.where(Purchase.supplier_id == supplier_id)
        return self._all(
            stmt.order_by(Purchase.purchase_date, Purchase.created_at, Purchase.id)
        )

    def transactions(
        self,
        types: Iterable[TransactionType],
        entity_type: Optional[EntityType] = None,
        entity_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        bucket: Optional[PaymentBucket] = None,
    ) -> list[Transaction]:
        stmt = select(Transaction).where(
            col(Transaction.type).in_(list(types)),
            _transaction_active(),
            *TRANSACTION_DATE.window(start, end),
        )
        if entity_type is not None:
            stmt = stmt.where(Transaction.entity_type == entity_type)
        if entity_id is not None:
            stmt = stmt.where(Transaction.entity_id == entity_id)
        if bucket is not None:
            stmt = stmt.where(_mode_in(Transaction.payment_mode, bucket))
        return self._all(
            stmt.order_by(Transaction.transaction_date, Transaction.created_at, Transaction.id)
        )

    def payments_against(
        self,
        bill_type: BillType,
        bill_ids: Iterable[int],
        transaction_type: TransactionType,
    ) -> list[Transaction]:
        """Active payments of one type linked to any of the given bills."""
        ids = list(bill_ids)
        if not ids:
            return []
        stmt = select(Transaction).where(
            Transaction.bill_type == bill_type,
            col(Transaction.bill_id).in_(ids),
            Transaction.type == transaction_type,
            _transaction_active(),
        )
        return self._all(stmt.order_by(Transaction.id))

    def expenses(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        bucket: Optional[PaymentBucket] = None,
    ) -> list[Expense]:
        stmt = select(Expense).where(*EXPENSE_DATE.window(start, end))
        if bucket is not None:
            stmt = stmt.where(_mode_in(Expense.payment_mode, bucket))
        return self._all(stmt.order_by(Expense.expense_date, Expense.created_at, Expense.id))

    # -- aggregates (absent rows sum to zero) ------------------------------

    def sales_total(
        self,
        customer_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        before: Optional[date] = None,
    ) -> float:
        stmt = select(func.coalesce(func.sum(Sale.total_amount), 0.0)).where(
            _sale_active(), *SALE_DATE.window(start, end, before)
        )
        if customer_id is not None:
            stmt = stmt.where(Sale.customer_id == customer_id)
        return self._scalar(stmt)

    def purchases_total(
        self,
        supplier_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        before: Optional[date] = None,
    ) -> float:
        stmt = select(func.coalesce(func.sum(Purchase.total_amount), 0.0)).where(
            _purchase_active(), *PURCHASE_DATE.window(start, end, before)
        )
        if supplier_id is not None:
            stmt = stmt.where(Purchase.supplier_id == supplier_id)
        return self._scalar(stmt)

    def transactions_total(
        self,
        types: Iterable[TransactionType],
        entity_type: Optional[EntityType] = None,
        entity_id: Optional[int] = None,
        bucket: Optional[PaymentBucket] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        before: Optional[date] = None,
    ) -> float:
        stmt = select(func.coalesce(func.sum(Transaction.amount), 0.0)).where(
            col(Transaction.type).in_(list(types)),
            _transaction_active(),
            *TRANSACTION_DATE.window(start, end, before),
        )
        if entity_type is not None:
            stmt = stmt.where(Transaction.entity_type == entity_type)
        if entity_id is not None:
            stmt = stmt.where(Transaction.entity_id == entity_id)
        if bucket is not None:
            stmt = stmt.where(_mode_in(Transaction.payment_mode, bucket))
        return self._scalar(stmt)

    def expenses_total(
        self,
        bucket: Optional[PaymentBucket] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        before: Optional[date] = None,
    ) -> float:
        stmt = select(func.coalesce(func.sum(Expense.amount), 0.0)).where(
            *EXPENSE_DATE.window(start, end, before)
        )
        if bucket is not None:
            stmt = stmt.where(_mode_in(Expense.payment_mode, bucket))
        return self._scalar(stmt)

    def expenses_by_category(self, start: date, end: date) -> list[tuple[str, float]]:
        stmt = (
            select(Expense.category, func.sum(Expense.amount))
            .where(EXPENSE_DATE.between(start, end))
            .group_by(Expense.category)
            .order_by(Expense.category)
        )
        return [(category, float(total or 0.0)) for category, total in self._all(stmt)]

    def cost_of_goods_sold(self, start: date, end: date) -> float:
        unit_cost = func.coalesce(Product.average_purchase_price, Product.mop, 0.0)
        stmt = (
            select(func.coalesce(func.sum(SaleItem.quantity * unit_cost), 0.0))
            .join(Sale, SaleItem.sale_id == Sale.id)
            .join(Product, SaleItem.product_id == Product.id)
            .where(_sale_active(), SALE_DATE.between(start, end))
        )
        return self._scalar(stmt)

    def stock_value(self) -> float:
        unit_cost = func.coalesce(Product.average_purchase_price, Product.mop, 0.0)
        stmt = select(func.coalesce(func.sum(Product.quantity * unit_cost), 0.0)).where(
            Product.quantity > 0, Product.is_active == True  # noqa: E712
        )
        return self._scalar(stmt)

    # -- stock movements ---------------------------------------------------

    def _movements(self, qty, date_col: DateColumn, stmt_from, start, end, product_col, product_id):
        period = func.coalesce(func.sum(case((date_col.between(start, end), qty), else_=0.0)), 0.0)
        since = func.coalesce(func.sum(case((date_col.on_or_after(start), qty), else_=0.0)), 0.0)
        stmt = stmt_from(select(product_col, period, since)).group_by(product_col)
        if product_id is not None:
            stmt = stmt.where(product_col == product_id)
        return {
            pid: Movement(float(p or 0.0), float(s or 0.0)) for pid, p, s in self._all(stmt)
        }

    def purchase_movements(
        self, start: date, end: date, product_id: Optional[int] = None
    ) -> dict[int, Movement]:
        return self._movements(
            PurchaseItem.quantity,
            PURCHASE_DATE,
            lambda s: s.join(Purchase, PurchaseItem.purchase_id == Purchase.id).where(
                _purchase_active()
            ),
            start,
            end,
            PurchaseItem.product_id,
            product_id,
        )

    def sale_movements(
        self, start: date, end: date, product_id: Optional[int] = None
    ) -> dict[int, Movement]:
        """Quantities sold through GST invoices and non-GST memos combined."""
        gst = self._movements(
            SaleItem.quantity,
            SALE_DATE,
            lambda s: s.join(Sale, SaleItem.sale_id == Sale.id).where(_sale_active()),
            start,
            end,
            SaleItem.product_id,
            product_id,
        )
        non_gst = self._movements(
            NonGstSaleItem.quantity,
            NON_GST_SALE_DATE,
            lambda s: s.join(NonGstSale, NonGstSaleItem.sale_id == NonGstSale.id).where(
                _non_gst_sale_active()
            ),
            start,
            end,
            NonGstSaleItem.product_id,
            product_id,
        )
        merged = dict(gst)
        for pid, m in non_gst.items():
            prev = merged.get(pid, Movement(0.0, 0.0))
            merged[pid] = Movement(prev.period + m.period, prev.since_start + m.since_start)
        return merged

    def adjustment_movements(
        self, start: date, end: date, product_id: Optional[int] = None
    ) -> dict[int, Movement]:
        return self._movements(
            StockAdjustment.new_quantity - StockAdjustment.old_quantity,
            ADJUSTMENT_DATE,
            lambda s: s,
            start,
            end,
            StockAdjustment.product_id,
            product_id,
        )

    def stock_events(self, product_id: int) -> list[StockEvent]:
        """Every recorded movement of one product, oldest first."""
        events: list[StockEvent] = []
        purchases = select(Purchase, PurchaseItem).join(
            PurchaseItem, PurchaseItem.purchase_id == Purchase.id
        ).where(PurchaseItem.product_id == product_id, _purchase_active())
        for purchase, item in self._all(purchases):
            events.append(
                StockEvent(purchase.purchase_date, purchase.created_at, "Purchase",
                           purchase.reference_no, item.quantity)
            )
        sales = select(Sale, SaleItem).join(SaleItem, SaleItem.sale_id == Sale.id).where(
            SaleItem.product_id == product_id, _sale_active()
        )
        for sale, item in self._all(sales):
            events.append(
                StockEvent(sale.created_at.date(), sale.created_at, "Sale",
                           sale.reference_no, -item.quantity)
            )
        memos = select(NonGstSale, NonGstSaleItem).join(
            NonGstSaleItem, NonGstSaleItem.sale_id == NonGstSale.id
        ).where(NonGstSaleItem.product_id == product_id, _non_gst_sale_active())
        for sale, item in self._all(memos):
            events.append(
                StockEvent(sale.created_at.date(), sale.created_at, "Non-GST Sale",
                           sale.reference_no, -item.quantity)
            )
        adjustments = select(StockAdjustment).where(StockAdjustment.product_id == product_id)
        for adj in self._all(adjustments):
            events.append(
                StockEvent(adj.created_at.date(), adj.created_at, f"Adjustment ({adj.category})",
                           None, adj.new_quantity - adj.old_quantity)
            )
        events.sort(key=lambda e: (e.event_date, e.created_at))
        return events

    # -- GST report feeds --------------------------------------------------

    def sale_lines(self, start: date, end: date) -> list[SaleLine]:
        """Invoice lines in range with their sale, product and customer."""
        stmt = (
            select(Sale, SaleItem, Product, Customer)
            .join(SaleItem, SaleItem.sale_id == Sale.id)
            .outerjoin(Product, SaleItem.product_id == Product.id)
            .outerjoin(Customer, Sale.customer_id == Customer.id)
            .where(_sale_active(), SALE_DATE.between(start, end))
            .order_by(Sale.created_at, Sale.id, SaleItem.id)
        )
        return [SaleLine(*row) for row in self._all(stmt)]

    def notes(self, start: date, end: date) -> list[NoteRow]:
        """Credit and debit notes in range with the counter-party's registration."""
        stmt = (
            select(Transaction, Customer, Supplier, Sale)
            .outerjoin(
                Customer,
                and_(Transaction.entity_id == Customer.id,
                     Transaction.entity_type == EntityType.customer),
            )
            .outerjoin(
                Supplier,
                and_(Transaction.entity_id == Supplier.id,
                     Transaction.entity_type == EntityType.supplier),
            )
            .outerjoin(
                Sale,
                and_(Transaction.bill_id == Sale.id, Transaction.bill_type == BillType.sale),
            )
            .where(
                col(Transaction.type).in_([TransactionType.credit_note, TransactionType.debit_note]),
                _transaction_active(),
                TRANSACTION_DATE.between(start, end),
            )
            .order_by(Transaction.transaction_date, Transaction.id)
        )
        rows = []
        for note, customer, supplier, sale in self._all(stmt):
            if customer is not None:
                gstin, state = customer.gst_no, customer.state
            elif supplier is not None:
                gstin, state = supplier.gst_number, supplier.state
            else:
                gstin, state = None, None
            rows.append(NoteRow(note, gstin, state, sale))
        return rows

    # -- day book feed -----------------------------------------------------

    def day_transactions(self, day: date) -> list[PartyTransaction]:
        """Every active transaction dated `day`, with the counter-party's name."""
        party = func.coalesce(Customer.name, Supplier.name, GENERAL_PARTY)
        stmt = (
            select(Transaction, party)
            .outerjoin(
                Customer,
                and_(Transaction.entity_id == Customer.id,
                     Transaction.entity_type == EntityType.customer),
            )
            .outerjoin(
                Supplier,
                and_(Transaction.entity_id == Supplier.id,
                     Transaction.entity_type == EntityType.supplier),
            )
            .where(_transaction_active(), TRANSACTION_DATE.between(day, day))
            .order_by(Transaction.created_at, Transaction.id)
        )
        return [PartyTransaction(txn, name) for txn, name in self._all(stmt)]

    # -- analytics feeds ---------------------------------------------------

    def sales_by_customer(self) -> dict[int, CustomerSales]:
        """Order count, revenue and last purchase per customer, both sale kinds."""
        merged: dict[int, CustomerSales] = {}
        for model, active in ((Sale, _sale_active()), (NonGstSale, _non_gst_sale_active())):
            stmt = (
                select(
                    model.customer_id,
                    func.count(model.id),
                    func.coalesce(func.sum(model.total_amount), 0.0),
                    func.max(model.created_at),
                )
                .where(active, col(model.customer_id).isnot(None))
                .group_by(model.customer_id)
            )
            for cid, count, total, last in self._all(stmt):
                prev = merged.get(cid)
                if prev is None:
                    merged[cid] = CustomerSales(count, float(total), last)
                    continue
                seen = [d for d in (prev.last_purchase, last) if d is not None]
                latest = max(seen) if seen else None
                merged[cid] = CustomerSales(
                    prev.order_count + count, prev.total_revenue + float(total), latest
                )
        return merged

    def product_sales(self, since: date) -> dict[int, tuple[float, float]]:
        """(quantity, quantity x rate) sold per product on or after `since`."""
        merged: dict[int, tuple[float, float]] = {}
        feeds = (
            (SaleItem, Sale, SALE_DATE, _sale_active()),
            (NonGstSaleItem, NonGstSale, NON_GST_SALE_DATE, _non_gst_sale_active()),
        )
        for item, sale, date_col, active in feeds:
            stmt = (
                select(
                    item.product_id,
                    func.sum(item.quantity),
                    func.sum(item.quantity * item.rate),
                )
                .join(sale, item.sale_id == sale.id)
                .where(active, date_col.on_or_after(since))
                .group_by(item.product_id)
            )
            for pid, qty, revenue in self._all(stmt):
                q, r = merged.get(pid, (0.0, 0.0))
                merged[pid] = (q + float(qty or 0.0), r + float(revenue or 0.0))
        return merged

    def last_sold(self) -> dict[int, datetime]:
        """Most recent sale timestamp per product, both sale kinds."""
        latest: dict[int, datetime] = {}
        feeds = (
            (SaleItem, Sale, _sale_active()),
            (NonGstSaleItem, NonGstSale, _non_gst_sale_active()),
        )
        for item, sale, active in feeds:
            stmt = (
                select(item.product_id, func.max(sale.created_at))
                .join(sale, item.sale_id == sale.id)
                .where(active)
                .group_by(item.product_id)
            )
            for pid, last in self._all(stmt):
                if last is not None and (pid not in latest or last > latest[pid]):
                    latest[pid] = last
        return latest
