"""
Ledger Merger: chronological account statements built from several event streams.

A party ledger is the union of
  - bill rows (sales or purchases) in the period, each carrying the payments
    recorded against that same bill on the bill's own date, and
  - payment and note rows in the period, minus the payments already folded
    into a bill row above.

The fold is keyed on (bill_type, bill_id, date): a payment made on a later day
than its bill keeps its own row. Rows are ordered by date, then creation time,
then id, and carry a running balance that starts from the opening balance.

Balance direction:
  customer, cash, bank   balance += debit - credit
  supplier               balance += credit - debit
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import NamedTuple

from loguru import logger

from kosh_ledger.core.errors import InvalidPeriodError, NotFoundError
from kosh_ledger.engine.adapters import EventStore
from kosh_ledger.engine.balances import (
    CUSTOMER_CREDITS,
    MONEY_IN,
    SUPPLIER_DEBITS,
    AccountRef,
    OpeningBalanceCalculator,
)
from kosh_ledger.engine.tax import round_amount
from kosh_ledger.models.enums import (
    AccountKind,
    BillType,
    EntityType,
    PaymentBucket,
    RecordType,
    TransactionType,
)
from kosh_ledger.schemas.responses import DayBookReport, DayBookRow, LedgerReport, LedgerRow


class _Entry(NamedTuple):
    day: date
    created_at: datetime
    row_id: int
    debit: float
    credit: float
    record_type: RecordType
    reference_no: str | None
    note: str | None
    payment_mode: str | None = None


class _DayEntry(NamedTuple):
    created_at: datetime
    source_rank: int  # transactions before expenses at the same instant
    row_id: int
    source: str
    type_label: str
    party_name: str
    payment_mode: str | None
    reference_no: str | None
    description: str | None
    money_in: float
    money_out: float


class LedgerMerger:
    def __init__(self, store: EventStore, balances: OpeningBalanceCalculator | None = None):
        self.store = store
        self.balances = balances or OpeningBalanceCalculator(store)

    # -- entry points ------------------------------------------------------

    def customer_ledger(self, customer_id: int, start: date, end: date) -> LedgerReport:
        return self.build_ledger(AccountRef.customer(customer_id), start, end)

    def supplier_ledger(self, supplier_id: int, start: date, end: date) -> LedgerReport:
        return self.build_ledger(AccountRef.supplier(supplier_id), start, end)

    def cash_bank_book(self, bucket: PaymentBucket, start: date, end: date) -> LedgerReport:
        return self.build_ledger(AccountRef.pool(bucket), start, end)

    def day_book(self, day: date) -> DayBookReport:
        """
        Every transaction (notes included) and expense dated `day`, in entry order.

        Payments in and debit notes bring money in; payments out, credit notes
        and expenses take it out. The opening balance covers all earlier days
        across every payment mode.
        """
        entries = [
            _DayEntry(
                txn.created_at, 0, txn.id, "transaction", TransactionType(txn.type).value, party,
                txn.payment_mode, txn.reference_no, txn.note,
                money_in=txn.amount if txn.type in MONEY_IN else 0.0,
                money_out=0.0 if txn.type in MONEY_IN else txn.amount,
            )
            for txn, party in self.store.day_transactions(day)
        ]
        entries += [
            _DayEntry(
                exp.created_at, 1, exp.id, "expense", RecordType.EXPENSE.value, exp.category,
                exp.payment_mode, f"EXP-{exp.id}", exp.description,
                money_in=0.0,
                money_out=exp.amount,
            )
            for exp in self.store.expenses(start=day, end=day)
        ]
        opening = self.balances.opening_balance(AccountRef.day_book(), day)
        self.store.check_budget()

        running = opening
        rows: list[DayBookRow] = []
        for e in sorted(entries, key=lambda e: (e.created_at, e.source_rank, e.row_id)):
            running += e.money_in - e.money_out
            rows.append(
                DayBookRow(
                    id=e.row_id,
                    source=e.source,
                    type_label=e.type_label,
                    created_at=e.created_at,
                    party_name=e.party_name,
                    payment_mode=e.payment_mode,
                    reference_no=e.reference_no,
                    description=e.description,
                    money_in=round_amount(e.money_in),
                    money_out=round_amount(e.money_out),
                    balance=round_amount(running),
                )
            )
        self.store.check_budget()

        report = DayBookReport(
            date=day,
            opening_balance=round_amount(opening),
            total_in=round_amount(sum(e.money_in for e in entries)),
            total_out=round_amount(sum(e.money_out for e in entries)),
            closing_balance=round_amount(running),
            rows=rows,
        )
        logger.info(f"Day book {day}: {len(rows)} rows, closing {report.closing_balance}")
        return report

    def build_ledger(self, account: AccountRef, start: date, end: date) -> LedgerReport:
        if start > end:
            raise InvalidPeriodError(f"Start date {start} is after end date {end}")

        if account.kind is AccountKind.CUSTOMER:
            if self.store.customer(account.id) is None:
                raise NotFoundError("Customer", account.id)
            entries = self._customer_entries(account.id, start, end)
            sign = 1
        elif account.kind is AccountKind.SUPPLIER:
            if self.store.supplier(account.id) is None:
                raise NotFoundError("Supplier", account.id)
            entries = self._supplier_entries(account.id, start, end)
            sign = -1
        elif account.kind in (AccountKind.CASH, AccountKind.BANK):
            entries = self._pool_entries(account.bucket, start, end)
            sign = 1
        else:
            raise ValueError(f"No ledger view for {account.kind.value} accounts")

        self.store.check_budget()
        opening = self.balances.opening_balance(account, start)
        report = self._assemble(account, start, end, opening, entries, sign)
        self.store.check_budget()
        logger.info(
            f"{account.kind.value} ledger {account.id or ''} {start}..{end}: "
            f"{len(report.rows)} rows, closing {report.closing_balance}"
        )
        return report

    # -- streams -----------------------------------------------------------

    def _same_day_payments(
        self,
        bill_type: BillType,
        bills: dict[int, date],
        payment_type: TransactionType,
        entity_type: EntityType,
        entity_id: int,
    ) -> dict[int, float]:
        """Sum of payments against each bill dated on the bill's own day."""
        folded: dict[int, float] = defaultdict(float)
        for txn in self.store.payments_against(bill_type, bills.keys(), payment_type):
            if txn.entity_type != entity_type or txn.entity_id != entity_id:
                continue
            if txn.transaction_date == bills[txn.bill_id]:
                folded[txn.bill_id] += txn.amount
        return folded

    def _customer_entries(self, customer_id: int, start: date, end: date) -> list[_Entry]:
        sales = self.store.sales(customer_id=customer_id, start=start, end=end)
        bill_days = {s.id: s.created_at.date() for s in sales}
        paid_same_day = self._same_day_payments(
            BillType.sale, bill_days, TransactionType.payment_in,
            EntityType.customer, customer_id,
        )

        entries = [
            _Entry(
                bill_days[s.id], s.created_at, s.id,
                debit=s.total_amount,
                credit=paid_same_day.get(s.id, 0.0),
                record_type=RecordType.SALE_INVOICE,
                reference_no=s.reference_no,
                note=s.note,
            )
            for s in sales
        ]

        for txn in self.store.transactions(
            CUSTOMER_CREDITS, EntityType.customer, customer_id, start, end
        ):
            if self._is_folded(txn, TransactionType.payment_in, BillType.sale, bill_days):
                continue
            is_payment = txn.type == TransactionType.payment_in
            entries.append(
                _Entry(
                    txn.transaction_date, txn.created_at, txn.id,
                    debit=0.0,
                    credit=txn.amount,
                    record_type=RecordType.PAYMENT_RECEIVED if is_payment else RecordType.CREDIT_NOTE,
                    reference_no=txn.reference_no,
                    note=txn.note,
                )
            )
        return entries

    def _supplier_entries(self, supplier_id: int, start: date, end: date) -> list[_Entry]:
        purchases = self.store.purchases(supplier_id=supplier_id, start=start, end=end)
        bill_days = {p.id: p.purchase_date for p in purchases}
        paid_same_day = self._same_day_payments(
            BillType.purchase, bill_days, TransactionType.payment_out,
            EntityType.supplier, supplier_id,
        )

        entries = [
            _Entry(
                p.purchase_date, p.created_at, p.id,
                debit=paid_same_day.get(p.id, 0.0),
                credit=p.total_amount,
                record_type=RecordType.PURCHASE_BILL,
                reference_no=p.reference_no,
                note=p.note,
            )
            for p in purchases
        ]

        for txn in self.store.transactions(
            SUPPLIER_DEBITS, EntityType.supplier, supplier_id, start, end
        ):
            if self._is_folded(txn, TransactionType.payment_out, BillType.purchase, bill_days):
                continue
            is_payment = txn.type == TransactionType.payment_out
            entries.append(
                _Entry(
                    txn.transaction_date, txn.created_at, txn.id,
                    debit=txn.amount,
                    credit=0.0,
                    record_type=RecordType.PAYMENT_SENT if is_payment else RecordType.DEBIT_NOTE,
                    reference_no=txn.reference_no,
                    note=txn.note,
                )
            )
        return entries

    def _pool_entries(self, bucket: PaymentBucket, start: date, end: date) -> list[_Entry]:
        entries: list[_Entry] = []
        for txn in self.store.transactions(
            [TransactionType.payment_in, TransactionType.payment_out],
            start=start, end=end, bucket=bucket,
        ):
            incoming = txn.type == TransactionType.payment_in
            entries.append(
                _Entry(
                    txn.transaction_date, txn.created_at, txn.id,
                    debit=txn.amount if incoming else 0.0,
                    credit=0.0 if incoming else txn.amount,
                    record_type=RecordType.INCOMING_PAYMENT if incoming else RecordType.OUTGOING_PAYMENT,
                    reference_no=txn.reference_no,
                    note=txn.note,
                    payment_mode=txn.payment_mode,
                )
            )
        for exp in self.store.expenses(start=start, end=end, bucket=bucket):
            entries.append(
                _Entry(
                    exp.expense_date, exp.created_at, exp.id,
                    debit=0.0,
                    credit=exp.amount,
                    record_type=RecordType.EXPENSE,
                    reference_no=f"EXP-{exp.id}",
                    note=exp.description,
                    payment_mode=exp.payment_mode,
                )
            )
        return entries

    @staticmethod
    def _is_folded(txn, payment_type: TransactionType, bill_type: BillType, bill_days: dict[int, date]) -> bool:
        """True when this payment is already shown on its bill's row."""
        return (
            txn.type == payment_type
            and txn.bill_type == bill_type
            and txn.bill_id in bill_days
            and txn.transaction_date == bill_days[txn.bill_id]
        )

    # -- output ------------------------------------------------------------

    @staticmethod
    def _assemble(
        account: AccountRef,
        start: date,
        end: date,
        opening: float,
        entries: list[_Entry],
        sign: int,
    ) -> LedgerReport:
        ordered = sorted(entries, key=lambda e: (e.day, e.created_at, e.row_id))
        running = opening
        rows: list[LedgerRow] = []
        for e in ordered:
            running += sign * (e.debit - e.credit)
            rows.append(
                LedgerRow(
                    id=e.row_id,
                    date=e.day,
                    record_type=e.record_type,
                    reference_no=e.reference_no,
                    debit=round_amount(e.debit),
                    credit=round_amount(e.credit),
                    note=e.note,
                    payment_mode=e.payment_mode,
                    balance=round_amount(running),
                )
            )
        return LedgerReport(
            account_kind=account.kind,
            account_id=account.id,
            period_start=start,
            period_end=end,
            opening_balance=round_amount(opening),
            closing_balance=round_amount(running),
            rows=rows,
        )
