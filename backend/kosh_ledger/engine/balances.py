"""
Opening Balance Calculator.

There is no stored running balance anywhere in the POS schema: the balance of
an account before a date is always re-derived from the events dated strictly
earlier. Events dated on the cutoff itself never leak into the figure.

    customer   sales - (payments in + credit notes)
    supplier   purchases - (payments out + debit notes)
    cash/bank  payments in - payments out - expenses     (mode bucket only)
    day book   (payments in + debit notes) - (payments out + credit notes) - expenses
    product    current quantity rolled back through later movements
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from loguru import logger

from kosh_ledger.core.errors import NotFoundError
from kosh_ledger.engine.adapters import EventStore, Movement
from kosh_ledger.models.enums import AccountKind, EntityType, PaymentBucket, TransactionType

CUSTOMER_CREDITS = (TransactionType.payment_in, TransactionType.credit_note)
SUPPLIER_DEBITS = (TransactionType.payment_out, TransactionType.debit_note)
MONEY_IN = (TransactionType.payment_in, TransactionType.debit_note)
MONEY_OUT = (TransactionType.payment_out, TransactionType.credit_note)


@dataclass(frozen=True)
class AccountRef:
    """A ledger subject: a party, a payment pool or a product's stock."""

    kind: AccountKind
    id: Optional[int] = None

    @classmethod
    def customer(cls, customer_id: int) -> "AccountRef":
        return cls(AccountKind.CUSTOMER, customer_id)

    @classmethod
    def supplier(cls, supplier_id: int) -> "AccountRef":
        return cls(AccountKind.SUPPLIER, supplier_id)

    @classmethod
    def pool(cls, bucket: PaymentBucket) -> "AccountRef":
        return cls(AccountKind(bucket.value))

    @classmethod
    def day_book(cls) -> "AccountRef":
        return cls(AccountKind.DAY_BOOK)

    @classmethod
    def product(cls, product_id: int) -> "AccountRef":
        return cls(AccountKind.PRODUCT, product_id)

    @property
    def bucket(self) -> PaymentBucket:
        if self.kind not in (AccountKind.CASH, AccountKind.BANK):
            raise ValueError(f"{self.kind.value} accounts have no payment bucket")
        return PaymentBucket(self.kind.value)


class OpeningBalanceCalculator:
    def __init__(self, store: EventStore):
        self.store = store

    def opening_balance(self, account: AccountRef, cutoff: date) -> float:
        """Signed balance over the half-open interval (-inf, cutoff)."""
        balance = self._balance(account, before=cutoff)
        logger.debug(f"Opening balance of {account.kind.value}:{account.id} before {cutoff}: {balance}")
        return balance

    def net_movement(self, account: AccountRef, start: date, end: date) -> float:
        """Signed change contributed by events dated within [start, end]."""
        return self._balance(account, start=start, end=end)

    def _balance(
        self,
        account: AccountRef,
        start: Optional[date] = None,
        end: Optional[date] = None,
        before: Optional[date] = None,
    ) -> float:
        store = self.store
        window = {"start": start, "end": end, "before": before}

        if account.kind is AccountKind.CUSTOMER:
            billed = store.sales_total(customer_id=account.id, **window)
            settled = store.transactions_total(
                CUSTOMER_CREDITS, EntityType.customer, account.id, **window
            )
            return billed - settled

        if account.kind is AccountKind.SUPPLIER:
            billed = store.purchases_total(supplier_id=account.id, **window)
            settled = store.transactions_total(
                SUPPLIER_DEBITS, EntityType.supplier, account.id, **window
            )
            return billed - settled

        if account.kind in (AccountKind.CASH, AccountKind.BANK):
            bucket = account.bucket
            inflow = store.transactions_total(
                [TransactionType.payment_in], bucket=bucket, **window
            )
            outflow = store.transactions_total(
                [TransactionType.payment_out], bucket=bucket, **window
            )
            spent = store.expenses_total(bucket=bucket, **window)
            return inflow - outflow - spent

        if account.kind is AccountKind.DAY_BOOK:
            inflow = store.transactions_total(MONEY_IN, **window)
            outflow = store.transactions_total(MONEY_OUT, **window)
            return inflow - outflow - store.expenses_total(**window)

        if account.kind is AccountKind.PRODUCT:
            return self._stock_balance(account.id, start, end, before)

        raise ValueError(f"Unsupported account kind: {account.kind!r}")

    def _stock_balance(
        self,
        product_id: int,
        start: Optional[date],
        end: Optional[date],
        before: Optional[date],
    ) -> float:
        product = self.store.product(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)

        if before is not None:
            # Roll the only authoritative figure back through later movements
            purchased, sold, adjusted = self._stock_moves(product_id, before, before)
            return (
                (product.quantity or 0.0)
                - purchased.since_start
                + sold.since_start
                - adjusted.since_start
            )

        purchased, sold, adjusted = self._stock_moves(product_id, start, end)
        return purchased.period - sold.period + adjusted.period

    def _stock_moves(
        self, product_id: int, start: date, end: date
    ) -> tuple[Movement, Movement, Movement]:
        empty = Movement(0.0, 0.0)
        return (
            self.store.purchase_movements(start, end, product_id).get(product_id, empty),
            self.store.sale_movements(start, end, product_id).get(product_id, empty),
            self.store.adjustment_movements(start, end, product_id).get(product_id, empty),
        )
