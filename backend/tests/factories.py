"""Row builders for seeding the POS tables in tests."""
import itertools
from datetime import date, datetime, time
from typing import Optional, Union

from sqlmodel import Session

from kosh_ledger.models import (
    Customer,
    Expense,
    NonGstSale,
    NonGstSaleItem,
    Product,
    Purchase,
    PurchaseItem,
    Sale,
    SaleItem,
    Shop,
    StockAdjustment,
    Supplier,
    Transaction,
)
from kosh_ledger.models.enums import BillType, EntityType, TransactionType

Day = Union[date, datetime]


def _ts(on: Day) -> datetime:
    """Timestamps default to mid-morning of the given day."""
    if isinstance(on, datetime):
        return on
    return datetime.combine(on, time(10, 0))


class Seeder:
    def __init__(self, session: Session):
        self.session = session
        self._seq = itertools.count(1)

    def _save(self, *rows):
        for row in rows:
            self.session.add(row)
        self.session.commit()
        for row in rows:
            self.session.refresh(row)
        return rows[0]

    def _ref(self, prefix: str) -> str:
        return f"{prefix}-{next(self._seq):04d}"

    # ── Masters ───────────────────────────────────────────────────────────────

    def shop(self, **kw) -> Shop:
        kw.setdefault("shop_name", "Kosh Mobiles")
        kw.setdefault("state", "Kerala")
        kw.setdefault("gstin", "32ABCDE1234F1Z5")
        return self._save(Shop(**kw))

    def customer(self, name: str = "Asha", **kw) -> Customer:
        kw.setdefault("created_at", datetime(2023, 6, 1, 9, 0))
        return self._save(Customer(name=name, **kw))

    def supplier(self, name: str = "Metro Distributors", **kw) -> Supplier:
        return self._save(Supplier(name=name, **kw))

    def product(self, name: str = "Charger", **kw) -> Product:
        return self._save(Product(name=name, **kw))

    # ── Bills ─────────────────────────────────────────────────────────────────

    def sale(
        self,
        customer: Optional[Customer],
        on: Day,
        total: float,
        items: tuple = (),
        **kw,
    ) -> Sale:
        reference_no = kw.pop("reference_no", None) or self._ref("INV")
        sale = self._save(
            Sale(
                customer_id=customer.id if customer else None,
                reference_no=reference_no,
                total_amount=total,
                created_at=_ts(on),
                **kw,
            )
        )
        if items:
            self._save(*[SaleItem(sale_id=sale.id, **item) for item in items])
        return sale

    def non_gst_sale(
        self,
        customer: Optional[Customer],
        on: Day,
        total: float,
        items: tuple = (),
        **kw,
    ) -> NonGstSale:
        sale = self._save(
            NonGstSale(
                customer_id=customer.id if customer else None,
                reference_no=self._ref("MEMO"),
                total_amount=total,
                created_at=_ts(on),
                **kw,
            )
        )
        if items:
            self._save(*[NonGstSaleItem(sale_id=sale.id, **item) for item in items])
        return sale

    def purchase(
        self,
        supplier: Supplier,
        on: date,
        total: float,
        items: tuple = (),
        **kw,
    ) -> Purchase:
        purchase = self._save(
            Purchase(
                supplier_id=supplier.id,
                reference_no=self._ref("PB"),
                purchase_date=on,
                total_amount=total,
                created_at=_ts(on),
                **kw,
            )
        )
        if items:
            self._save(*[PurchaseItem(purchase_id=purchase.id, **item) for item in items])
        return purchase

    # ── Payments and notes ────────────────────────────────────────────────────

    def _transaction(self, type_, entity_type, entity_id, on, amount, bill=None, bill_type=None, **kw):
        return self._save(
            Transaction(
                reference_no=self._ref(type_.value.upper()),
                type=type_,
                entity_type=entity_type,
                entity_id=entity_id,
                transaction_date=on,
                amount=amount,
                bill_id=bill.id if bill is not None else None,
                bill_type=bill_type if bill is not None else None,
                **kw,
            )
        )

    def payment_in(self, customer: Customer, on: date, amount: float, bill: Optional[Sale] = None, mode="Cash", **kw):
        return self._transaction(
            TransactionType.payment_in, EntityType.customer, customer.id, on, amount,
            bill, BillType.sale, payment_mode=mode, **kw,
        )

    def payment_out(self, supplier: Supplier, on: date, amount: float, bill: Optional[Purchase] = None, mode="Cash", **kw):
        return self._transaction(
            TransactionType.payment_out, EntityType.supplier, supplier.id, on, amount,
            bill, BillType.purchase, payment_mode=mode, **kw,
        )

    def credit_note(self, customer: Customer, on: date, amount: float, gst_amount: float = 0.0, bill=None, **kw):
        return self._transaction(
            TransactionType.credit_note, EntityType.customer, customer.id, on, amount,
            bill, BillType.sale, gst_amount=gst_amount, **kw,
        )

    def debit_note(self, supplier: Supplier, on: date, amount: float, gst_amount: float = 0.0, bill=None, **kw):
        return self._transaction(
            TransactionType.debit_note, EntityType.supplier, supplier.id, on, amount,
            bill, BillType.purchase, gst_amount=gst_amount, **kw,
        )

    # ── Expenses and adjustments ──────────────────────────────────────────────

    def expense(self, on: date, amount: float, category: str = "Rent", mode: str = "Cash", **kw) -> Expense:
        return self._save(
            Expense(expense_date=on, amount=amount, category=category, payment_mode=mode, **kw)
        )

    def adjustment(self, product: Product, on: Day, old: float, new: float, category: str = "Damaged") -> StockAdjustment:
        return self._save(
            StockAdjustment(
                product_id=product.id,
                category=category,
                old_quantity=old,
                new_quantity=new,
                created_at=_ts(on),
            )
        )
