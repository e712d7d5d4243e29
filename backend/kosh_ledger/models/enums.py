"""Closed discriminators shared by the models and the reporting engine."""
from enum import Enum

# Soft-delete markers written by the POS application
CANCELLED = "cancelled"  # sales, purchases
DELETED = "deleted"  # payments and notes


class TransactionType(str, Enum):
    """Kind of a row in the transactions table (member names match stored values)."""

    payment_in = "payment_in"
    payment_out = "payment_out"
    credit_note = "credit_note"
    debit_note = "debit_note"


class BillType(str, Enum):
    sale = "sale"
    purchase = "purchase"


class EntityType(str, Enum):
    customer = "customer"
    supplier = "supplier"


class AccountKind(str, Enum):
    """Ledger subjects whose balance the engine can derive."""

    CUSTOMER = "customer"
    SUPPLIER = "supplier"
    CASH = "cash"
    BANK = "bank"
    DAY_BOOK = "daybook"  # all money in and out, every payment mode
    PRODUCT = "product"


class PaymentBucket(str, Enum):
    """Payment-mode classification used by the cash and bank books."""

    CASH = "cash"
    BANK = "bank"

    @property
    def modes(self) -> tuple[str, ...]:
        """Lower-cased payment_mode values that belong to this bucket."""
        if self is PaymentBucket.CASH:
            return ("cash",)
        return ("upi", "card", "bank_transfer", "bank")


class PeriodType(str, Enum):
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class RecordType(str, Enum):
    """Label of a ledger row."""

    SALE_INVOICE = "Sale Invoice"
    PAYMENT_RECEIVED = "Payment Received"
    CREDIT_NOTE = "Credit Note"
    PURCHASE_BILL = "Purchase Bill"
    PAYMENT_SENT = "Payment Sent"
    DEBIT_NOTE = "Debit Note"
    INCOMING_PAYMENT = "Incoming Payment"
    OUTGOING_PAYMENT = "Outgoing Payment"
    EXPENSE = "Expense"


class SupplyType(str, Enum):
    INTER = "INTER"
    INTRA = "INTRA"
