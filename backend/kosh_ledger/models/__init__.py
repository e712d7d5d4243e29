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

__all__ = [
    "Shop",
    "Customer",
    "Supplier",
    "Product",
    "Sale",
    "SaleItem",
    "NonGstSale",
    "NonGstSaleItem",
    "Purchase",
    "PurchaseItem",
    "Transaction",
    "Expense",
    "StockAdjustment",
]
