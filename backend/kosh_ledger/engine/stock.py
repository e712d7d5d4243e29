"""
Stock Reconciliation Engine.

The POS keeps no stock snapshots. `products.quantity` is the only
authoritative figure, so the quantity on any earlier day is obtained by
rolling it back through the movements recorded since:

    opening_qty = current - purchased_since + sold_since - adjusted_since
    net_change  = purchased_period - sold_period + adjusted_period
    closing_qty = opening_qty + net_change

Adjustments always contribute new_quantity - old_quantity. Any drift between
the stored quantity and the event history lands in opening_qty; use
`stock_history` to see it as a separate figure.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from loguru import logger

from kosh_ledger.core.errors import InvalidPeriodError, NotFoundError
from kosh_ledger.engine.adapters import EventStore, Movement
from kosh_ledger.engine.tax import round_amount
from kosh_ledger.schemas.responses import (
    StockHistoryEntry,
    StockHistoryReport,
    StockReconciliation,
    StockSummaryRow,
    StockValuation,
)

_NO_MOVEMENT = Movement(0.0, 0.0)


class StockReconciler:
    def __init__(self, store: EventStore):
        self.store = store

    def stock_summary(
        self, start: date, end: date, product_id: Optional[int] = None
    ) -> list[StockSummaryRow]:
        """Opening, movement and closing quantities per product for [start, end]."""
        if start > end:
            raise InvalidPeriodError(f"Start date {start} is after end date {end}")

        if product_id is not None:
            product = self.store.product(product_id)
            if product is None:
                raise NotFoundError("Product", product_id)
            products = [product]
        else:
            products = self.store.active_products()

        purchased = self.store.purchase_movements(start, end, product_id)
        sold = self.store.sale_movements(start, end, product_id)
        adjusted = self.store.adjustment_movements(start, end, product_id)

        rows = []
        for product in products:
            p = purchased.get(product.id, _NO_MOVEMENT)
            s = sold.get(product.id, _NO_MOVEMENT)
            a = adjusted.get(product.id, _NO_MOVEMENT)

            opening = (product.quantity or 0.0) - p.since_start + s.since_start - a.since_start
            net_change = p.period - s.period + a.period
            rows.append(
                StockSummaryRow(
                    product_id=product.id,
                    product_name=product.name,
                    opening_qty=round_amount(opening),
                    purchased_qty=round_amount(p.period),
                    sold_qty=round_amount(s.period),
                    adjusted_qty=round_amount(a.period),
                    net_change=round_amount(net_change),
                    closing_qty=round_amount(opening + net_change),
                )
            )
            self.store.check_budget()

        logger.info(f"Stock summary {start}..{end}: {len(rows)} products")
        return rows

    def stock_history(self, product_id: int) -> StockHistoryReport:
        """All movements of one product, newest first, with the unexplained drift."""
        product = self.store.product(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)

        events = self.store.stock_events(product_id)
        total_purchased = sum(e.quantity for e in events if e.kind == "Purchase")
        total_sold = -sum(e.quantity for e in events if e.kind in ("Sale", "Non-GST Sale"))
        total_adjusted = sum(e.quantity for e in events if e.kind.startswith("Adjustment"))

        expected = total_purchased - total_sold + total_adjusted
        current = product.quantity or 0.0
        discrepancy = current - expected
        if abs(discrepancy) > 1e-9:
            logger.warning(
                f"Product {product_id} quantity {current} differs from event history by {discrepancy}"
            )

        self.store.check_budget()
        history = [
            StockHistoryEntry(
                date=e.event_date,
                type=e.kind,
                reference_no=e.reference_no,
                quantity=e.quantity,
            )
            for e in reversed(events)
        ]
        return StockHistoryReport(
            product_id=product.id,
            product_name=product.name,
            history=history,
            summary=StockReconciliation(
                total_purchased=round_amount(total_purchased),
                total_sold=round_amount(total_sold),
                total_adjusted=round_amount(total_adjusted),
                expected_quantity=round_amount(expected),
                current_quantity=round_amount(current),
                unmarked_added=round_amount(max(discrepancy, 0.0)),
                unmarked_removed=round_amount(max(-discrepancy, 0.0)),
            ),
        )

    def stock_valuation(self) -> StockValuation:
        """Capital held in stock at average purchase price (MOP as fallback)."""
        return StockValuation(master_valuation=round_amount(self.store.stock_value()))
