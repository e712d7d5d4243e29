"""
Sales analytics over customers and products.

Every report takes the reference day explicitly; nothing here reads the
clock. GST and non-GST sales both count as sales.
"""
from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Optional

from loguru import logger

from kosh_ledger.core.config import settings
from kosh_ledger.engine.adapters import EventStore
from kosh_ledger.engine.tax import round_amount
from kosh_ledger.schemas.responses import (
    CustomerSegment,
    DeadStockItem,
    ProductClass,
    ReorderItem,
)

# Days of cover reported when a product does not sell at all
NO_VELOCITY_DAYS = 999
# Units ordered on top of the threshold for low stock that is not selling
REORDER_BUFFER = 5


# ── Customers ────────────────────────────────────────────────────────────────


def _segment(days_inactive: int, revenue: float, orders: int, dormant_days: int, vip_revenue: float) -> str:
    # Recency is checked before revenue: a lapsed big spender is Dormant
    if days_inactive > dormant_days:
        return "Dormant"
    if revenue > vip_revenue:
        return "VIP"
    if orders <= 1:
        return "New"
    return "Regular"


def customer_segments(
    store: EventStore,
    today: date,
    dormant_days: Optional[int] = None,
    vip_revenue: Optional[float] = None,
) -> list[CustomerSegment]:
    """Lifetime value, order value and recency segment of every customer."""
    dormant_days = settings.DORMANT_DAYS if dormant_days is None else dormant_days
    vip_revenue = settings.VIP_REVENUE if vip_revenue is None else vip_revenue
    totals = store.sales_by_customer()

    result = []
    for customer in store.customers():
        stats = totals.get(customer.id)
        orders = stats.order_count if stats else 0
        revenue = stats.total_revenue if stats else 0.0
        last = stats.last_purchase if stats else None

        seen = last or customer.created_at
        days_inactive = max((today - seen.date()).days, 0) if seen else 0
        aov = revenue / orders if orders else 0.0

        result.append(
            CustomerSegment(
                id=customer.id,
                name=customer.name,
                phone=customer.phone,
                join_date=customer.created_at,
                order_count=orders,
                total_revenue=round_amount(revenue),
                last_purchase_date=last,
                days_inactive=days_inactive,
                aov=round(aov),
                segment=_segment(days_inactive, revenue, orders, dormant_days, vip_revenue),
            )
        )

    result.sort(key=lambda c: (-c.total_revenue, c.id))
    return result


# ── Products ─────────────────────────────────────────────────────────────────


def abc_analysis(store: EventStore, today: date, days: int = 365) -> list[ProductClass]:
    """
    Classify active products by their share of revenue over the last `days`.

    Walking products from the highest revenue down, a product is A while the
    cumulative share stays within 80 %, B within 95 %, and C beyond that.
    """
    sales = store.product_sales(today - timedelta(days=days))
    ranked = sorted(
        store.active_products(),
        key=lambda p: (-sales.get(p.id, (0.0, 0.0))[1], p.id),
    )
    grand_total = sum(sales.get(p.id, (0.0, 0.0))[1] for p in ranked)

    result = []
    running = 0.0
    for product in ranked:
        revenue = sales.get(product.id, (0.0, 0.0))[1]
        running += revenue
        if grand_total > 0:
            cumulative = running * 100 / grand_total
            label = "A" if cumulative <= 80 else "B" if cumulative <= 95 else "C"
            share = revenue * 100 / grand_total
        else:
            label, share = "C", 0.0
        result.append(
            ProductClass(
                id=product.id,
                name=product.name,
                product_code=product.product_code,
                current_stock=product.quantity,
                total_revenue=round_amount(revenue),
                classification=label,
                share=round_amount(share),
            )
        )
    return result


def dead_stock(store: EventStore, today: date, days: int = 180) -> list[DeadStockItem]:
    """In-stock active products with no sale on or after `today - days`."""
    cutoff = today - timedelta(days=days)
    last_sold = store.last_sold()

    items = []
    for product in store.active_products():
        if (product.quantity or 0) <= 0:
            continue
        last = last_sold.get(product.id)
        if last is not None and last.date() >= cutoff:
            continue
        items.append(
            DeadStockItem(
                id=product.id,
                name=product.name,
                product_code=product.product_code,
                current_stock=product.quantity,
                unit_cost=product.average_purchase_price,
                mrp=product.mrp,
                capital_stuck=round_amount(product.quantity * (product.average_purchase_price or 0.0)),
                last_sold_date=last,
            )
        )

    items.sort(key=lambda i: (-i.capital_stuck, i.id))
    logger.debug(f"Dead stock as of {today} (cutoff {cutoff}): {len(items)} products")
    return items


def reorder_recommendations(
    store: EventStore,
    today: date,
    lookback_days: int = 30,
    target_days: int = 30,
) -> list[ReorderItem]:
    """Products that should be reordered, most urgent first."""
    sold = store.product_sales(today - timedelta(days=lookback_days))

    items = []
    for product in store.active_products():
        stock = product.quantity or 0.0
        threshold = product.low_stock_threshold or 0.0
        sold_qty = sold.get(product.id, (0.0, 0.0))[0]
        if sold_qty <= 0 and stock > threshold:
            continue

        velocity = sold_qty / lookback_days
        days_remaining = round(stock / velocity) if velocity > 0 else NO_VELOCITY_DAYS
        suggested = math.ceil(velocity * target_days) - stock
        if stock <= threshold and suggested <= 0:
            suggested = threshold - stock + REORDER_BUFFER
        suggested = max(suggested, 0.0)

        if days_remaining < 7:
            status = "critical"
        elif days_remaining < 15:
            status = "warning"
        else:
            status = "healthy"

        if suggested <= 0 and status != "critical":
            continue

        items.append(
            ReorderItem(
                id=product.id,
                name=product.name,
                product_code=product.product_code,
                current_stock=stock,
                unit_cost=product.average_purchase_price,
                low_stock_threshold=threshold,
                sold_last_x_days=sold_qty,
                daily_velocity=round_amount(velocity),
                days_remaining=days_remaining,
                suggested_order=suggested,
                estimated_cost=round_amount(suggested * (product.average_purchase_price or 0.0)),
                status=status,
            )
        )

    items.sort(key=lambda i: (i.days_remaining, i.id))
    return items
