"""Profit & loss statement derived from sales, product costs and expenses."""
from loguru import logger

from kosh_ledger.engine.adapters import EventStore
from kosh_ledger.engine.period import Period
from kosh_ledger.engine.tax import round_amount
from kosh_ledger.schemas.responses import ExpenseLine, PnLStatement


def profit_and_loss(store: EventStore, period: Period) -> PnLStatement:
    """
    Revenue is the invoiced total of GST sales in the period. Cost of goods
    sold values each sold unit at the product's average purchase price,
    falling back to its MOP and then to zero.
    """
    revenue = store.sales_total(start=period.start, end=period.end)
    cogs = store.cost_of_goods_sold(period.start, period.end)
    expenses = store.expenses_by_category(period.start, period.end)
    total_expenses = sum(total for _, total in expenses)

    logger.debug(f"P&L {period.start}..{period.end}: revenue={revenue} cogs={cogs}")

    return PnLStatement(
        period_start=period.start,
        period_end=period.end,
        total_revenue=round_amount(revenue),
        total_cogs=round_amount(cogs),
        gross_profit=round_amount(revenue - cogs),
        expenses=[ExpenseLine(category=c, total=round_amount(t)) for c, t in expenses],
        total_expenses=round_amount(total_expenses),
        net_profit=round_amount(revenue - cogs - total_expenses),
    )
