"""
Tax Computation Kernel - GST on a single line item.

Pure functions with no I/O and no rounding. Callers aggregate raw values and
round only when inserting into an output structure, so rounding error never
compounds across lines.

Usage:
    line = compute_line_tax(rate=118, quantity=1, discount_percent=0,
                            gst_rate=18, is_inclusive=True)
    line.taxable_value  # 100.0 (up to float precision)
    line.split(interstate=False).cgst  # 9.0
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class TaxLine:
    """Tax outcome of one line. taxable_value + tax_amount == total_value."""

    taxable_value: float
    tax_amount: float
    total_value: float
    igst: float = 0.0
    cgst: float = 0.0
    sgst: float = 0.0

    def split(self, interstate: bool) -> "TaxLine":
        """Assign the tax to IGST, or halve it into CGST and SGST."""
        if interstate:
            return replace(self, igst=self.tax_amount, cgst=0.0, sgst=0.0)
        cgst = self.tax_amount / 2
        return replace(self, igst=0.0, cgst=cgst, sgst=self.tax_amount - cgst)


def compute_line_tax(
    rate: float,
    quantity: float,
    discount_percent: Optional[float],
    gst_rate: Optional[float],
    is_inclusive: bool,
) -> TaxLine:
    """Taxable value, tax and total for `quantity` units at `rate` after discount."""
    discount = discount_percent or 0.0
    gst = gst_rate or 0.0
    base_value = rate * quantity * (1 - discount / 100.0)

    if is_inclusive:
        taxable_value = base_value / (1 + gst / 100.0)
        tax_amount = base_value - taxable_value
    else:
        taxable_value = base_value
        tax_amount = taxable_value * gst / 100.0

    return TaxLine(
        taxable_value=taxable_value,
        tax_amount=tax_amount,
        total_value=taxable_value + tax_amount,
    )


def round_amount(value: Optional[float]) -> float:
    """Presentation rounding for every externally visible amount."""
    return round(value or 0.0, 2)
