"""
GST Filing Categorizer: GSTR-1 outward-supply return for a month, quarter or year.

Sections:
    b2b    invoices to registered customers, grouped by customer GSTIN
    b2cl   unregistered, interstate, invoice value above the B2CL limit
    b2cs   every other unregistered invoice, summed per (place of supply, rate)
    hsn    taxable lines summed per (HSN code, description)
    cdnr   credit/debit notes of registered parties, grouped by GSTIN
    cdnur  credit/debit notes of unregistered parties
    nil    zero-rated lines summed per supply type

Line tax comes from the tax kernel using the shop's pricing mode. Note tax is
taken from the stored gst_amount since a note may reverse only part of an
invoice. Values are accumulated raw and rounded when written into the report.
"""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from loguru import logger

from kosh_ledger.core.config import settings
from kosh_ledger.core.errors import ConfigurationError
from kosh_ledger.engine.adapters import EventStore, NoteRow, SaleLine
from kosh_ledger.engine.period import Period, filing_period, resolve_period
from kosh_ledger.engine.states import is_interstate, state_code
from kosh_ledger.engine.tax import TaxLine, compute_line_tax, round_amount
from kosh_ledger.models.enums import PeriodType, SupplyType, TransactionType
from kosh_ledger.models.master import Shop
from kosh_ledger.schemas.gstr import (
    B2BEntry,
    B2CSEntry,
    CdnrEntry,
    Gstr1Report,
    HsnRow,
    HsnSummary,
    Invoice,
    InvoiceItem,
    ItemDetail,
    NilRow,
    NilSummary,
    Note,
    UnregisteredNote,
)


def _gst_date(d: date | datetime) -> str:
    return d.strftime("%d-%m-%Y")


def _place_of_supply(shop: Shop, party_state: Optional[str], ref: Optional[str]) -> Optional[str]:
    """State code of the party, or the shop's own when the party has no state."""
    if not party_state:
        return state_code(shop.state)
    code = state_code(party_state)
    if code is None:
        logger.warning(f"{ref}: unknown state '{party_state}', no place-of-supply code")
    return code


def _item(num: int, rate: float, line: TaxLine) -> InvoiceItem:
    return InvoiceItem(
        num=num,
        itm_det=ItemDetail(
            txval=round_amount(line.taxable_value),
            rt=rate,
            iamt=round_amount(line.igst),
            camt=round_amount(line.cgst),
            samt=round_amount(line.sgst),
        ),
    )


@dataclass
class _Totals:
    """Raw running sums for one aggregated row."""

    qty: float = 0.0
    val: float = 0.0
    txval: float = 0.0
    iamt: float = 0.0
    camt: float = 0.0
    samt: float = 0.0

    def add(self, line: TaxLine, quantity: float = 0.0) -> None:
        self.qty += quantity
        self.val += line.total_value
        self.txval += line.taxable_value
        self.iamt += line.igst
        self.camt += line.cgst
        self.samt += line.sgst


@dataclass
class _Invoice:
    """A sale with its taxed lines, before it is placed into a section."""

    head: SaleLine  # first line; carries the sale and customer
    interstate: bool
    pos: Optional[str]
    taxed: list[tuple[float, TaxLine]] = field(default_factory=list)


class Gstr1Builder:
    def __init__(self, store: EventStore, b2cl_limit: Optional[float] = None):
        self.store = store
        self.b2cl_limit = settings.B2CL_INVOICE_LIMIT if b2cl_limit is None else b2cl_limit

    def build(
        self,
        period_type: PeriodType | str,
        year: int,
        month: Optional[int] = None,
        quarter: Optional[int] = None,
    ) -> Gstr1Report:
        period = resolve_period(period_type=period_type, year=year, month=month, quarter=quarter)
        with self.store.budget():
            return self.build_for(period)

    def build_for(self, period: Period) -> Gstr1Report:
        shop = self.store.shop()
        if shop is None or not shop.gstin or not shop.state:
            raise ConfigurationError("Shop GSTIN and state are required for GSTR-1 reporting")

        logger.info(f"Building GSTR-1 for {shop.gstin}, {period.start}..{period.end}")
        check = self.store.check_budget
        lines = self.store.sale_lines(period.start, period.end)
        invoices = self._taxed_invoices(shop, lines)
        check()
        b2b, b2cl, b2cs = self._categorize(invoices)
        check()
        cdnr, cdnur = self._notes(shop, self.store.notes(period.start, period.end))
        check()
        hsn = self._hsn_summary(shop, lines)
        check()
        nil = self._nil_summary(shop, lines)
        check()

        report = Gstr1Report(
            gstin=shop.gstin,
            fp=filing_period(period),
            b2b=b2b,
            b2cl=b2cl,
            b2cs=b2cs,
            hsn=hsn,
            cdnr=cdnr,
            cdnur=cdnur,
            nil=nil,
        )
        logger.info(
            f"GSTR-1 {report.fp}: {len(invoices)} invoices, b2b={len(b2b)} b2cl={len(b2cl)} "
            f"b2cs={len(b2cs)} notes={len(cdnr) + len(cdnur)}"
        )
        return report

    # ── Line tax ─────────────────────────────────────────────────────────────

    @staticmethod
    def _line_tax(shop: Shop, line: SaleLine) -> TaxLine:
        customer_state = line.customer.state if line.customer else None
        taxed = compute_line_tax(
            rate=line.item.rate,
            quantity=line.item.quantity,
            discount_percent=line.item.discount,
            gst_rate=line.item.gst_rate,
            is_inclusive=shop.is_inclusive,
        )
        return taxed.split(is_interstate(shop.state, customer_state))

    def _taxed_invoices(self, shop: Shop, lines: list[SaleLine]) -> list[_Invoice]:
        invoices: "OrderedDict[int, _Invoice]" = OrderedDict()
        for line in lines:
            if not line.item.gst_rate or line.item.gst_rate <= 0:
                continue
            invoice = invoices.get(line.sale.id)
            if invoice is None:
                customer_state = line.customer.state if line.customer else None
                invoice = _Invoice(
                    head=line,
                    interstate=is_interstate(shop.state, customer_state),
                    pos=_place_of_supply(shop, customer_state, line.sale.reference_no),
                )
                invoices[line.sale.id] = invoice
            invoice.taxed.append((line.item.gst_rate, self._line_tax(shop, line)))
        return list(invoices.values())

    # ── B2B / B2CL / B2CS ────────────────────────────────────────────────────

    def _categorize(self, invoices: list[_Invoice]):
        b2b: "OrderedDict[str, list[Invoice]]" = OrderedDict()
        b2cl: list[Invoice] = []
        b2cs: "OrderedDict[tuple, _Totals]" = OrderedDict()

        for inv in invoices:
            sale = inv.head.sale
            customer = inv.head.customer
            gstin = customer.gst_no if customer else None

            if not gstin and not (inv.interstate and sale.total_amount > self.b2cl_limit):
                supply = SupplyType.INTER if inv.interstate else SupplyType.INTRA
                for rate, line in inv.taxed:
                    b2cs.setdefault((supply, inv.pos, rate), _Totals()).add(line)
                continue

            invoice = Invoice(
                inum=sale.reference_no,
                idt=_gst_date(sale.created_at),
                val=round_amount(sale.total_amount),
                pos=inv.pos,
                rchrg="Y" if sale.is_reverse_charge else "N",
                itms=[_item(i, rate, line) for i, (rate, line) in enumerate(inv.taxed, start=1)],
            )
            if gstin:
                b2b.setdefault(gstin, []).append(invoice)
            else:
                b2cl.append(invoice)

        small = [
            B2CSEntry(
                sply_ty=supply.value,
                pos=pos,
                rt=rate,
                txval=round_amount(t.txval),
                iamt=round_amount(t.iamt),
                camt=round_amount(t.camt),
                samt=round_amount(t.samt),
            )
            for (supply, pos, rate), t in b2cs.items()
        ]
        return [B2BEntry(ctin=g, inv=invs) for g, invs in b2b.items()], b2cl, small

    # ── HSN and nil-rated summaries ──────────────────────────────────────────

    def _hsn_summary(self, shop: Shop, lines: list[SaleLine]) -> HsnSummary:
        totals: "OrderedDict[tuple, _Totals]" = OrderedDict()
        for line in lines:
            if not line.item.gst_rate or line.item.gst_rate <= 0:
                continue
            product = line.product
            key = (product.hsn if product else None, product.name if product else None)
            totals.setdefault(key, _Totals()).add(self._line_tax(shop, line), line.item.quantity)

        return HsnSummary(
            data=[
                HsnRow(
                    num=num,
                    hsn_sc=hsn,
                    desc=desc,
                    qty=round_amount(t.qty),
                    val=round_amount(t.val),
                    txval=round_amount(t.txval),
                    iamt=round_amount(t.iamt),
                    camt=round_amount(t.camt),
                    samt=round_amount(t.samt),
                )
                for num, ((hsn, desc), t) in enumerate(totals.items(), start=1)
            ]
        )

    def _nil_summary(self, shop: Shop, lines: list[SaleLine]) -> NilSummary:
        totals = {SupplyType.INTER: 0.0, SupplyType.INTRA: 0.0}
        seen = set()
        for line in lines:
            if line.item.gst_rate:
                continue
            supply = SupplyType.INTER if is_interstate(
                shop.state, line.customer.state if line.customer else None
            ) else SupplyType.INTRA
            totals[supply] += self._line_tax(shop, line).total_value
            seen.add(supply)

        return NilSummary(
            inv=[
                NilRow(sply_ty=supply.value, nil_amt=round_amount(totals[supply]))
                for supply in (SupplyType.INTER, SupplyType.INTRA)
                if supply in seen
            ]
        )

    # ── Credit / debit notes ─────────────────────────────────────────────────

    def _notes(self, shop: Shop, rows: list[NoteRow]):
        cdnr: "OrderedDict[str, list[Note]]" = OrderedDict()
        cdnur: list[UnregisteredNote] = []

        for row in rows:
            note = row.note
            gst_amount = note.gst_amount or 0.0
            taxable = note.amount - gst_amount
            rate = gst_amount / taxable * 100 if taxable > 0 else 0.0
            interstate = is_interstate(shop.state, row.party_state)
            line = TaxLine(taxable, gst_amount, note.amount).split(interstate)
            original = row.original_invoice

            fields = dict(
                nt_num=note.reference_no,
                nt_dt=_gst_date(note.transaction_date),
                ntty="C" if note.type == TransactionType.credit_note else "D",
                val=round_amount(note.amount),
                pos=_place_of_supply(shop, row.party_state, note.reference_no),
                inum=original.reference_no if original else None,
                idt=_gst_date(original.created_at) if original else None,
                itms=[_item(1, round_amount(rate), line)],
            )
            if row.party_gstin:
                cdnr.setdefault(row.party_gstin, []).append(Note(**fields))
            else:
                large = interstate and note.amount > self.b2cl_limit
                cdnur.append(UnregisteredNote(typ="B2CL" if large else "B2CS", **fields))

        return [CdnrEntry(ctin=g, nt=notes) for g, notes in cdnr.items()], cdnur
