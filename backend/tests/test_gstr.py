"""Tests for GSTR-1 categorization."""
import time
from datetime import date

import pytest
from loguru import logger

from kosh_ledger.core.errors import ConfigurationError, InvalidPeriodError, ReportTimeoutError
from kosh_ledger.engine.gstr import Gstr1Builder

ON = date(2024, 1, 10)


def line(product, rate, quantity=1, gst_rate=18, discount=0):
    return {
        "product_id": product.id,
        "rate": rate,
        "quantity": quantity,
        "gst_rate": gst_rate,
        "discount": discount,
    }


@pytest.fixture
def shop(seed):
    return seed.shop()


@pytest.fixture
def tv(seed):
    return seed.product("Television", hsn="8528", gst_rate=18)


@pytest.fixture
def build(store):
    def _build(**kw):
        kw.setdefault("period_type", "month")
        kw.setdefault("year", 2024)
        kw.setdefault("month", 1)
        return Gstr1Builder(store, b2cl_limit=250000).build(**kw)
    return _build


class TestPreconditions:
    def test_missing_shop(self, build):
        with pytest.raises(ConfigurationError):
            build()

    def test_shop_without_gstin(self, seed, build):
        seed.shop(gstin=None)
        with pytest.raises(ConfigurationError):
            build()

    def test_shop_without_state(self, seed, build):
        seed.shop(state=None)
        with pytest.raises(ConfigurationError):
            build()

    def test_quarter_needs_number(self, shop, build):
        with pytest.raises(InvalidPeriodError):
            build(period_type="quarter", month=None)

    def test_empty_period_gives_empty_sections(self, shop, build):
        report = build()
        assert report.gstin == "32ABCDE1234F1Z5"
        assert report.fp == "012024"
        assert report.b2b == [] and report.b2cl == [] and report.b2cs == []
        assert report.hsn.data == [] and report.nil.inv == []
        assert report.cdnr == [] and report.cdnur == []


class TestInvoiceBuckets:
    def test_large_interstate_b2c_invoice(self, shop, tv, seed, build):
        buyer = seed.customer("Nikhil", state="Karnataka")
        seed.sale(buyer, ON, 295000, items=(line(tv, 250000),))

        report = build()

        assert report.b2cs == []
        [invoice] = report.b2cl
        assert invoice.val == 295000
        assert invoice.pos == "29"
        assert invoice.idt == "10-01-2024"
        det = invoice.itms[0].itm_det
        assert (det.txval, det.rt, det.iamt, det.camt, det.samt) == (250000, 18, 45000, 0, 0)

    def test_large_intrastate_b2c_invoice_is_small(self, shop, tv, seed, build):
        buyer = seed.customer("Meera", state="Kerala")
        seed.sale(buyer, ON, 295000, items=(line(tv, 250000),))

        report = build()

        assert report.b2cl == []
        [row] = report.b2cs
        assert (row.sply_ty, row.typ, row.pos, row.rt) == ("INTRA", "OE", "32", 18)
        assert (row.txval, row.iamt, row.camt, row.samt) == (250000, 0, 22500, 22500)

    def test_small_interstate_invoice(self, shop, tv, seed, build):
        buyer = seed.customer("Nikhil", state="Karnataka")
        seed.sale(buyer, ON, 1180, items=(line(tv, 1000),))

        [row] = build().b2cs
        assert (row.sply_ty, row.pos, row.iamt) == ("INTER", "29", 180)

    def test_b2cs_aggregates_by_place_and_rate(self, shop, tv, seed, build):
        cable = seed.product("Cable", hsn="8544", gst_rate=12)
        a = seed.customer("A", state="Kerala")
        b = seed.customer("B")
        seed.sale(a, ON, 1180, items=(line(tv, 1000),))
        seed.sale(b, ON, 590, items=(line(tv, 500),))
        seed.sale(a, ON, 224, items=(line(cable, 100, quantity=2, gst_rate=12),))

        rows = {(r.pos, r.rt): r for r in build().b2cs}

        assert set(rows) == {("32", 18), ("32", 12)}
        assert rows[("32", 18)].txval == 1500
        assert rows[("32", 18)].camt == 135
        assert rows[("32", 12)].txval == 200

    def test_b2cs_keeps_inter_and_intra_rows_apart(self, shop, tv, seed, build):
        local = seed.customer("Local", state="Kerala")
        misspelt = seed.customer("Misspelt", state="Kerela")
        seed.sale(local, ON, 1180, items=(line(tv, 1000),))
        seed.sale(misspelt, ON, 1180, items=(line(tv, 1000),))

        warnings = []
        sink = logger.add(lambda m: warnings.append(m.record["message"]), level="WARNING")
        try:
            rows = {r.sply_ty: r for r in build().b2cs}
        finally:
            logger.remove(sink)

        assert set(rows) == {"INTRA", "INTER"}
        intra, inter = rows["INTRA"], rows["INTER"]
        assert (intra.pos, intra.txval, intra.iamt, intra.camt, intra.samt) == ("32", 1000, 0, 90, 90)
        assert (inter.pos, inter.txval, inter.iamt, inter.camt, inter.samt) == (None, 1000, 180, 0, 0)
        assert any("Kerela" in w for w in warnings)

    def test_b2b_grouped_by_gstin(self, shop, tv, seed, build):
        dealer = seed.customer("Dealer", state="Tamil Nadu", gst_no="33AAACD1234E1Z2")
        seed.sale(dealer, ON, 1180, items=(line(tv, 1000),))
        seed.sale(dealer, date(2024, 1, 11), 2360, items=(line(tv, 1000, quantity=2),), is_reverse_charge=True)

        report = build()

        [entry] = report.b2b
        assert entry.ctin == "33AAACD1234E1Z2"
        assert [i.rchrg for i in entry.inv] == ["N", "Y"]
        assert entry.inv[1].itms[0].itm_det.iamt == 360
        assert report.b2cs == [] and report.b2cl == []

    def test_quotes_and_cancelled_sales_are_skipped(self, shop, tv, seed, build):
        c = seed.customer()
        seed.sale(c, ON, 1180, items=(line(tv, 1000),), is_quote=True)
        seed.sale(c, ON, 1180, items=(line(tv, 1000),), status="cancelled")

        report = build()
        assert report.b2cs == [] and report.hsn.data == []

    def test_sales_outside_period_are_skipped(self, shop, tv, seed, build):
        c = seed.customer()
        seed.sale(c, date(2024, 2, 1), 1180, items=(line(tv, 1000),))

        assert build().b2cs == []

    def test_inclusive_pricing(self, seed, tv, build):
        seed.shop(is_inclusive=True)
        c = seed.customer()
        seed.sale(c, ON, 118, items=(line(tv, 118),))

        [row] = build().b2cs
        assert (row.txval, row.camt, row.samt) == (100, 9, 9)


class TestSummaries:
    def test_hsn_spans_all_buckets(self, shop, tv, seed, build):
        dealer = seed.customer("Dealer", state="Kerala", gst_no="32AAACD1234E1Z2")
        walk_in = seed.customer("Walk-in", state="Karnataka")
        seed.sale(dealer, ON, 1180, items=(line(tv, 1000),))
        seed.sale(walk_in, ON, 2360, items=(line(tv, 1000, quantity=2),))

        [row] = build().hsn.data

        assert (row.num, row.hsn_sc, row.desc, row.uqc) == (1, "8528", "Television", "NOS")
        assert (row.qty, row.txval, row.val) == (3, 3000, 3540)
        assert (row.iamt, row.camt, row.samt) == (360, 90, 90)

    def test_nil_rated_lines(self, shop, tv, seed, build):
        rice = seed.product("Rice", hsn="1006", gst_rate=0)
        local = seed.customer("Local", state="Kerala")
        seed.sale(local, ON, 1180 + 400, items=(line(tv, 1000), line(rice, 100, quantity=4, gst_rate=0)))

        report = build()

        [nil] = report.nil.inv
        assert (nil.sply_ty, nil.nil_amt, nil.expt_amt, nil.ngsup_amt) == ("INTRA", 400, 0, 0)
        assert [r.hsn_sc for r in report.hsn.data] == ["8528"]
        assert len(report.b2cs) == 1


class TestNotes:
    def test_registered_credit_note(self, shop, seed, build):
        dealer = seed.customer("Dealer", state="Kerala", gst_no="32AAACD1234E1Z2")
        sale = seed.sale(dealer, date(2024, 1, 2), 5900)
        seed.credit_note(dealer, ON, 1180, gst_amount=180, bill=sale)

        [entry] = build().cdnr

        assert entry.ctin == "32AAACD1234E1Z2"
        [note] = entry.nt
        assert (note.ntty, note.val, note.nt_dt) == ("C", 1180, "10-01-2024")
        assert (note.inum, note.idt) == (sale.reference_no, "02-01-2024")
        det = note.itms[0].itm_det
        assert (det.txval, det.rt, det.camt, det.samt, det.iamt) == (1000, 18, 90, 90, 0)

    def test_supplier_debit_note_uses_supplier_gstin(self, shop, seed, build):
        vendor = seed.supplier(state="Karnataka", gst_number="29AAACV9999E1Z1")
        seed.debit_note(vendor, ON, 560, gst_amount=60)

        [entry] = build().cdnr

        assert entry.ctin == "29AAACV9999E1Z1"
        det = entry.nt[0].itms[0].itm_det
        assert entry.nt[0].ntty == "D"
        assert (det.txval, det.rt, det.iamt) == (500, 12, 60)

    def test_unregistered_note(self, shop, seed, build):
        c = seed.customer("Walk-in")
        seed.credit_note(c, ON, 590, gst_amount=90)

        report = build()

        assert report.cdnr == []
        [note] = report.cdnur
        assert (note.typ, note.pos, note.inum) == ("B2CS", "32", None)

    def test_deleted_note_is_skipped(self, shop, seed, build):
        c = seed.customer("Walk-in")
        seed.credit_note(c, ON, 590, gst_amount=90, status="deleted")

        assert build().cdnur == []

    def test_note_without_gst(self, shop, seed, build):
        c = seed.customer("Walk-in")
        seed.credit_note(c, ON, 100, gst_amount=0)

        [note] = build().cdnur
        assert note.itms[0].itm_det.rt == 0


class TestBudget:
    def test_slow_summary_phase_times_out(self, shop, tv, seed, store, monkeypatch):
        c = seed.customer(state="Kerala")
        seed.sale(c, ON, 1180, items=(line(tv, 1000),))
        slow = Gstr1Builder._hsn_summary

        def _slow_hsn(self, *args):
            time.sleep(0.3)
            return slow(self, *args)

        monkeypatch.setattr(Gstr1Builder, "_hsn_summary", _slow_hsn)

        with pytest.raises(ReportTimeoutError):
            with store.budget(seconds=0.1):
                Gstr1Builder(store).build(period_type="month", year=2024, month=1)

    def test_fast_build_within_budget(self, shop, tv, seed, store):
        c = seed.customer(state="Kerala")
        seed.sale(c, ON, 1180, items=(line(tv, 1000),))

        with store.budget(seconds=30):
            report = Gstr1Builder(store).build(period_type="month", year=2024, month=1)
        assert len(report.b2cs) == 1
