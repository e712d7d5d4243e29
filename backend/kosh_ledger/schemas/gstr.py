"""
GSTR-1 return schemas.

Field names follow the GST portal's offline-tool JSON (inum, idt, txval …) so
the report can be exported without renaming. Every amount is already rounded
to 2 decimals when a model is built.
"""
from __future__ import annotations

from typing import Optional
from pydantic import BaseModel


class ItemDetail(BaseModel):
    txval: float  # taxable value
    rt: float  # GST rate, percent
    iamt: float = 0.0  # IGST
    camt: float = 0.0  # CGST
    samt: float = 0.0  # SGST
    csamt: float = 0.0  # cess


class InvoiceItem(BaseModel):
    num: int
    itm_det: ItemDetail


class Invoice(BaseModel):
    inum: str
    idt: str  # dd-mm-yyyy
    val: float
    pos: Optional[str]
    rchrg: str  # "Y" / "N"
    inv_typ: str = "R"
    itms: list[InvoiceItem]


class B2BEntry(BaseModel):
    ctin: str
    inv: list[Invoice]


class B2CSEntry(BaseModel):
    sply_ty: str  # "INTER" / "INTRA"
    typ: str = "OE"
    pos: Optional[str]
    rt: float
    txval: float
    iamt: float
    camt: float
    samt: float
    csamt: float = 0.0


class HsnRow(BaseModel):
    num: int
    hsn_sc: Optional[str]
    desc: Optional[str]
    uqc: str = "NOS"
    qty: float
    val: float
    txval: float
    iamt: float
    camt: float
    samt: float
    csamt: float = 0.0


class HsnSummary(BaseModel):
    data: list[HsnRow] = []


class Note(BaseModel):
    nt_num: str
    nt_dt: str  # dd-mm-yyyy
    ntty: str  # "C" credit / "D" debit
    val: float
    pos: Optional[str]
    rchrg: str = "N"
    inum: Optional[str] = None  # original invoice, when linked
    idt: Optional[str] = None
    itms: list[InvoiceItem]


class CdnrEntry(BaseModel):
    ctin: str
    nt: list[Note]


class UnregisteredNote(Note):
    typ: str  # "B2CL" / "B2CS"


class NilRow(BaseModel):
    sply_ty: str  # "INTER" / "INTRA"
    nil_amt: float
    expt_amt: float = 0.0
    ngsup_amt: float = 0.0


class NilSummary(BaseModel):
    inv: list[NilRow] = []


class Gstr1Report(BaseModel):
    gstin: str
    fp: str  # filing period MMYYYY
    b2b: list[B2BEntry]
    b2cl: list[Invoice]
    b2cs: list[B2CSEntry]
    hsn: HsnSummary
    cdnr: list[CdnrEntry]
    cdnur: list[UnregisteredNote]
    nil: NilSummary
