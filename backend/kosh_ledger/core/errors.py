"""Errors raised by the ledger and tax reporting engine."""


class LedgerError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(LedgerError):
    """Shop settings required by a report (GSTIN, state) are missing."""


class NotFoundError(LedgerError):
    """A referenced customer, supplier or product does not exist."""

    def __init__(self, kind: str, ref):
        self.kind = kind
        self.ref = ref
        super().__init__(f"{kind} not found: {ref}")


class InvalidPeriodError(LedgerError):
    """A period description cannot be resolved to concrete dates."""


class ReportTimeoutError(LedgerError):
    """A report exceeded its execution budget."""

    def __init__(self, budget: float, elapsed: float):
        self.budget = budget
        self.elapsed = elapsed
        super().__init__(
            f"Report exceeded its {budget:.1f}s budget after {elapsed:.1f}s"
        )
