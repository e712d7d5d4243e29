"""Centralized logging setup using loguru."""
import sys
import time
from contextlib import contextmanager

from loguru import logger
from kosh_ledger.core.config import settings

# Every line carries the report it was emitted for ("-" outside any report)
LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[report]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def setup_logging() -> None:
    """Configure loguru sinks: colourised stderr plus a rotating report log."""
    logger.remove()
    logger.configure(extra={"report": "-"})
    logger.add(sys.stderr, level=settings.LOG_LEVEL, format=LOG_FORMAT, colorize=True)
    logger.add(
        settings.LOG_FILE,
        level=settings.LOG_LEVEL,
        format=LOG_FORMAT,
        rotation="10 MB",
        retention="30 days",
        compression="zip",
    )


@contextmanager
def report_scope(name: str):
    """Tag log lines inside the block with `name` and log how long it ran."""
    started = time.perf_counter()
    with logger.contextualize(report=name):
        try:
            yield
        except Exception as exc:
            logger.warning(f"{name} failed after {time.perf_counter() - started:.3f}s: {exc}")
            raise
        logger.info(f"{name} finished in {time.perf_counter() - started:.3f}s")
