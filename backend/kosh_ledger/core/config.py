"""Application configuration loaded from environment variables."""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent


class Settings:
    # SQLite DB URL (the POS application's store)
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'kosh.db'}"
    )

    # API server
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str = os.getenv("LOG_FILE", "logs/ledger.log")
    # Milliseconds a read waits on the POS writer's lock before failing
    DB_BUSY_TIMEOUT_MS: int = int(os.getenv("DB_BUSY_TIMEOUT_MS", "5000"))

    # CORS
    CORS_ORIGINS: list[str] = [
        o.strip()
        for o in os.getenv(
            "CORS_ORIGINS", "http://localhost:5173,http://localhost:3000"
        ).split(",")
    ]

    # Execution budget for a single report, in seconds (0 disables the check)
    REPORT_TIMEOUT_SECONDS: float = float(os.getenv("REPORT_TIMEOUT_SECONDS", "30"))

    # GSTR-1: unregistered interstate invoices above this value go to B2CL
    B2CL_INVOICE_LIMIT: float = float(os.getenv("B2CL_INVOICE_LIMIT", "250000"))

    # Customer segmentation thresholds
    DORMANT_DAYS: int = int(os.getenv("DORMANT_DAYS", "90"))
    VIP_REVENUE: float = float(os.getenv("VIP_REVENUE", "50000"))


settings = Settings()
