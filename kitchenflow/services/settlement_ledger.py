"""
Cashier Settlement Ledger with Concurrency Control

Process-safe Excel workbook of completed orders:
- One row per completed order, keyed by order id (re-delivery is a no-op)
- Running balance per cashier read back from the same workbook

Writers are Celery workers (or the in-process publisher in development),
so every read-modify-write happens under a FileLock next to the workbook.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from filelock import FileLock, Timeout

from kitchenflow.core.config import get_settings
from kitchenflow.services.fulfillment.financials import ZERO, money

logger = logging.getLogger(__name__)

# Columns read back as text so ids never turn into numbers
TEXT_COLUMNS = {"order_id": str, "order_number": str, "cashier_id": str, "payment_method": str}


class SettlementLedger:
    """
    Cashier settlement workbook.

    Attributes:
        file_path: Workbook location
        lock_path: Lock file guarding the workbook
        lock_timeout: Seconds to wait for the lock
    """

    COLUMNS = [
        "order_id",
        "order_number",
        "cashier_id",
        "payment_method",
        "total_amount",
        "completed_at",
        "recorded_at",
    ]

    def __init__(self, data_dir: str | Path, filename: str, lock_timeout: int = 30):
        self.data_dir = Path(data_dir)
        self.file_path = self.data_dir / filename
        self.lock_path = self.data_dir / f"{filename}.lock"
        self.lock_timeout = lock_timeout

    def _ensure_data_dir(self) -> None:
        """Create data directory if needed."""
        if not self.data_dir.exists():
            self.data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.data_dir}")

    def _load_df(self) -> pd.DataFrame:
        if self.file_path.exists():
            return pd.read_excel(self.file_path, engine="openpyxl", dtype=TEXT_COLUMNS)
        return pd.DataFrame(columns=self.COLUMNS)

    def record_settlement(self, event: dict[str, Any]) -> dict[str, Any]:
        """
        Append a completed order to the workbook.

        Args:
            event: ``order.completed`` event dictionary

        Returns:
            dict with success, message, order_id and recorded_at
        """
        self._ensure_data_dir()

        payload = event.get("payload", {})
        order_id = event.get("order_id")
        order_number = event.get("order_number")
        result = {
            "success": False,
            "message": "",
            "order_id": order_id,
            "recorded_at": None,
        }

        try:
            lock = FileLock(str(self.lock_path), timeout=self.lock_timeout)

            with lock:
                logger.debug(f"Lock acquired for Order #{order_number}")

                df = self._load_df()
                if order_id in set(df["order_id"]):
                    result["success"] = True
                    result["message"] = f"Order #{order_number} already settled"
                    logger.info(result["message"])
                    return result

                recorded_at = datetime.now().isoformat()
                new_row = {
                    "order_id": order_id,
                    "order_number": order_number,
                    "cashier_id": payload.get("cashier_id"),
                    "payment_method": payload.get("payment_method"),
                    "total_amount": float(payload.get("total_amount", 0)),
                    "completed_at": event.get("occurred_at"),
                    "recorded_at": recorded_at,
                }

                df = pd.concat([df, pd.DataFrame([new_row])], ignore_index=True)
                df.to_excel(str(self.file_path), index=False, engine="openpyxl")

                logger.info(
                    f"Order #{order_number} settled for cashier "
                    f"{new_row['cashier_id']} ({new_row['total_amount']:.2f})"
                )

                result["success"] = True
                result["message"] = f"Order #{order_number} settled"
                result["recorded_at"] = recorded_at

            logger.debug(f"Lock released for Order #{order_number}")

        except Timeout:
            result["message"] = f"Lock timeout ({self.lock_timeout}s)"
            logger.error(f"Lock timeout for Order #{order_number}")

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error settling Order #{order_number}")

        return result

    def get_entries(self, cashier_id: Optional[str] = None) -> list[dict[str, Any]]:
        """All settlement rows, optionally for one cashier."""
        if not self.file_path.exists():
            return []

        df = pd.read_excel(self.file_path, engine="openpyxl", dtype=TEXT_COLUMNS)
        if cashier_id is not None:
            df = df[df["cashier_id"] == cashier_id]
        return df.to_dict("records")

    def get_cashier_balance(self, cashier_id: str) -> Decimal:
        """Sum of the totals settled by a cashier."""
        entries = self.get_entries(cashier_id)
        return money(sum((Decimal(str(row["total_amount"])) for row in entries), ZERO))

    def clear(self) -> bool:
        """Delete the workbook and its lock file."""
        try:
            for f in [self.file_path, self.lock_path]:
                if f.exists():
                    f.unlink()
            logger.info("Settlement ledger cleared")
            return True
        except OSError as e:
            logger.error(f"Error clearing settlement ledger: {e}")
            return False


@lru_cache()
def get_settlement_ledger() -> SettlementLedger:
    """Ledger at DATA_DIRECTORY / LEDGER_FILENAME."""
    settings = get_settings()
    return SettlementLedger(
        data_dir=settings.data_directory,
        filename=settings.ledger_filename,
        lock_timeout=settings.ledger_lock_timeout,
    )
