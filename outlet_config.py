# outlet_config.py
"""
Outlet-wide configuration for FPMS
Shift order, payment methods, density constants and dashboard thresholds.

IMPORTANT:
- SHIFT_SEQUENCE order drives the edit lock: a shift stays editable only until
  the NEXT shift of the same date has readings. Do not reorder.
- PAYMENT_METHODS keys must match the *_sales columns on NozzleReading.
"""

import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


class OutletConfig:
    """Configuration constants (environment overrides where noted)"""

    SHIFT_SEQUENCE = ["morning", "evening", "night"]

    SHIFT_LABELS = {
        "morning": "Morning",
        "evening": "Evening",
        "night": "Night",
    }

    PAYMENT_METHODS = ["cash", "credit", "upi", "card"]

    PAYMENT_LABELS = {
        "cash": "Cash",
        "credit": "Credit",
        "upi": "UPI",
        "card": "Card",
    }

    # Density at 15°C = observed * [1 + 0.0008 * (temp - 15)]
    DENSITY_REFERENCE_TEMP_C = 15.0
    DENSITY_CORRECTION_COEFFICIENT = 0.0008

    # Tank card banding (fill %): above NORMAL is normal, above LOW is low stock, else empty
    NORMAL_STOCK_PERCENT = 50.0
    LOW_STOCK_PERCENT = 20.0
    DEFAULT_MINIMUM_LEVEL = 500.0

    CALIBRATION_WARNING_DAYS = int(os.getenv("FPMS_CALIBRATION_WARNING_DAYS", "30"))

    REPORT_WEEK_DAYS = 7
    REPORT_MONTH_DAYS = 30

    CURRENCY_SYMBOL = os.getenv("FPMS_CURRENCY_SYMBOL", "₹")
    TIMEZONE = os.getenv("FPMS_TIMEZONE", "Asia/Kolkata")

    @staticmethod
    def next_shift(shift_type: str) -> Optional[str]:
        """Next shift of the same day, or None for the last shift"""
        seq = OutletConfig.SHIFT_SEQUENCE
        idx = seq.index(shift_type)
        return seq[idx + 1] if idx < len(seq) - 1 else None

    @staticmethod
    def shift_options() -> List[str]:
        return list(OutletConfig.SHIFT_SEQUENCE)

    @staticmethod
    def shift_label(shift_type: str) -> str:
        return OutletConfig.SHIFT_LABELS.get(shift_type, shift_type.title())

    @staticmethod
    def format_currency(amount: float) -> str:
        return f"{OutletConfig.CURRENCY_SYMBOL}{amount:,.2f}"
