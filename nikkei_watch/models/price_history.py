# nikkei_watch/models/price_history.py

"""Persisted per-trading-day price record."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal


@dataclass
class PriceHistoryRecord:
    """One row of the price history table, unique per trading date."""

    date: date
    close: Decimal
    open: Decimal
    high: Decimal
    low: Decimal
    change_rate: Decimal | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
