# nikkei_watch/models/price_snapshot.py

"""Price observation models produced by the extraction pipeline."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass
class CurrentQuote:
    """Fields scraped from the live index page."""

    price: Decimal
    change: Decimal | None = None
    change_percent: Decimal | None = None


@dataclass
class HistoricalRow:
    """One row of the historical data table (most recent first)."""

    date: date
    close: Decimal
    open: Decimal
    high: Decimal
    low: Decimal


@dataclass
class PriceSnapshot:
    """A single trading day's normalised price record."""

    date: date
    close: Decimal
    open: Decimal
    high: Decimal
    low: Decimal
    change: Decimal | None = None
    change_percent: Decimal | None = None
