# nikkei_watch/services/snapshot_builder.py

"""Merge live and historical extraction results into one snapshot."""

import logging
from collections.abc import Callable
from datetime import date
from decimal import Decimal

from nikkei_watch.config.settings import Settings
from nikkei_watch.errors import ExtractionError
from nikkei_watch.models.price_snapshot import (
    CurrentQuote,
    HistoricalRow,
    PriceSnapshot,
)
from nikkei_watch.parsers.normalizer import compute_change_rate, rate_to_percent

logger = logging.getLogger("nikkei_watch.snapshot")

PreviousCloseLookup = Callable[[date], Decimal | None]


def is_plausible_close(close: Decimal | None) -> bool:
    """True when *close* lies strictly inside the index's sane band."""
    if close is None:
        return False
    return (
        Settings.PLAUSIBLE_CLOSE_MIN < close < Settings.PLAUSIBLE_CLOSE_MAX
    )


def previous_close_from_rows(
    rows: list[HistoricalRow],
    trading_date: date,
) -> Decimal | None:
    """Close of the second table row if it predates *trading_date*."""
    if len(rows) < 2:
        return None
    candidate = rows[1]
    if candidate.date < trading_date and is_plausible_close(candidate.close):
        return candidate.close
    return None


class SnapshotBuilder:
    """Build a :class:`PriceSnapshot` or fail loudly.

    The live page only exposes a single price, which is spread across
    open/high/low/close as a placeholder.  A plausible historical row
    replaces those placeholders with the real OHLC and trading date.
    """

    def __init__(
        self,
        previous_close_lookup: PreviousCloseLookup | None = None,
    ) -> None:
        self._previous_close_lookup = previous_close_lookup

    def resolve_previous_close(
        self,
        rows: list[HistoricalRow],
        trading_date: date,
    ) -> Decimal | None:
        """Previous close for *trading_date*: stored history, then the table.

        The second table row only counts when the first row is the
        trading date itself.
        """
        if self._previous_close_lookup is not None:
            stored = self._previous_close_lookup(trading_date)
            if stored is not None:
                return stored
        if rows and rows[0].date == trading_date:
            return previous_close_from_rows(rows, trading_date)
        return None

    def build(
        self,
        current: CurrentQuote | None,
        historical_rows: list[HistoricalRow],
        run_date: date | None = None,
    ) -> PriceSnapshot:
        """Combine the extracted fields.

        Raises:
            ExtractionError: if the live price is missing or the final
                close is outside the plausibility band.
        """
        today = run_date or date.today()
        if current is None:
            raise ExtractionError(
                "price",
                "live price not found by any strategy",
                url=Settings.CURRENT_PRICE_URL,
            )

        latest = historical_rows[0] if historical_rows else None
        used_history = latest is not None and is_plausible_close(
            latest.close
        )
        if latest is not None and used_history:
            snapshot = PriceSnapshot(
                date=latest.date,
                close=latest.close,
                open=latest.open,
                high=latest.high,
                low=latest.low,
            )
            logger.debug(
                "Using historical OHLC for %s", latest.date.isoformat()
            )
        else:
            if latest is not None:
                logger.warning(
                    "Historical close %s outside plausibility band, "
                    "keeping live price",
                    latest.close,
                )
            snapshot = PriceSnapshot(
                date=today,
                close=current.price,
                open=current.price,
                high=current.price,
                low=current.price,
            )

        if not is_plausible_close(snapshot.close):
            raise ExtractionError(
                "close",
                f"close {snapshot.close} outside "
                f"({Settings.PLAUSIBLE_CLOSE_MIN}, "
                f"{Settings.PLAUSIBLE_CLOSE_MAX})",
                url=Settings.CURRENT_PRICE_URL,
                raw=str(snapshot.close),
            )

        snapshot.change = current.change
        snapshot.change_percent = current.change_percent
        if snapshot.change is None or snapshot.change_percent is None:
            previous = self.resolve_previous_close(
                historical_rows, snapshot.date
            )
            rate = compute_change_rate(snapshot.close, previous)
            if previous is not None and rate is not None:
                if snapshot.change is None:
                    snapshot.change = snapshot.close - previous
                if snapshot.change_percent is None:
                    snapshot.change_percent = rate_to_percent(rate)
                logger.debug(
                    "Computed change from previous close %s", previous
                )
        return snapshot
