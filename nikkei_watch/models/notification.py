# nikkei_watch/models/notification.py

"""Signal and notification models."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class SignalKind(str, Enum):
    """Kinds of alert the evaluator can fire."""

    LARGE_DROP = "large_drop"
    BUY = "buy"
    SELL = "sell"


@dataclass
class Signal:
    """A fired alert awaiting delivery.

    ``reference_price`` is the base price for buy/sell signals and the
    previous close for a large drop.
    """

    kind: SignalKind
    current_price: Decimal
    trigger_price: Decimal
    reference_price: Decimal

    @property
    def drop_amount(self) -> Decimal:
        """Yen drop versus the reference price (large_drop only)."""
        return self.reference_price - self.current_price


@dataclass
class NotificationRecord:
    """Append-only record of one delivery attempt."""

    signal_kind: SignalKind
    current_price: Decimal
    trigger_price: Decimal
    delivered: bool
    error: str | None = None
    timestamp: datetime | None = None
