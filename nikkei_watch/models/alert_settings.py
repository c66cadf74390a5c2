# nikkei_watch/models/alert_settings.py

"""User-defined alert thresholds."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass
class AlertSettings:
    """Active thresholds read from the store.

    ``buy_signal_price < base_price < sell_signal_price`` is enforced
    when settings are written.
    """

    base_price: Decimal
    buy_signal_price: Decimal
    sell_signal_price: Decimal
    notification_target: str = ""
