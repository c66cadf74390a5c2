# nikkei_watch/services/signal_evaluator.py

"""Threshold-based alert evaluation."""

import logging
from decimal import Decimal

from nikkei_watch.config.settings import Settings
from nikkei_watch.models.alert_settings import AlertSettings
from nikkei_watch.models.notification import Signal, SignalKind
from nikkei_watch.models.price_snapshot import PriceSnapshot

logger = logging.getLogger("nikkei_watch.signals")


def evaluate(
    snapshot: PriceSnapshot,
    settings: AlertSettings | None,
    previous_close: Decimal | None,
) -> list[Signal]:
    """Return every signal that fires for *snapshot*.

    Rules are independent and reported in the order large_drop, buy,
    sell.  The drop rule needs a previous close; the buy/sell rules need
    settings.  Either missing input just disables its rules.
    """
    close = snapshot.close
    signals: list[Signal] = []

    threshold = Decimal(Settings.LARGE_DROP_THRESHOLD)
    if previous_close is not None and previous_close - close >= threshold:
        signals.append(
            Signal(
                kind=SignalKind.LARGE_DROP,
                current_price=close,
                trigger_price=previous_close,
                reference_price=previous_close,
            )
        )

    if settings is not None:
        if close < settings.buy_signal_price:
            signals.append(
                Signal(
                    kind=SignalKind.BUY,
                    current_price=close,
                    trigger_price=settings.buy_signal_price,
                    reference_price=settings.base_price,
                )
            )
        if close > settings.sell_signal_price:
            signals.append(
                Signal(
                    kind=SignalKind.SELL,
                    current_price=close,
                    trigger_price=settings.sell_signal_price,
                    reference_price=settings.base_price,
                )
            )

    for signal in signals:
        logger.debug(
            "Signal %s: current=%s trigger=%s",
            signal.kind.value,
            signal.current_price,
            signal.trigger_price,
        )
    return signals
