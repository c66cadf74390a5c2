# tests/test_signal_evaluator.py

"""Tests for threshold-based signal evaluation."""

import unittest
from datetime import date
from decimal import Decimal

from nikkei_watch.models.alert_settings import AlertSettings
from nikkei_watch.models.notification import SignalKind
from nikkei_watch.models.price_snapshot import PriceSnapshot
from nikkei_watch.services.signal_evaluator import evaluate

SETTINGS = AlertSettings(
    base_price=Decimal("50000"),
    buy_signal_price=Decimal("49000"),
    sell_signal_price=Decimal("52000"),
    notification_target="https://hooks.slack.com/services/T/B/X",
)


def _snapshot(close: str) -> PriceSnapshot:
    value = Decimal(close)
    return PriceSnapshot(
        date=date(2025, 11, 28),
        close=value,
        open=value,
        high=value,
        low=value,
    )


class TestEvaluate(unittest.TestCase):
    """Rules fire independently, in large_drop, buy, sell order."""

    def test_large_drop_and_buy(self) -> None:
        """51000 -> 48500 drops 2500 and crosses the buy line."""
        signals = evaluate(_snapshot("48500"), SETTINGS, Decimal("51000"))
        kinds = [s.kind for s in signals]
        self.assertEqual(kinds, [SignalKind.LARGE_DROP, SignalKind.BUY])

        drop, buy = signals
        self.assertEqual(drop.trigger_price, Decimal("51000"))
        self.assertEqual(drop.drop_amount, Decimal("2500"))
        self.assertEqual(buy.trigger_price, Decimal("49000"))
        self.assertEqual(buy.reference_price, Decimal("50000"))

    def test_sell_only_when_price_rises(self) -> None:
        """53000 after 52800 fires sell and nothing else."""
        signals = evaluate(_snapshot("53000"), SETTINGS, Decimal("52800"))
        self.assertEqual([s.kind for s in signals], [SignalKind.SELL])
        self.assertEqual(signals[0].trigger_price, Decimal("52000"))

    def test_drop_threshold_is_inclusive(self) -> None:
        """A drop of exactly 1500 fires."""
        signals = evaluate(_snapshot("50000"), SETTINGS, Decimal("51500"))
        self.assertEqual([s.kind for s in signals], [SignalKind.LARGE_DROP])

    def test_drop_below_threshold(self) -> None:
        """A drop of 1499 does not fire."""
        signals = evaluate(_snapshot("50001"), SETTINGS, Decimal("51500"))
        self.assertEqual(signals, [])

    def test_no_previous_close_disables_drop_rule(self) -> None:
        """First-ever run: only buy/sell can fire."""
        signals = evaluate(_snapshot("48500"), SETTINGS, None)
        self.assertEqual([s.kind for s in signals], [SignalKind.BUY])

    def test_no_settings_disables_threshold_rules(self) -> None:
        """Without settings, only the drop rule is evaluated."""
        signals = evaluate(_snapshot("40000"), None, Decimal("45000"))
        self.assertEqual([s.kind for s in signals], [SignalKind.LARGE_DROP])

    def test_within_range(self) -> None:
        """A price between the lines fires nothing."""
        self.assertEqual(
            evaluate(_snapshot("50500"), SETTINGS, Decimal("50400")), []
        )

    def test_thresholds_are_strict(self) -> None:
        """Prices equal to a signal line do not fire."""
        self.assertEqual(evaluate(_snapshot("49000"), SETTINGS, None), [])
        self.assertEqual(evaluate(_snapshot("52000"), SETTINGS, None), [])


if __name__ == "__main__":
    unittest.main()
