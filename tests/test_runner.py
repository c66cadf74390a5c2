# tests/test_runner.py

"""Tests for the headless CLI commands and argument dispatch."""

import unittest
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import main as entry
from nikkei_watch.cli import runner
from nikkei_watch.errors import PersistError
from nikkei_watch.models.notification import SignalKind
from nikkei_watch.services.run_orchestrator import RunResult, RunState
from nikkei_watch.storage.price_history_db import PriceHistoryDB

WEBHOOK = "https://hooks.slack.com/services/T/B/X"


class TestRunPipeline(unittest.TestCase):
    """Exit codes reflect the run outcome."""

    @patch("nikkei_watch.cli.runner.RunOrchestrator")
    def test_success_exit_zero(self, mock_orch_cls: MagicMock) -> None:
        """A DONE run without store errors exits 0."""
        mock_orch_cls.return_value.run.return_value = RunResult(
            state=RunState.DONE
        )
        self.assertEqual(runner.run_pipeline(), 0)
        mock_orch_cls.return_value.run.assert_called_once_with(
            skip_signals=False
        )

    @patch("nikkei_watch.cli.runner.RunOrchestrator")
    def test_failed_run_exit_one(self, mock_orch_cls: MagicMock) -> None:
        """A FAILED run exits 1."""
        mock_orch_cls.return_value.run.return_value = RunResult(
            state=RunState.FAILED, errors=["HTTP 503: unexpected status"]
        )
        self.assertEqual(runner.run_pipeline(), 1)

    @patch("nikkei_watch.cli.runner.RunOrchestrator")
    def test_persist_failure_exit_one(self, mock_orch_cls: MagicMock) -> None:
        """A finished run with a store error still exits 1."""
        mock_orch_cls.return_value.run.return_value = RunResult(
            state=RunState.DONE, persist_failed=True
        )
        self.assertEqual(runner.run_pipeline(skip_signals=True), 1)
        mock_orch_cls.return_value.run.assert_called_once_with(
            skip_signals=True
        )


class TestDisplayCommands(unittest.TestCase):
    """History and notification tables."""

    def test_empty_history(self) -> None:
        """An empty store is not an error."""
        self.assertEqual(runner.show_history(), 0)
        self.assertEqual(runner.show_notifications(), 0)

    def test_tables_render(self) -> None:
        """Stored rows render without error."""
        db = PriceHistoryDB()
        db.upsert_price_history(
            date(2025, 11, 28),
            Decimal("50253.91"),
            Decimal("50167.30"),
            Decimal("50548.77"),
            Decimal("50051.64"),
            Decimal("0.0017"),
        )
        db.append_notification(
            SignalKind.SELL, Decimal("53000"), Decimal("52000"), False,
            "Slack delivery failed",
        )
        db.close()
        with patch("nikkei_watch.cli.runner.Console") as mock_console:
            self.assertEqual(runner.show_history(5), 0)
            self.assertEqual(runner.show_notifications(5), 0)
        self.assertEqual(mock_console.return_value.print.call_count, 2)


    @patch("nikkei_watch.cli.runner.PriceHistoryDB")
    def test_store_read_failure_exit_one(self, mock_db_cls: MagicMock) -> None:
        """An unreadable store is reported, not raised."""
        db = mock_db_cls.return_value
        db.list_recent_history.side_effect = PersistError("disk I/O error")
        db.list_recent_notifications.side_effect = PersistError(
            "disk I/O error"
        )
        self.assertEqual(runner.show_history(), 1)
        self.assertEqual(runner.show_notifications(), 1)
        self.assertEqual(db.close.call_count, 2)


class TestSettingsCommand(unittest.TestCase):
    """--set-settings validation."""

    def test_valid_settings_saved(self) -> None:
        """Well-ordered thresholds are stored."""
        code = runner.set_settings(
            Decimal("50000"), Decimal("49000"), Decimal("52000"), WEBHOOK
        )
        self.assertEqual(code, 0)
        db = PriceHistoryDB()
        settings = db.get_settings()
        db.close()
        assert settings is not None
        self.assertEqual(settings.notification_target, WEBHOOK)

    def test_invalid_settings_rejected(self) -> None:
        """buy >= base exits 1 and stores nothing."""
        code = runner.set_settings(
            Decimal("50000"), Decimal("50000"), Decimal("52000")
        )
        self.assertEqual(code, 1)
        db = PriceHistoryDB()
        self.assertIsNone(db.get_settings())
        db.close()


class TestTestNotification(unittest.TestCase):
    """--test-notify."""

    def test_no_target_exit_one(self) -> None:
        """No stored target and no env webhook: nothing to send."""
        self.assertEqual(runner.send_test_notification(), 1)

    @patch("nikkei_watch.cli.runner.SlackNotifier")
    def test_uses_stored_target(self, mock_notifier_cls: MagicMock) -> None:
        """The stored webhook is used when present."""
        runner.set_settings(
            Decimal("50000"), Decimal("49000"), Decimal("52000"), WEBHOOK
        )
        mock_notifier_cls.return_value.send_test.return_value = True
        self.assertEqual(runner.send_test_notification(), 0)
        mock_notifier_cls.assert_called_once_with(WEBHOOK)

    @patch("nikkei_watch.cli.runner.SlackNotifier")
    def test_failed_send_exit_one(self, mock_notifier_cls: MagicMock) -> None:
        """An undelivered test message exits 1."""
        mock_notifier_cls.return_value.send_test.return_value = False
        with patch.object(runner.Settings, "SLACK_WEBHOOK_URL", WEBHOOK):
            self.assertEqual(runner.send_test_notification(), 1)


@patch("main.setup_logging")
class TestMainDispatch(unittest.TestCase):
    """Argument parsing and dispatch in main.py."""

    def _run(self, *argv: str) -> int:
        with patch("sys.argv", ["nikkei_watch", *argv]):
            with self.assertRaises(SystemExit) as ctx:
                entry.main()
        return int(ctx.exception.code or 0)

    @patch("nikkei_watch.cli.runner.run_pipeline", return_value=0)
    def test_default_runs_pipeline(
        self, mock_run: MagicMock, _log: MagicMock,
    ) -> None:
        """No flags runs the full pipeline."""
        self.assertEqual(self._run(), 0)
        mock_run.assert_called_once_with(skip_signals=False)

    @patch("nikkei_watch.cli.runner.run_pipeline", return_value=1)
    def test_no_signal_flag(
        self, mock_run: MagicMock, _log: MagicMock,
    ) -> None:
        """--no-signal is forwarded and the exit code propagated."""
        self.assertEqual(self._run("--no-signal"), 1)
        mock_run.assert_called_once_with(skip_signals=True)

    @patch(
        "nikkei_watch.cli.runner.run_pipeline",
        side_effect=RuntimeError("boom"),
    )
    def test_unexpected_error_exit_one(
        self, _run: MagicMock, _log: MagicMock,
    ) -> None:
        """An uncaught pipeline error becomes exit 1."""
        self.assertEqual(self._run(), 1)

    @patch("nikkei_watch.cli.runner.show_history", return_value=0)
    def test_history_flag(
        self, mock_show: MagicMock, _log: MagicMock,
    ) -> None:
        """--history without N uses the default limit."""
        self._run("--history")
        mock_show.assert_called_once_with(None)

    @patch("nikkei_watch.cli.runner.show_notifications", return_value=0)
    def test_notifications_flag_with_limit(
        self, mock_show: MagicMock, _log: MagicMock,
    ) -> None:
        """--notifications N forwards N."""
        self._run("--notifications", "5")
        mock_show.assert_called_once_with(5)

    @patch("nikkei_watch.cli.runner.set_settings", return_value=0)
    def test_set_settings_parses_prices(
        self, mock_set: MagicMock, _log: MagicMock,
    ) -> None:
        """Thousands separators are accepted in prices."""
        self._run(
            "--set-settings", "50,000", "49000", "52000.5",
            "--target", WEBHOOK,
        )
        mock_set.assert_called_once_with(
            Decimal("50000"), Decimal("49000"), Decimal("52000.5"), WEBHOOK
        )

    def test_set_settings_rejects_text(self, _log: MagicMock) -> None:
        """A non-numeric price is an argparse error (exit 2)."""
        with patch("sys.stderr"):
            self.assertEqual(
                self._run("--set-settings", "abc", "1", "2"), 2
            )

    def test_set_settings_rejects_non_finite(self, _log: MagicMock) -> None:
        """NaN and Infinity never reach the store."""
        for bad in ("NaN", "Infinity", "sNaN"):
            with self.subTest(bad=bad):
                with patch("sys.stderr"):
                    self.assertEqual(
                        self._run("--set-settings", "50000", "49000", bad),
                        2,
                    )

    @patch("nikkei_watch.cli.runner.send_test_notification", return_value=0)
    def test_test_notify_flag(
        self, mock_send: MagicMock, _log: MagicMock,
    ) -> None:
        """--test-notify sends one test message."""
        self.assertEqual(self._run("--test-notify"), 0)
        mock_send.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
