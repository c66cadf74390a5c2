# nikkei_watch/services/run_orchestrator.py

"""Sequences one fetch → extract → persist → evaluate → notify run."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from nikkei_watch.config.settings import Settings
from nikkei_watch.errors import ExtractionError, PersistError, TransportError
from nikkei_watch.models.alert_settings import AlertSettings
from nikkei_watch.models.notification import (
    NotificationRecord,
    Signal,
    SignalKind,
)
from nikkei_watch.models.price_snapshot import HistoricalRow, PriceSnapshot
from nikkei_watch.notifiers.slack_notifier import SlackNotifier
from nikkei_watch.parsers.normalizer import compute_change_rate, rate_to_percent
from nikkei_watch.scrapers.field_extractor import FieldExtractor
from nikkei_watch.scrapers.page_fetcher import PageFetcher
from nikkei_watch.services.signal_evaluator import evaluate
from nikkei_watch.services.snapshot_builder import SnapshotBuilder
from nikkei_watch.storage.file_manager import FileManager
from nikkei_watch.storage.price_history_db import PriceHistoryDB

logger = logging.getLogger("nikkei_watch.orchestrator")

NotifierFactory = Callable[[str], SlackNotifier]


class RunState(str, Enum):
    """Pipeline stages; FAILED is absorbing."""

    FETCH = "fetch"
    EXTRACT = "extract"
    PERSIST = "persist"
    EVALUATE = "evaluate"
    NOTIFY = "notify"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunResult:
    """Outcome of a single pipeline run."""

    state: RunState = RunState.FETCH
    snapshot: PriceSnapshot | None = None
    previous_close: Decimal | None = None
    change_rate: Decimal | None = None
    signals: list[Signal] = field(
        default_factory=lambda: list[Signal]()
    )
    notifications: list[NotificationRecord] = field(
        default_factory=lambda: list[NotificationRecord]()
    )
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )
    persist_failed: bool = False

    @property
    def success(self) -> bool:
        """True when the run finished and every store write landed."""
        return self.state is RunState.DONE and not self.persist_failed


def _yen(value: Decimal) -> str:
    return f"¥{value:,.0f}"


class RunOrchestrator:
    """Run the scrape-and-alert pipeline against an injected store.

    The fetcher, extractor, notifier factory and debug-dump writer are
    optional and default to the concrete implementations.
    """

    def __init__(
        self,
        store: PriceHistoryDB,
        fetcher: PageFetcher | None = None,
        extractor: FieldExtractor | None = None,
        notifier_factory: NotifierFactory | None = None,
        file_manager: FileManager | None = None,
    ) -> None:
        self.settings = Settings()
        self.store = store
        self.fetcher = fetcher or PageFetcher()
        self.extractor = extractor or FieldExtractor()
        self.builder = SnapshotBuilder(self._stored_previous_close)
        self._notifier_factory: NotifierFactory = (
            notifier_factory or SlackNotifier
        )
        self._file_manager = file_manager

    # ── Private helpers ──────────────────────────────────

    def _stored_previous_close(self, before: date) -> Decimal | None:
        """Store lookup that degrades to ``None`` on a read failure."""
        try:
            return self.store.get_previous_close(before)
        except PersistError as exc:
            logger.error("Previous close lookup failed: %s", exc)
            return None

    def _fail(self, result: RunResult, message: str) -> RunResult:
        failed_in = result.state.value
        result.errors.append(message)
        result.state = RunState.FAILED
        logger.error("Run failed during %s: %s", failed_in, message)
        return result

    def _dump_markup(self, pages: dict[str, str | None]) -> None:
        """Keep the raw HTML around so a markup change can be diagnosed."""
        try:
            if self._file_manager is None:
                self._file_manager = FileManager()
            for label, html in pages.items():
                if html:
                    self._file_manager.save_debug_html(html, label)
        except OSError as exc:
            logger.warning("Could not save debug HTML: %s", exc)

    def _fetch_optional(self, url: str, result: RunResult) -> str | None:
        """Fetch a page whose absence only degrades the snapshot."""
        try:
            return self.fetcher.fetch(url)
        except TransportError as exc:
            result.errors.append(str(exc))
            logger.warning(
                "Historical page unavailable, continuing with live "
                "price only: %s",
                exc,
            )
            return None

    def _load_settings(self, result: RunResult) -> AlertSettings | None:
        try:
            settings = self.store.get_settings()
        except PersistError as exc:
            result.errors.append(str(exc))
            logger.error("Could not read settings: %s", exc)
            return None
        if settings is None:
            logger.warning(
                "No active settings found, buy/sell rules skipped"
            )
            return None
        logger.info(
            "Settings: base %s, buy below %s, sell above %s",
            _yen(settings.base_price),
            _yen(settings.buy_signal_price),
            _yen(settings.sell_signal_price),
        )
        return settings

    def _deliver(
        self, notifier: SlackNotifier, signal: Signal,
    ) -> tuple[bool, str | None]:
        """Send one signal; exceptions become an undelivered outcome."""
        try:
            if signal.kind is SignalKind.LARGE_DROP:
                delivered = notifier.send_large_drop_alert(
                    signal.current_price,
                    signal.reference_price,
                    signal.drop_amount,
                )
            elif signal.kind is SignalKind.BUY:
                delivered = notifier.send_buy_signal(
                    signal.current_price,
                    signal.trigger_price,
                    signal.reference_price,
                )
            else:
                delivered = notifier.send_sell_signal(
                    signal.current_price,
                    signal.trigger_price,
                    signal.reference_price,
                )
        except Exception as exc:
            logger.error(
                "%s notification raised: %s",
                signal.kind.value,
                exc,
                exc_info=True,
            )
            return False, str(exc)
        if not delivered:
            return False, "Slack delivery failed"
        return True, None

    def _record(
        self,
        result: RunResult,
        signal: Signal,
        delivered: bool,
        error: str | None,
    ) -> NotificationRecord:
        """Append the delivery outcome; a store failure is non-fatal."""
        try:
            return self.store.append_notification(
                signal.kind,
                signal.current_price,
                signal.trigger_price,
                delivered,
                error,
            )
        except PersistError as exc:
            result.persist_failed = True
            result.errors.append(str(exc))
            logger.error("Could not record notification: %s", exc)
            return NotificationRecord(
                signal_kind=signal.kind,
                current_price=signal.current_price,
                trigger_price=signal.trigger_price,
                delivered=delivered,
                error=error,
                timestamp=datetime.now(),
            )

    # ── Stages ───────────────────────────────────────────

    def _persist(
        self,
        result: RunResult,
        snapshot: PriceSnapshot,
        rows: list[HistoricalRow],
    ) -> None:
        result.state = RunState.PERSIST
        previous = self.builder.resolve_previous_close(rows, snapshot.date)
        result.previous_close = previous
        result.change_rate = compute_change_rate(snapshot.close, previous)

        if previous is not None and result.change_rate is not None:
            logger.info(
                "Previous close: %s, change rate: %s%%",
                _yen(previous),
                rate_to_percent(result.change_rate),
            )
        else:
            logger.info(
                "No previous close found (first run?), change rate unset"
            )

        try:
            self.store.upsert_price_history(
                snapshot.date,
                snapshot.close,
                snapshot.open,
                snapshot.high,
                snapshot.low,
                result.change_rate,
            )
        except PersistError as exc:
            result.persist_failed = True
            result.errors.append(str(exc))
            logger.error("Saving price history failed: %s", exc)
            return
        logger.info(
            "Price history saved for %s (updated in place if present)",
            snapshot.date.isoformat(),
        )

    def _evaluate_and_notify(
        self, result: RunResult, snapshot: PriceSnapshot,
    ) -> None:
        result.state = RunState.EVALUATE
        settings = self._load_settings(result)
        result.signals = evaluate(
            snapshot, settings, result.previous_close
        )

        if not result.signals:
            logger.info("No signal (price within range)")
            return

        for signal in result.signals:
            logger.info(
                "Signal fired: %s (current %s, trigger %s)",
                signal.kind.value,
                _yen(signal.current_price),
                _yen(signal.trigger_price),
            )

        result.state = RunState.NOTIFY
        target = (
            settings.notification_target if settings is not None else ""
        ) or self.settings.SLACK_WEBHOOK_URL
        notifier = self._notifier_factory(target)
        for signal in result.signals:
            delivered, error = self._deliver(notifier, signal)
            if delivered:
                logger.info("%s notification sent", signal.kind.value)
            else:
                logger.error(
                    "%s notification not delivered: %s",
                    signal.kind.value,
                    error,
                )
            result.notifications.append(
                self._record(result, signal, delivered, error)
            )

    # ── Entry point ──────────────────────────────────────

    def run(
        self,
        skip_signals: bool = False,
        run_date: date | None = None,
    ) -> RunResult:
        """Execute one pipeline run and return its outcome.

        With *skip_signals* the run only records prices.
        """
        today = run_date or date.today()
        result = RunResult()
        logger.info("=== Nikkei 225 watch run started ===")

        # FETCH
        current_url = self.settings.CURRENT_PRICE_URL
        try:
            current_html = self.fetcher.fetch(current_url)
        except TransportError as exc:
            return self._fail(result, str(exc))
        historical_html = self._fetch_optional(
            self.settings.HISTORICAL_URL, result
        )
        logger.info("Fetched pages")

        # EXTRACT
        result.state = RunState.EXTRACT
        current = self.extractor.extract_current_quote(
            self.extractor.parse_html(current_html)
        )
        rows: list[HistoricalRow] = []
        if historical_html:
            rows = self.extractor.extract_historical_rows(
                self.extractor.parse_html(historical_html),
                limit=2,
                today=today,
            )
        try:
            snapshot = self.builder.build(current, rows, run_date=today)
        except ExtractionError as exc:
            self._dump_markup({
                "current_price": current_html,
                "historical": historical_html,
            })
            return self._fail(result, str(exc))
        result.snapshot = snapshot
        logger.info(
            "Close %s on %s (open %s, high %s, low %s)",
            _yen(snapshot.close),
            snapshot.date.isoformat(),
            _yen(snapshot.open),
            _yen(snapshot.high),
            _yen(snapshot.low),
        )

        # PERSIST
        self._persist(result, snapshot, rows)

        # EVALUATE / NOTIFY
        if skip_signals:
            logger.info("Signal evaluation skipped (--no-signal)")
        else:
            self._evaluate_and_notify(result, snapshot)

        result.state = RunState.DONE
        if result.success:
            logger.info("=== Run finished successfully ===")
        else:
            logger.error("=== Run finished with store errors ===")
        return result
