# nikkei_watch/storage/price_history_db.py

"""SQLite-backed store for settings, daily prices and notifications."""

import logging
import sqlite3
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from nikkei_watch.config.settings import Settings
from nikkei_watch.errors import PersistError
from nikkei_watch.models.alert_settings import AlertSettings
from nikkei_watch.models.notification import NotificationRecord, SignalKind
from nikkei_watch.models.price_history import PriceHistoryRecord

logger = logging.getLogger("nikkei_watch.price_history")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS settings (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    base_price          REAL    NOT NULL,
    buy_signal_price    REAL    NOT NULL,
    sell_signal_price   REAL    NOT NULL,
    notification_target TEXT    NOT NULL DEFAULT '',
    is_active           INTEGER NOT NULL DEFAULT 1,
    created_at          TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS price_history (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    date              TEXT    NOT NULL UNIQUE,
    close             REAL    NOT NULL,
    open              REAL    NOT NULL,
    high              REAL    NOT NULL,
    low               REAL    NOT NULL,
    price_change_rate REAL,
    created_at        TEXT    NOT NULL,
    updated_at        TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS notifications (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    signal_type   TEXT    NOT NULL
                  CHECK (signal_type IN ('buy', 'sell', 'large_drop')),
    current_price REAL    NOT NULL,
    trigger_price REAL    NOT NULL,
    delivered     INTEGER NOT NULL DEFAULT 0,
    error_message TEXT,
    notified_at   TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_notifications_notified_at
    ON notifications(notified_at);
"""


def _dec(value: float | None) -> Decimal | None:
    """SQLite REAL -> Decimal via its shortest repr."""
    return None if value is None else Decimal(str(value))


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


class PriceHistoryDB:
    """Store handle injected into the run orchestrator.

    One instance owns one connection; callers close it when done.
    """

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.PRICE_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        logger.debug(
            "PriceHistoryDB opened at %s", path,
        )

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Settings ─────────────────────────────────────────

    def get_settings(self) -> AlertSettings | None:
        """Return the active alert settings, or ``None`` if never set."""
        try:
            row = self._conn.execute(
                "SELECT base_price, buy_signal_price, sell_signal_price, "
                "       notification_target "
                "FROM settings WHERE is_active = 1 "
                "ORDER BY id DESC LIMIT 1",
            ).fetchone()
        except sqlite3.Error as exc:
            raise PersistError(f"Reading settings failed: {exc}") from exc
        if row is None:
            return None
        return AlertSettings(
            base_price=Decimal(str(row[0])),
            buy_signal_price=Decimal(str(row[1])),
            sell_signal_price=Decimal(str(row[2])),
            notification_target=row[3] or "",
        )

    def save_settings(
        self,
        base_price: Decimal,
        buy_signal_price: Decimal,
        sell_signal_price: Decimal,
        notification_target: str = "",
    ) -> AlertSettings:
        """Deactivate the current settings and insert a new active row.

        Raises:
            ValueError: unless buy < base < sell and all three are finite.
            PersistError: if the write fails.
        """
        prices = (base_price, buy_signal_price, sell_signal_price)
        if not all(p.is_finite() for p in prices):
            msg = f"Prices must be finite, got {prices}"
            raise ValueError(msg)
        if not buy_signal_price < base_price < sell_signal_price:
            msg = (
                "Expected buy < base < sell, got "
                f"buy={buy_signal_price} base={base_price} "
                f"sell={sell_signal_price}"
            )
            raise ValueError(msg)
        try:
            with self._conn:
                self._conn.execute(
                    "UPDATE settings SET is_active = 0"
                )
                self._conn.execute(
                    "INSERT INTO settings "
                    "(base_price, buy_signal_price, sell_signal_price, "
                    " notification_target, is_active, created_at) "
                    "VALUES (?, ?, ?, ?, 1, ?)",
                    (
                        float(base_price),
                        float(buy_signal_price),
                        float(sell_signal_price),
                        notification_target,
                        _now(),
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistError(f"Saving settings failed: {exc}") from exc
        logger.info(
            "Settings saved: base=%s buy=%s sell=%s",
            base_price,
            buy_signal_price,
            sell_signal_price,
        )
        return AlertSettings(
            base_price=base_price,
            buy_signal_price=buy_signal_price,
            sell_signal_price=sell_signal_price,
            notification_target=notification_target,
        )

    # ── Price history ────────────────────────────────────

    def get_previous_close(self, before_date: date) -> Decimal | None:
        """Most recent stored close strictly before *before_date*."""
        try:
            row = self._conn.execute(
                "SELECT close FROM price_history "
                "WHERE date < ? ORDER BY date DESC LIMIT 1",
                (before_date.isoformat(),),
            ).fetchone()
        except sqlite3.Error as exc:
            raise PersistError(
                f"Reading previous close failed: {exc}"
            ) from exc
        return _dec(row[0]) if row else None

    def upsert_price_history(
        self,
        trading_date: date,
        close: Decimal,
        open_: Decimal,
        high: Decimal,
        low: Decimal,
        change_rate: Decimal | None = None,
    ) -> None:
        """Insert or update the record for *trading_date*.

        Re-running on the same date overwrites prices in place, so
        overlapping runs never produce duplicate rows.
        """
        ts = _now()
        rate = None if change_rate is None else float(change_rate)
        try:
            with self._conn:
                self._conn.execute(
                    "INSERT INTO price_history "
                    "(date, close, open, high, low, price_change_rate, "
                    " created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT(date) DO UPDATE SET "
                    "close=excluded.close, open=excluded.open, "
                    "high=excluded.high, low=excluded.low, "
                    "price_change_rate=excluded.price_change_rate, "
                    "updated_at=excluded.updated_at",
                    (
                        trading_date.isoformat(),
                        float(close),
                        float(open_),
                        float(high),
                        float(low),
                        rate,
                        ts,
                        ts,
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistError(
                f"Upsert for {trading_date.isoformat()} failed: {exc}"
            ) from exc
        logger.debug(
            "Upserted price history for %s", trading_date.isoformat(),
        )

    def list_recent_history(
        self, limit: int = 30,
    ) -> list[PriceHistoryRecord]:
        """Return the latest *limit* records, newest first."""
        try:
            rows = self._conn.execute(
                "SELECT date, close, open, high, low, price_change_rate, "
                "       created_at, updated_at "
                "FROM price_history ORDER BY date DESC LIMIT ?",
                (limit,),
            ).fetchall()
        except sqlite3.Error as exc:
            raise PersistError(
                f"Reading price history failed: {exc}"
            ) from exc
        return [
            PriceHistoryRecord(
                date=date.fromisoformat(r[0]),
                close=Decimal(str(r[1])),
                open=Decimal(str(r[2])),
                high=Decimal(str(r[3])),
                low=Decimal(str(r[4])),
                change_rate=_dec(r[5]),
                created_at=datetime.fromisoformat(r[6]),
                updated_at=datetime.fromisoformat(r[7]),
            )
            for r in rows
        ]

    # ── Notifications ────────────────────────────────────

    def append_notification(
        self,
        kind: SignalKind,
        current_price: Decimal,
        trigger_price: Decimal,
        delivered: bool,
        error: str | None = None,
    ) -> NotificationRecord:
        """Append one delivery attempt to the notification log."""
        ts = _now()
        try:
            with self._conn:
                self._conn.execute(
                    "INSERT INTO notifications "
                    "(signal_type, current_price, trigger_price, "
                    " delivered, error_message, notified_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        kind.value,
                        float(current_price),
                        float(trigger_price),
                        1 if delivered else 0,
                        error,
                        ts,
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistError(
                f"Recording {kind.value} notification failed: {exc}"
            ) from exc
        return NotificationRecord(
            signal_kind=kind,
            current_price=current_price,
            trigger_price=trigger_price,
            delivered=delivered,
            error=error,
            timestamp=datetime.fromisoformat(ts),
        )

    def list_recent_notifications(
        self, limit: int = 20,
    ) -> list[NotificationRecord]:
        """Return the latest *limit* notification records, newest first."""
        try:
            rows = self._conn.execute(
                "SELECT signal_type, current_price, trigger_price, "
                "       delivered, error_message, notified_at "
                "FROM notifications ORDER BY notified_at DESC, id DESC "
                "LIMIT ?",
                (limit,),
            ).fetchall()
        except sqlite3.Error as exc:
            raise PersistError(
                f"Reading notifications failed: {exc}"
            ) from exc
        return [
            NotificationRecord(
                signal_kind=SignalKind(r[0]),
                current_price=Decimal(str(r[1])),
                trigger_price=Decimal(str(r[2])),
                delivered=bool(r[3]),
                error=r[4],
                timestamp=datetime.fromisoformat(r[5]),
            )
            for r in rows
        ]
