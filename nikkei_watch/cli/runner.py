# nikkei_watch/cli/runner.py

"""Headless CLI commands: pipeline run, history views, settings."""

import logging
from decimal import Decimal

from rich.console import Console
from rich.table import Table

from nikkei_watch.config.settings import Settings
from nikkei_watch.errors import PersistError
from nikkei_watch.notifiers.slack_notifier import SlackNotifier
from nikkei_watch.services.run_orchestrator import RunOrchestrator
from nikkei_watch.storage.price_history_db import PriceHistoryDB

logger = logging.getLogger("nikkei_watch.cli")

# Stderr console for status messages so stdout stays clean for tables
_err = Console(stderr=True)


def _fmt(value: Decimal | None, places: int = 2) -> str:
    if value is None:
        return "—"
    return f"{value:,.{places}f}"


def _store_failed(exc: PersistError) -> int:
    logger.error("Store read failed: %s", exc)
    _err.print(f"[red]Store read failed: {exc}[/red]")
    return 1


def run_pipeline(skip_signals: bool = False) -> int:
    """Run one scrape-and-alert pass; 0 on success, 1 on failure."""
    db = PriceHistoryDB()
    try:
        result = RunOrchestrator(db).run(skip_signals=skip_signals)
    finally:
        db.close()

    for error_msg in result.errors:
        _err.print(f"[red]Error: {error_msg}[/red]")
    if result.success:
        _err.print(f"[green]✓ Run complete ({result.state.value})[/green]")
        return 0
    _err.print(f"[red]✗ Run failed ({result.state.value})[/red]")
    return 1


def show_history(limit: int | None = None) -> int:
    """Render the most recent price history as a Rich table."""
    db = PriceHistoryDB()
    try:
        records = db.list_recent_history(
            limit or Settings.HISTORY_DISPLAY_LIMIT
        )
    except PersistError as exc:
        return _store_failed(exc)
    finally:
        db.close()

    if not records:
        _err.print("[yellow]No price history recorded yet.[/yellow]")
        return 0

    table = Table(
        title="Nikkei 225 Price History",
        show_lines=False,
        title_style="bold cyan",
    )
    table.add_column("Date", style="bold")
    table.add_column("Close", justify="right", style="green")
    table.add_column("Open", justify="right")
    table.add_column("High", justify="right")
    table.add_column("Low", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("Updated", style="dim")

    for r in records:
        if r.change_rate is None:
            change = "—"
        else:
            pct = r.change_rate * 100
            colour = "red" if pct < 0 else "green"
            change = f"[{colour}]{pct:+.2f}%[/{colour}]"
        table.add_row(
            r.date.isoformat(),
            _fmt(r.close),
            _fmt(r.open),
            _fmt(r.high),
            _fmt(r.low),
            change,
            r.updated_at.strftime("%Y-%m-%d %H:%M") if r.updated_at else "",
        )

    Console().print(table)
    return 0


def show_notifications(limit: int | None = None) -> int:
    """Render the most recent notification attempts as a Rich table."""
    db = PriceHistoryDB()
    try:
        records = db.list_recent_notifications(
            limit or Settings.NOTIFICATION_DISPLAY_LIMIT
        )
    except PersistError as exc:
        return _store_failed(exc)
    finally:
        db.close()

    if not records:
        _err.print("[yellow]No notifications recorded yet.[/yellow]")
        return 0

    table = Table(
        title="Notification History",
        show_lines=False,
        title_style="bold cyan",
    )
    table.add_column("Time", style="dim")
    table.add_column("Signal", style="magenta")
    table.add_column("Current", justify="right")
    table.add_column("Trigger", justify="right")
    table.add_column("Delivered", justify="center")
    table.add_column("Error", overflow="fold", style="dim")

    for n in records:
        table.add_row(
            n.timestamp.strftime("%Y-%m-%d %H:%M:%S") if n.timestamp else "",
            n.signal_kind.value,
            _fmt(n.current_price, 0),
            _fmt(n.trigger_price, 0),
            "[green]✅[/green]" if n.delivered else "[red]❌[/red]",
            n.error or "",
        )

    Console().print(table)
    return 0


def set_settings(
    base_price: Decimal,
    buy_signal_price: Decimal,
    sell_signal_price: Decimal,
    notification_target: str = "",
) -> int:
    """Store new active thresholds."""
    db = PriceHistoryDB()
    try:
        db.save_settings(
            base_price,
            buy_signal_price,
            sell_signal_price,
            notification_target,
        )
    except (ValueError, PersistError) as exc:
        logger.error("Settings rejected: %s", exc)
        _err.print(f"[red]Settings rejected: {exc}[/red]")
        return 1
    finally:
        db.close()

    _err.print(
        f"[green]✓ Settings saved: buy < ¥{buy_signal_price:,.0f} "
        f"< base ¥{base_price:,.0f} < sell ¥{sell_signal_price:,.0f}"
        "[/green]"
    )
    return 0


def send_test_notification() -> int:
    """Send a Slack test message to the configured target."""
    db = PriceHistoryDB()
    try:
        settings = db.get_settings()
    except PersistError as exc:
        return _store_failed(exc)
    finally:
        db.close()

    target = (
        settings.notification_target if settings is not None else ""
    ) or Settings.SLACK_WEBHOOK_URL
    if not target:
        _err.print(
            "[red]No Slack webhook configured (settings or "
            "SLACK_WEBHOOK_URL).[/red]"
        )
        return 1

    if SlackNotifier(target).send_test():
        _err.print("[green]✓ Test notification sent[/green]")
        return 0
    _err.print("[red]✗ Test notification failed[/red]")
    return 1
