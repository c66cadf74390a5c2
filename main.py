# main.py

"""Entry point for the nikkei_watch price monitor (run by a scheduler)."""

import argparse
import logging
import sys
from decimal import Decimal, InvalidOperation

from nikkei_watch.config.logging_config import setup_logging

logger = logging.getLogger("nikkei_watch.main")


def _price(text: str) -> Decimal:
    """argparse type for yen amounts such as ``38000`` or ``38,000``."""
    try:
        value = Decimal(text.replace(",", ""))
    except InvalidOperation as exc:
        msg = f"not a price: {text!r}"
        raise argparse.ArgumentTypeError(msg) from exc
    if not value.is_finite():
        msg = f"not a price: {text!r}"
        raise argparse.ArgumentTypeError(msg)
    return value


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="nikkei_watch",
        description=(
            "Scrape the Nikkei 225 price, record it and send "
            "threshold alerts."
        ),
    )
    parser.add_argument(
        "--no-signal",
        action="store_true",
        default=False,
        dest="no_signal",
        help="Record prices only; skip signal evaluation and alerts.",
    )
    parser.add_argument(
        "--history",
        type=int,
        nargs="?",
        const=0,
        default=None,
        metavar="N",
        help="Show the N most recent price records and exit.",
    )
    parser.add_argument(
        "--notifications",
        type=int,
        nargs="?",
        const=0,
        default=None,
        metavar="N",
        help="Show the N most recent notifications and exit.",
    )
    parser.add_argument(
        "--set-settings",
        nargs=3,
        type=_price,
        default=None,
        dest="set_settings",
        metavar=("BASE", "BUY", "SELL"),
        help="Save new thresholds (BUY < BASE < SELL) and exit.",
    )
    parser.add_argument(
        "--target",
        default="",
        help="Slack webhook URL stored with --set-settings.",
    )
    parser.add_argument(
        "--test-notify",
        action="store_true",
        default=False,
        dest="test_notify",
        help="Send a Slack test message and exit.",
    )
    return parser


def main() -> None:
    """Dispatch to a display/settings command or a pipeline run."""
    parser = _build_parser()
    args = parser.parse_args()

    log_file = setup_logging()
    logger.debug("nikkei_watch starting, log file: %s", log_file)

    from nikkei_watch.cli import runner

    if args.set_settings is not None:
        base, buy, sell = args.set_settings
        exit_code = runner.set_settings(base, buy, sell, args.target)
    elif args.test_notify:
        exit_code = runner.send_test_notification()
    elif args.history is not None:
        exit_code = runner.show_history(args.history or None)
    elif args.notifications is not None:
        exit_code = runner.show_notifications(args.notifications or None)
    else:
        try:
            exit_code = runner.run_pipeline(skip_signals=args.no_signal)
        except Exception:
            logger.critical("Fatal error during run", exc_info=True)
            exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
