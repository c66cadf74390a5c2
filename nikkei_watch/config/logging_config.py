# nikkei_watch/config/logging_config.py

"""Per-run timestamped logging configuration for nikkei_watch.

Each invocation (typically one cron tick) creates a dedicated log file
inside ``logs/``, named with the launch timestamp
(e.g. ``logs/run_20260214_153045.log``).  All ``nikkei_watch.*`` loggers
route through this file handler so that every module's output lands in
the same per-run log.

The console handler prints one timestamped line per pipeline step, which
is what a scheduler captures in its mail or journal output.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from nikkei_watch.config.settings import Settings

# Reusable format strings --------------------------------------------------

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(funcName)s:%(lineno)d | "
    "%(message)s"
)

_CONSOLE_FORMAT = "[%(asctime)s] %(levelname)-8s %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(console_level: int = logging.INFO) -> Path:
    """Initialise the root ``nikkei_watch`` logger for the current run.

    Args:
        console_level: Minimum level echoed to stderr.  The file
            handler always records DEBUG and above.

    Returns:
        The :class:`~pathlib.Path` to the log file created for this run.
    """
    logs_dir: Path = Settings.LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = logs_dir / f"run_{timestamp}.log"

    # --- Root project logger -----------------------------------------------
    root_logger = logging.getLogger("nikkei_watch")
    root_logger.setLevel(logging.DEBUG)

    # Prevent duplicate handlers on repeated calls (e.g. tests)
    if root_logger.handlers:
        return log_file

    # --- File handler (DEBUG+) – captures everything -----------------------
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT)
    )

    # --- Console handler – one line per pipeline step ----------------------
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    root_logger.debug(
        "Logging initialised, log file: %s", log_file
    )

    return log_file
