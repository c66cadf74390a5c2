# nikkei_watch/storage/file_manager.py

"""Saves raw page markup to disk when extraction fails."""

import logging
import re
from datetime import datetime
from pathlib import Path

from nikkei_watch.config.settings import Settings

logger = logging.getLogger("nikkei_watch.storage")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


class FileManager:
    """Handles saving debug HTML snapshots to disk."""

    def __init__(self, debug_dir: Path | None = None) -> None:
        self.debug_dir: Path = debug_dir or Settings.DEBUG_DIR
        self.debug_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("FileManager initialised, debug_dir=%s", self.debug_dir)

    def save_debug_html(self, html: str, label: str) -> Path:
        """Write *html* to a timestamped file named after *label*."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        safe_label = _UNSAFE_CHARS.sub("_", label).strip("_") or "page"
        filepath = self.debug_dir / f"{safe_label}_{timestamp}.html"

        with open(filepath, "w", encoding="utf-8") as f:
            f.write(html)

        logger.info(
            "Saved %d bytes of '%s' markup to %s",
            len(html),
            label,
            filepath,
        )
        return filepath
