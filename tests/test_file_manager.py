# tests/test_file_manager.py

"""Tests for the FileManager debug-dump module."""

import tempfile
import unittest
from pathlib import Path

from nikkei_watch.config.settings import Settings
from nikkei_watch.storage.file_manager import FileManager


class TestFileManager(unittest.TestCase):
    """Tests for saving raw markup on extraction failure."""

    def setUp(self) -> None:
        """Set up a temp directory for dumps."""
        self.tmp_dir = Path(tempfile.mkdtemp()) / "debug"
        self.fm = FileManager(self.tmp_dir)

    def test_creates_debug_dir(self) -> None:
        """The debug directory is created on init."""
        self.assertTrue(self.tmp_dir.is_dir())

    def test_default_dir_from_settings(self) -> None:
        """Without an argument, Settings.DEBUG_DIR is used."""
        self.assertEqual(FileManager().debug_dir, Settings.DEBUG_DIR)

    def test_save_debug_html_writes_content(self) -> None:
        """The markup is written verbatim as UTF-8."""
        html = "<html><body>日経平均</body></html>"
        path = self.fm.save_debug_html(html, "current_price")
        self.assertEqual(path.parent, self.tmp_dir)
        self.assertEqual(path.read_text(encoding="utf-8"), html)

    def test_filename_has_label_and_timestamp(self) -> None:
        """Files are named <label>_<YYYYmmdd_HHMMSS>.html."""
        path = self.fm.save_debug_html("<html/>", "historical")
        self.assertRegex(path.name, r"^historical_\d{8}_\d{6}\.html$")

    def test_unsafe_label_is_sanitised(self) -> None:
        """Path separators and spaces never reach the filename."""
        path = self.fm.save_debug_html("<html/>", "../current price")
        self.assertEqual(path.parent, self.tmp_dir)
        self.assertTrue(path.name.startswith("current_price_"))

    def test_empty_label_falls_back(self) -> None:
        """A label with no safe characters becomes ``page``."""
        path = self.fm.save_debug_html("<html/>", "///")
        self.assertTrue(path.name.startswith("page_"))


if __name__ == "__main__":
    unittest.main()
