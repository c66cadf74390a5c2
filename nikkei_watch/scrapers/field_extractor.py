# nikkei_watch/scrapers/field_extractor.py

"""Ordered-fallback field extraction for the investing.com index pages."""

import json
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup, Tag

from nikkei_watch.config.settings import Settings
from nikkei_watch.models.price_snapshot import CurrentQuote, HistoricalRow
from nikkei_watch.parsers.normalizer import parse_date, parse_number

# Fixed column layout of the historical table
_COL_DATE, _COL_CLOSE, _COL_OPEN, _COL_HIGH, _COL_LOW = range(5)


@dataclass(frozen=True)
class ExtractionStrategy:
    """One CSS query tried for a field, named for the run log."""

    name: str
    css: str


def _strategies(raw: list[dict[str, str]]) -> list[ExtractionStrategy]:
    return [ExtractionStrategy(name=s["name"], css=s["css"]) for s in raw]


class FieldExtractor:
    """Apply ordered selector strategies to a parsed page.

    Strategies live in ``selectors.json`` in priority order: attribute
    matches first, then class-name matches of decreasing specificity.
    The first strategy that yields a parseable value wins.  When every
    strategy misses, the field is ``None``.
    """

    def __init__(self, selectors_path: Path | None = None) -> None:
        self.logger = logging.getLogger("nikkei_watch.extractor")
        self.settings = Settings()
        selectors = self._load_selectors(
            selectors_path or self.settings.SELECTORS_PATH
        )
        current: dict[str, Any] = selectors["current"]
        historical: dict[str, Any] = selectors["historical"]
        self.field_strategies: dict[str, list[ExtractionStrategy]] = {
            field: _strategies(raw) for field, raw in current.items()
        }
        self.table_strategies = _strategies(historical["tables"])
        self.row_selector: str = historical["row"]
        self.min_cells: int = int(historical["min_cells"])

    @staticmethod
    def _load_selectors(path: Path) -> dict[str, Any]:
        """Load the strategy lists from selectors.json."""
        with open(path, encoding="utf-8") as f:
            data: dict[str, Any] = json.load(f)
        return data

    @staticmethod
    def parse_html(html: str) -> BeautifulSoup:
        """Parse raw markup with the lxml backend."""
        return BeautifulSoup(html, "lxml")

    # ── Live page fields ─────────────────────────────────

    def _extract_number(
        self, soup: BeautifulSoup, field: str,
    ) -> Decimal | None:
        """Walk the strategy list for *field* and short-circuit on a hit."""
        for strategy in self.field_strategies[field]:
            node = soup.select_one(strategy.css)
            if node is None:
                self.logger.debug(
                    "[%s] strategy '%s' matched nothing",
                    field,
                    strategy.name,
                )
                continue
            text = node.get_text(strip=True)
            if not text:
                self.logger.debug(
                    "[%s] strategy '%s' matched an empty node",
                    field,
                    strategy.name,
                )
                continue
            value = parse_number(text)
            if value is None:
                self.logger.warning(
                    "[%s] strategy '%s' matched non-numeric text %r",
                    field,
                    strategy.name,
                    text,
                )
                continue
            self.logger.debug(
                "[%s] strategy '%s' -> %s (raw %r)",
                field,
                strategy.name,
                value,
                text,
            )
            return value

        self.logger.warning(
            "[%s] no extraction strategy matched (%d tried)",
            field,
            len(self.field_strategies[field]),
        )
        return None

    def extract_price(self, soup: BeautifulSoup) -> Decimal | None:
        """Extract the last traded price."""
        return self._extract_number(soup, "price")

    def extract_change(self, soup: BeautifulSoup) -> Decimal | None:
        """Extract the absolute change versus the previous close."""
        return self._extract_number(soup, "change")

    def extract_change_percent(
        self, soup: BeautifulSoup,
    ) -> Decimal | None:
        """Extract the percentage change versus the previous close."""
        return self._extract_number(soup, "change_percent")

    def extract_current_quote(
        self, soup: BeautifulSoup,
    ) -> CurrentQuote | None:
        """Combine the live page fields; ``None`` if the price is missing."""
        price = self.extract_price(soup)
        if price is None:
            return None
        return CurrentQuote(
            price=price,
            change=self.extract_change(soup),
            change_percent=self.extract_change_percent(soup),
        )

    # ── Historical table ─────────────────────────────────

    def _find_history_table(self, soup: BeautifulSoup) -> Tag | None:
        """Locate the historical data table via the known variants."""
        for strategy in self.table_strategies:
            table = soup.select_one(strategy.css)
            if table is not None:
                self.logger.debug(
                    "History table found via '%s'", strategy.name
                )
                return table
        self.logger.warning(
            "History table not found (%d variants tried)",
            len(self.table_strategies),
        )
        return None

    @staticmethod
    def _date_text(cell: Tag) -> str:
        """Prefer a machine-readable ``<time datetime>`` over cell text."""
        time_el = cell.find("time")
        if isinstance(time_el, Tag):
            stamp = time_el.get("datetime")
            if isinstance(stamp, str) and stamp.strip():
                return stamp.strip()
        return cell.get_text(strip=True)

    def _parse_row(
        self, row: Tag, today: date | None,
    ) -> HistoricalRow | None:
        """Turn one ``<tr>`` into a HistoricalRow by column position."""
        cells = row.find_all("td")
        if len(cells) < self.min_cells:
            self.logger.debug(
                "Skipping history row with %d cells", len(cells)
            )
            return None

        raw_close = cells[_COL_CLOSE].get_text(strip=True)
        close = parse_number(raw_close)
        if close is None:
            self.logger.warning(
                "History row close not numeric: %r", raw_close
            )
            return None

        def _or_close(idx: int) -> Decimal:
            value = parse_number(cells[idx].get_text(strip=True))
            return value if value is not None else close

        return HistoricalRow(
            date=parse_date(self._date_text(cells[_COL_DATE]), today),
            close=close,
            open=_or_close(_COL_OPEN),
            high=_or_close(_COL_HIGH),
            low=_or_close(_COL_LOW),
        )

    def extract_historical_rows(
        self,
        soup: BeautifulSoup,
        limit: int = 2,
        today: date | None = None,
    ) -> list[HistoricalRow]:
        """Return up to *limit* most recent rows, newest first."""
        table = self._find_history_table(soup)
        if table is None:
            return []

        rows: list[HistoricalRow] = []
        for tr in table.select(self.row_selector):
            parsed = self._parse_row(tr, today)
            if parsed is None:
                continue
            rows.append(parsed)
            if len(rows) >= limit:
                break

        if not rows:
            self.logger.warning("History table had no usable rows")
        return rows

    def extract_historical_row(
        self,
        soup: BeautifulSoup,
        today: date | None = None,
    ) -> HistoricalRow | None:
        """Return the most recent historical row, if any."""
        rows = self.extract_historical_rows(soup, limit=1, today=today)
        return rows[0] if rows else None
