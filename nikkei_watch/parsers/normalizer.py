# nikkei_watch/parsers/normalizer.py

"""Locale-aware number and date parsing for scraped text.

investing.com's Japanese pages mix full-width digits, yen markers and
several date layouts depending on the widget.  Everything scraped from
the page goes through these helpers before it reaches a model.
"""

import logging
import re
import unicodedata
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

logger = logging.getLogger("nikkei_watch.normalizer")

# Characters stripped before numeric parsing
_NUMBER_NOISE: tuple[str, ...] = (",", " ", "%", "¥", "円", "$")

_STRICT_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")
_EMBEDDED_DECIMAL_RE = re.compile(r"[+-]?\d+(?:\.\d+)?")

# Ordered date patterns: (regex, group order as (year, month, day))
_DATE_PATTERNS: list[tuple[re.Pattern[str], tuple[int, int, int]]] = [
    (
        re.compile(r"(\d{4})\s*年\s*(\d{1,2})\s*月\s*(\d{1,2})\s*日"),
        (1, 2, 3),
    ),
    (
        re.compile(r"(\d{4})[/-](\d{1,2})[/-](\d{1,2})"),
        (1, 2, 3),
    ),
    (
        re.compile(r"(\d{1,2})\s*月\s*(\d{1,2})\s*日\s*,?\s*(\d{4})\s*年?"),
        (3, 1, 2),
    ),
]

# Generic fallbacks for English-locale widgets
_GENERIC_DATE_FORMATS: tuple[str, ...] = (
    "%b %d, %Y",
    "%B %d, %Y",
    "%d.%m.%Y",
    "%m/%d/%Y",
    "%d %b %Y",
    "%Y%m%d",
)


def to_half_width(text: str) -> str:
    """Fold full-width digits, signs and punctuation to ASCII.

    NFKC leaves the typographic minus (U+2212) alone, so it is mapped
    explicitly; the site uses it for negative changes.
    """
    return unicodedata.normalize("NFKC", text).replace("−", "-")


def parse_number(text: str | None) -> Decimal | None:
    """Parse a scraped numeric string like ``'12,345.67円'`` or ``'+1.23%'``.

    Returns ``None`` when no number can be recovered.  Never raises.
    """
    if not text:
        return None
    cleaned = to_half_width(text).strip()
    for noise in _NUMBER_NOISE:
        cleaned = cleaned.replace(noise, "")

    if _STRICT_DECIMAL_RE.match(cleaned):
        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return None

    match = _EMBEDDED_DECIMAL_RE.search(cleaned)
    if match:
        return Decimal(match.group(0))
    return None


def _match_date_pattern(text: str) -> date | None:
    """Try the Japanese and numeric date layouts in priority order."""
    for pattern, (y_idx, m_idx, d_idx) in _DATE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        try:
            return date(
                int(match.group(y_idx)),
                int(match.group(m_idx)),
                int(match.group(d_idx)),
            )
        except ValueError:
            # e.g. 2025年13月40日: keep looking
            continue
    return None


def _parse_generic_date(text: str) -> date | None:
    """Last-resort parse for ISO timestamps and English layouts."""
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    for fmt in _GENERIC_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_date(text: str | None, today: date | None = None) -> date:
    """Parse a scraped trading date, falling back to *today*.

    The fallback is lossy: a row whose date cannot be read is attributed
    to the run date.  A warning is logged with the raw text so markup
    changes show up in the run log.
    """
    fallback = today or date.today()
    if not text:
        logger.warning(
            "Empty date text, falling back to %s", fallback.isoformat()
        )
        return fallback

    cleaned = to_half_width(text).strip()
    parsed = _match_date_pattern(cleaned) or _parse_generic_date(cleaned)
    if parsed is not None:
        return parsed

    logger.warning(
        "Unparseable date %r, falling back to %s",
        text,
        fallback.isoformat(),
    )
    return fallback


def compute_change_rate(
    close: Decimal,
    previous_close: Decimal | None,
) -> Decimal | None:
    """Return ``(close - previous_close) / previous_close``.

    ``None`` when there is no usable previous close (first-ever run).
    """
    if previous_close is None or previous_close <= 0:
        return None
    return (close - previous_close) / previous_close


def rate_to_percent(rate: Decimal) -> Decimal:
    """Convert a fractional rate to a percentage rounded to 2 places."""
    return (rate * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
