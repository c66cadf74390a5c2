# nikkei_watch/errors.py

"""Error taxonomy for the scrape-and-alert pipeline.

Expected misses (a selector that matches nothing, an absent change
value) are returned as ``None`` by the scrapers and parsers.  The
exceptions below are reserved for genuine faults:

- :class:`TransportError`: page fetch failed (network or HTTP status).
  Recorded and treated as degraded data.
- :class:`ExtractionError`: a required field could not be extracted
  or failed the plausibility check.  Aborts the run before persisting.
- :class:`PersistError`: a store write failed.  Logged; evaluation and
  notification still run.
"""


class NikkeiWatchError(Exception):
    """Base class for all nikkei_watch errors."""


class TransportError(NikkeiWatchError):
    """A page fetch failed at the transport or HTTP level."""

    def __init__(
        self,
        url: str,
        message: str,
        status: int | None = None,
    ) -> None:
        self.url = url
        self.status = status
        detail = f"HTTP {status}: " if status is not None else ""
        super().__init__(f"{detail}{message} ({url})")


class ExtractionError(NikkeiWatchError):
    """A required field was missing or implausible."""

    def __init__(
        self,
        field: str,
        message: str,
        url: str | None = None,
        raw: str | None = None,
    ) -> None:
        self.field = field
        self.url = url
        self.raw = raw
        detail = f"[{field}] {message}"
        if raw is not None:
            detail += f", raw={raw!r}"
        if url:
            detail += f" ({url})"
        super().__init__(detail)


class PersistError(NikkeiWatchError):
    """A write to the price history store failed."""
