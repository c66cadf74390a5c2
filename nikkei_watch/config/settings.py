# nikkei_watch/config/settings.py

"""Central configuration for the nikkei_watch price monitor."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the nikkei_watch price monitor."""

    # --- Target pages ---
    CURRENT_PRICE_URL: str = "https://jp.investing.com/indices/japan-ni225"
    HISTORICAL_URL: str = (
        "https://jp.investing.com/indices/japan-ni225-historical-data"
    )

    # --- Fetching ---
    REQUEST_TIMEOUT: int = 30           # Seconds before a page fetch times out
    MAX_REDIRECTS: int = 5              # Redirect hops followed per fetch
    CHALLENGE_FALLBACK: bool = True     # Try cloudscraper on a Cloudflare wall
    # Interstitial-only markers.  The challenge-platform script path and
    # challenges.cloudflare.com also load on normal pages, so they are
    # not listed.
    CF_CHALLENGE_MARKERS: list[str] = [
        "<title>just a moment",
        "cf_chl_opt",
        "cf-turnstile",
        "id=\"challenge-running\"",
    ]

    # --- Notification delivery ---
    NOTIFY_TIMEOUT: int = 10            # Seconds for a webhook round-trip
    NOTIFY_CONNECT_TIMEOUT: int = 5     # Seconds to establish the connection
    SLACK_WEBHOOK_URL: str = os.getenv("SLACK_WEBHOOK_URL", "")

    # --- Plausibility / signal constants (Nikkei 225 specific) ---
    PLAUSIBLE_CLOSE_MIN: int = 1000     # Exclusive lower bound for a close
    PLAUSIBLE_CLOSE_MAX: int = 100000   # Exclusive upper bound for a close
    LARGE_DROP_THRESHOLD: int = 1500    # Yen drop vs. previous close

    # --- Display ---
    HISTORY_DISPLAY_LIMIT: int = 30
    NOTIFICATION_DISPLAY_LIMIT: int = 20

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/webp,*/*;q=0.8"
        ),
        "Accept-Language": "ja,en-US;q=0.7,en;q=0.3",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = (
        BASE_DIR / "nikkei_watch" / "config" / "selectors.json"
    )
    DATA_DIR: Path = BASE_DIR / "data"
    PRICE_DB_PATH: Path = Path(
        os.getenv("NIKKEI_WATCH_DB", str(DATA_DIR / "nikkei_watch.db"))
    )
    DEBUG_DIR: Path = DATA_DIR / "debug"
    LOGS_DIR: Path = BASE_DIR / "logs"
