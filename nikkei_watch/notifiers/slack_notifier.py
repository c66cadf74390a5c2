# nikkei_watch/notifiers/slack_notifier.py

"""Slack incoming-webhook delivery for price alerts."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from curl_cffi import requests as curl_requests

from nikkei_watch.config.settings import Settings

_FOOTER = "Nikkei 225 watch | {ts} | Not investment advice"


def _yen(value: Decimal) -> str:
    return f"¥{value:,.0f}"


class SlackNotifier:
    """Post Block Kit messages to a Slack incoming webhook.

    A send counts as delivered only when Slack answers HTTP 200 with the
    literal body ``ok``.  Anything else is logged and reported as False.
    """

    def __init__(self, webhook_url: str) -> None:
        self.webhook_url = webhook_url
        self.logger = logging.getLogger("nikkei_watch.slack")
        self.settings = Settings()
        self.session = curl_requests.Session()

    def _send(self, payload: dict[str, Any]) -> bool:
        """POST *payload* once; no retries."""
        if not self.webhook_url:
            self.logger.error("No Slack webhook URL configured")
            return False
        try:
            resp = self.session.post(
                self.webhook_url,
                json=payload,
                headers={"Content-Type": "application/json; charset=utf-8"},
                timeout=(
                    self.settings.NOTIFY_CONNECT_TIMEOUT,
                    self.settings.NOTIFY_TIMEOUT,
                ),
            )
        except Exception as exc:
            self.logger.error(
                "Slack request error: %s", exc, exc_info=True,
            )
            return False

        body = resp.text.strip()
        if resp.status_code != 200 or body != "ok":
            self.logger.error(
                "Slack notification failed: HTTP %d, response: %r",
                resp.status_code,
                body[:200],
            )
            return False
        return True

    @staticmethod
    def _message(
        header: str,
        summary: str,
        fields: list[tuple[str, str]],
        advice: str | None = None,
    ) -> dict[str, Any]:
        """Assemble the shared Block Kit layout."""
        blocks: list[dict[str, Any]] = [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": header, "emoji": True},
            },
            {"type": "section", "text": {"type": "mrkdwn", "text": summary}},
        ]
        if fields:
            blocks.append({
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*{label}:*\n{value}"}
                    for label, value in fields
                ],
            })
        if advice:
            blocks.append(
                {"type": "section", "text": {"type": "mrkdwn", "text": advice}}
            )
        ts = datetime.now().strftime("%Y/%m/%d %H:%M:%S")
        blocks.append({
            "type": "context",
            "elements": [
                {"type": "mrkdwn", "text": _FOOTER.format(ts=ts)}
            ],
        })
        return {"blocks": blocks}

    def send_buy_signal(
        self,
        current_price: Decimal,
        buy_signal_price: Decimal,
        base_price: Decimal,
    ) -> bool:
        """Announce that the index fell below the buy threshold."""
        payload = self._message(
            ":large_green_circle: Buy signal",
            "The Nikkei 225 fell below the buy signal price.",
            [
                ("Current price", _yen(current_price)),
                ("Signal price", _yen(buy_signal_price)),
                ("Base price", _yen(base_price)),
                ("Difference", _yen(buy_signal_price - current_price)),
            ],
            ":bulb: *Suggested action:* consider buying.",
        )
        return self._send(payload)

    def send_sell_signal(
        self,
        current_price: Decimal,
        sell_signal_price: Decimal,
        base_price: Decimal,
    ) -> bool:
        """Announce that the index rose above the sell threshold."""
        payload = self._message(
            ":red_circle: Sell signal",
            "The Nikkei 225 rose above the sell signal price.",
            [
                ("Current price", _yen(current_price)),
                ("Signal price", _yen(sell_signal_price)),
                ("Base price", _yen(base_price)),
                ("Difference", _yen(current_price - sell_signal_price)),
            ],
            ":bulb: *Suggested action:* consider selling.",
        )
        return self._send(payload)

    def send_large_drop_alert(
        self,
        current_price: Decimal,
        previous_close: Decimal,
        drop_amount: Decimal,
    ) -> bool:
        """Warn about a large day-over-day fall."""
        drop_percent = drop_amount / previous_close * 100
        payload = self._message(
            ":warning: Large drop",
            "The Nikkei 225 fell sharply versus the previous close.",
            [
                ("Current price", _yen(current_price)),
                ("Previous close", _yen(previous_close)),
                ("Drop", f"-{_yen(drop_amount)}"),
                ("Drop rate", f"-{drop_percent:.2f}%"),
            ],
            ":zap: *Note:* the market is moving fast.",
        )
        return self._send(payload)

    def send_test(self) -> bool:
        """Send a connectivity test message."""
        payload = self._message(
            ":white_check_mark: Test notification",
            "Slack notifications are configured correctly.",
            [],
        )
        return self._send(payload)
