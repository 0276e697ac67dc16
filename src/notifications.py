"""Mismatch notifications — webhook delivery of mismatch reports.

POSTs each MismatchReport as JSON to the configured webhook URLs so an
external tracker (a sheet, a bot, an issue queue) can collect them.
Optionally restricted to reports involving given countries.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

import requests

from .consensus import MismatchReport

logger = logging.getLogger(__name__)

USER_AGENT = "icao-consensus/0.1"


@dataclass
class WebhookConfig:
    """A configured webhook endpoint."""
    url: str
    countries: list[str] | None = None  # None = all reports

    def wants(self, report: MismatchReport) -> bool:
        if not self.countries:
            return True
        involved = {report.allocation_country, report.registration_country, report.operator_country}
        return any(c.upper() in involved for c in self.countries)


class ReportDispatcher:
    """Delivers mismatch reports to configured webhooks.

    Sends are non-blocking (fire-and-forget in background threads)
    so classification never waits on the network.
    """

    def __init__(self, webhooks: list[WebhookConfig] | None = None, timeout: float = 10.0):
        self.webhooks = webhooks or []
        self.timeout = timeout

    def notify(self, report: MismatchReport) -> list[threading.Thread]:
        """Send the report to all matching webhooks. Returns the sender threads."""
        threads = []
        for wh in self.webhooks:
            if not wh.wants(report):
                continue
            t = threading.Thread(target=self._send, args=(wh.url, report.to_dict()), daemon=True)
            t.start()
            threads.append(t)
        return threads

    def _send(self, url: str, payload: dict) -> None:
        try:
            resp = requests.post(
                url,
                json=payload,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Webhook delivery failed to %s: %s", url, e)
