from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from alarmclock.notification.base import NotificationEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookConfig:
    """
    Configuration for webhook-based notifications.

    Parameters
    ----------
    url
        Target webhook URL.
    timeout_s
        HTTP request timeout in seconds.
    verify_tls
        Whether to verify TLS certificates.
    auth_header
        Optional Authorization header value (e.g., Bearer token).
    """

    url: str
    timeout_s: float = 2.0
    verify_tls: bool = True
    auth_header: Optional[str] = None


class WebhookNotifier:
    """
    Deliver alarm notifications to a companion service via HTTP POST.

    The event payload is sent as the JSON body. When the event names a
    transition it is mirrored in an ``X-Alarm-Transition`` header so receivers
    can route without parsing the body.

    Notes
    -----
    HTTP errors are surfaced via ``raise_for_status()``.
    """

    def __init__(self, cfg: WebhookConfig):
        self._cfg = cfg

    def notify(self, event: NotificationEvent) -> None:
        """
        Send a notification event to the configured webhook endpoint.

        Raises
        ------
        requests.HTTPError
            If the HTTP response status indicates an error.
        requests.RequestException
            For network-related errors.
        """
        headers: Dict[str, str] = {"Content-Type": "application/json"}
        if self._cfg.auth_header:
            headers["Authorization"] = self._cfg.auth_header
        if event.transition:
            headers["X-Alarm-Transition"] = event.transition

        logger.debug("POST %s (%s, alarm=%s)", self._cfg.url, event.type, event.alarm_id)
        r = requests.post(
            self._cfg.url,
            json=event.payload,
            headers=headers,
            timeout=self._cfg.timeout_s,
            verify=self._cfg.verify_tls,
        )
        r.raise_for_status()
