from __future__ import annotations

from typing import Any, Dict, Optional

import requests  # runtime dep

from .logging_utils import get_logger
from .models import TargetGapBotError

log = get_logger("slack_transport")

SLACK_POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"


class SlackError(TargetGapBotError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def build_payload(channel: str, title: str, body: str, color: str) -> Dict[str, Any]:
    return {
        "channel": channel,
        # Summary text for push notifications
        "text": title,
        "unfurl_links": False,
        "attachments": [{"color": color, "title": title, "text": body}],
    }


class SlackSender:
    """Posts one message per call through ``chat.postMessage``.

    Failures raise :class:`SlackError`; there is no retry so a lost alert
    surfaces in the run log.
    """

    def __init__(self, token: str, channel: str, session=None, timeout: float = 10.0):
        self.token = token
        self.channel = channel
        self.session = session
        self.timeout = timeout

    def send(self, title: str, body: str, color: str) -> None:
        payload = build_payload(self.channel, title, body, color)
        resp = (self.session or requests).post(
            SLACK_POST_MESSAGE_URL,
            json=payload,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Content-Type": "application/json; charset=utf-8",
            },
            timeout=self.timeout,
        )
        status = getattr(resp, "status_code", None)
        if status is None or not 200 <= status < 300:
            raise SlackError(f"slack http status={status}", status=status)
        try:
            data = resp.json()
        except ValueError as exc:
            raise SlackError("slack returned non-JSON body", status=status) from exc
        if not data.get("ok"):
            raise SlackError(f"slack error={data.get('error', 'unknown')}", status=status)
        log.info("slack_sent channel=%s ts=%s", self.channel, data.get("ts"))
