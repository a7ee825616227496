"""
Coaching email construction and transport.

The engine builds the transport request (HTML and plain-text bodies, reply
link, tracking headers) and hands it to an EmailTransport. ResendTransport
posts it to the Resend API; without an API key it runs in development mode,
logging the email and reporting success.
"""

import html
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol
from urllib.parse import urlencode

import httpx

from sales_coach.config import Settings
from sales_coach.errors import UpstreamError
from sales_coach.models.coaching import CoachingMessage

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
DEFAULT_SUBJECT = "Coaching Feedback from Your Manager"
DEV_MODE_ID = "dev-mode"

HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <style>
    body {{ font-family: -apple-system, Segoe UI, Roboto, sans-serif; color: #1f2937; }}
    .container {{ max-width: 600px; margin: 0 auto; padding: 24px; }}
    .methodology-badge {{ display: inline-block; background: #F4B03A; color: #0C1030; padding: 4px 12px; border-radius: 15px; font-size: 12px; font-weight: 600; margin-bottom: 15px; }}
    .coaching-box {{ white-space: pre-wrap; background: #f9fafb; border-left: 4px solid #F4B03A; padding: 16px; }}
    .reply-button {{ display: inline-block; background: #0C1030; color: #ffffff; padding: 12px 24px; border-radius: 6px; text-decoration: none; }}
  </style>
</head>
<body>
  <div class="container">
    <p>Hi {rep_name},</p>
    <p>{manager_name} reviewed your recent call and shared the coaching below.</p>
    {badge}
    <div class="coaching-box">{content}</div>
    <p><a class="reply-button" href="{reply_url}">Reply to your manager</a></p>
  </div>
</body>
</html>"""

TEXT_TEMPLATE = """Hi {rep_name},

{manager_name} reviewed your recent call and shared the coaching below.

{badge}{content}

Reply to your manager: {reply_url}
"""


@dataclass
class EmailRequest:
    """Everything a transport needs to deliver one coaching email."""

    to: str
    subject: str
    html: str
    text: str
    reply_to: Optional[str] = None
    headers: dict[str, str] = field(default_factory=dict)

    def to_payload(self, sender: str) -> dict[str, Any]:
        """Resend API request body."""
        payload: dict[str, Any] = {
            "from": sender,
            "to": [self.to],
            "subject": self.subject,
            "html": self.html,
            "text": self.text,
            "headers": dict(self.headers),
        }
        if self.reply_to:
            payload["reply_to"] = self.reply_to
        return payload


class EmailTransport(Protocol):
    """Delivers an EmailRequest; returns the provider's message id."""

    def send(self, request: EmailRequest) -> str: ...


def build_reply_url(base_url: str, token: str) -> str:
    """Public reply link carrying the token as a query parameter."""
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'token': token})}"


def build_coaching_email(
    message: CoachingMessage,
    token: str,
    manager_name: str,
    rep_name: str,
    reply_base_url: str,
    subject: Optional[str] = None,
) -> EmailRequest:
    """Render the coaching email for a message and its freshly minted token."""
    reply_url = build_reply_url(reply_base_url, token)
    methodology = message.methodology.upper() if message.methodology else ""

    html_badge = (
        f'<div class="methodology-badge">{html.escape(methodology)} Methodology</div>' if methodology else ""
    )
    text_badge = f"[{methodology} Methodology]\n\n" if methodology else ""

    return EmailRequest(
        to=message.rep_email,
        subject=subject or DEFAULT_SUBJECT,
        html=HTML_TEMPLATE.format(
            rep_name=html.escape(rep_name),
            manager_name=html.escape(manager_name),
            badge=html_badge,
            content=html.escape(message.coaching_content),
            reply_url=html.escape(reply_url, quote=True),
        ),
        text=TEXT_TEMPLATE.format(
            rep_name=rep_name,
            manager_name=manager_name,
            badge=text_badge,
            content=message.coaching_content,
            reply_url=reply_url,
        ),
        reply_to=message.manager_email,
        headers={
            "X-Coaching-Message-ID": message.id,
            "X-Reply-Token": token,
        },
    )


class ResendTransport:
    """Email transport backed by the Resend HTTP API."""

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None):
        self.settings = settings
        self.api_key = settings.resend_api_key
        self.sender = settings.sender_address
        self._client = client

    @property
    def client(self) -> httpx.Client:
        """Lazy-load the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.settings.request_timeout_seconds)
        return self._client

    @property
    def dev_mode(self) -> bool:
        return not self.api_key

    def send(self, request: EmailRequest) -> str:
        """
        Submit an email.

        Returns:
            Resend message id, or "dev-mode" when no API key is configured.

        Raises:
            UpstreamError: On network errors, timeouts or a non-2xx response.
        """
        if self.dev_mode:
            logger.info(
                f"Email queued (development mode, Resend API key not configured): "
                f"to={request.to} subject={request.subject!r}"
            )
            return DEV_MODE_ID

        try:
            response = self.client.post(
                RESEND_API_URL,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=request.to_payload(self.sender),
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"Email transport request failed: {e}") from e

        if not response.is_success:
            raise UpstreamError(
                f"Email transport rejected request ({response.status_code}): {response.text[:200]}"
            )

        # Delivery already succeeded; a body without an id is not a failure
        try:
            body = response.json()
        except ValueError:
            body = None
        message_id = body.get("id", "") if isinstance(body, dict) else ""
        logger.info(f"Email sent via Resend: id={message_id} to={request.to}")
        return message_id

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
