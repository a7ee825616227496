"""
Reply endpoint for coaching messages.

    GET  /coaching-reply?token=...   renders the coaching and a reply form,
                                     marking the message read on first open
    POST /coaching-reply?token=...   JSON {message_id, reply_text} records the reply

Engine errors map to status codes: 400 validation, 404 unknown token or
message, 409 duplicate reply or conflicting update, 502 upstream failure.

Run with: uvicorn sales_coach.api:create_app --factory
"""

import html
import logging
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field

from sales_coach import __version__
from sales_coach.config import Settings, get_settings
from sales_coach.errors import (
    CoachingError,
    ConcurrencyError,
    DuplicateReplyError,
    InvalidTransitionError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from sales_coach.models.coaching import CoachingMessage
from sales_coach.services.bigquery import BigQueryStore
from sales_coach.services.composer import rep_display_name
from sales_coach.services.email import ResendTransport
from sales_coach.services.lifecycle import CoachingLifecycle
from sales_coach.utils.logging import setup_logging

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    DuplicateReplyError: 409,
    InvalidTransitionError: 409,
    ConcurrencyError: 409,
    UpstreamError: 502,
}

REPLY_PAGE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Coaching reply</title>
</head>
<body>
  <h1>Coaching for {rep_name}</h1>
  <pre>{content}</pre>
  {reply_section}
</body>
</html>"""

REPLY_FORM = """<form id="reply-form">
    <textarea name="reply_text" rows="6" cols="80" required></textarea>
    <button type="submit">Send reply</button>
  </form>
  <p id="reply-status"></p>
  <script>
    document.getElementById("reply-form").addEventListener("submit", async (event) => {{
      event.preventDefault();
      const response = await fetch(window.location.href, {{
        method: "POST",
        headers: {{"Content-Type": "application/json"}},
        body: JSON.stringify({{message_id: "{message_id}", reply_text: event.target.reply_text.value}}),
      }});
      document.getElementById("reply-status").textContent =
        response.ok ? "Thanks, your reply was sent." : "Your reply could not be sent.";
    }});
  </script>"""

ALREADY_REPLIED = """<p>You already replied:</p>
  <blockquote>{reply}</blockquote>"""


class ReplyRequest(BaseModel):
    """Body of a reply submission."""

    message_id: str = Field(min_length=1)
    reply_text: str


class ReplyResponse(BaseModel):
    success: bool = True
    message_id: str
    status: str


def status_for(error: CoachingError) -> int:
    """HTTP status for an engine error."""
    for error_type, status in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status
    return 500


def render_reply_page(message: CoachingMessage) -> str:
    """Coaching content plus either the reply form or the recorded reply."""
    if message.has_reply:
        reply_section = ALREADY_REPLIED.format(reply=html.escape(message.rep_response or ""))
    else:
        reply_section = REPLY_FORM.format(message_id=html.escape(message.id, quote=True))
    return REPLY_PAGE.format(
        rep_name=html.escape(rep_display_name(message.rep_email)),
        content=html.escape(message.coaching_content),
        reply_section=reply_section,
    )


def default_lifecycle(settings: Settings) -> CoachingLifecycle:
    """Lifecycle wired to BigQuery and Resend."""
    return CoachingLifecycle(BigQueryStore(settings), ResendTransport(settings), settings)


def create_app(lifecycle: Optional[CoachingLifecycle] = None) -> FastAPI:
    """Build the reply API around a lifecycle (BigQuery + Resend by default)."""
    if lifecycle is None:
        settings = get_settings()
        setup_logging(settings.log_level)
        lifecycle = default_lifecycle(settings)

    app = FastAPI(
        title="Sales Coach",
        version=__version__,
        description="Rep reply endpoint for coaching messages.",
    )

    @app.exception_handler(CoachingError)
    async def coaching_error_handler(request: Request, exc: CoachingError) -> JSONResponse:
        status = status_for(exc)
        logger.info(f"{request.method} {request.url.path} -> {status}: {type(exc).__name__}")
        return JSONResponse(status_code=status, content={"success": False, "error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid request body"})

    @app.get("/coaching-reply", response_class=HTMLResponse, summary="Show coaching and reply form")
    def show_reply_form(token: Optional[str] = Query(None)) -> HTMLResponse:
        message = lifecycle.mark_read(token)
        return HTMLResponse(render_reply_page(message))

    @app.post("/coaching-reply", response_model=ReplyResponse, summary="Submit a rep reply")
    def submit_reply(body: ReplyRequest, token: Optional[str] = Query(None)) -> ReplyResponse:
        message = lifecycle.tokens.resolve(token)
        if message.id != body.message_id:
            raise ValidationError("message_id does not match the reply link")
        stored = lifecycle.submit_reply(token, body.reply_text)
        return ReplyResponse(message_id=stored.id, status=stored.status.value)

    return app
