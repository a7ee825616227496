"""Tests for the reply endpoint."""

import pytest
from fastapi.testclient import TestClient

from sales_coach.api import create_app, render_reply_page, status_for
from sales_coach.errors import (
    ConcurrencyError,
    DuplicateReplyError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from sales_coach.models.coaching import CoachingStatus


@pytest.fixture
def client(lifecycle):
    return TestClient(create_app(lifecycle))


@pytest.fixture
def sent_message(lifecycle, sample_conversation, sample_analysis):
    draft = lifecycle.create_draft(sample_conversation, sample_analysis, "Ask about <budget> early.")
    return lifecycle.send(draft.id, manager_name="Maria Manager")


class TestStatusMapping:
    @pytest.mark.parametrize(
        "error,status",
        [
            (ValidationError("x"), 400),
            (NotFoundError("x"), 404),
            (DuplicateReplyError("x"), 409),
            (ConcurrencyError("x"), 409),
            (UpstreamError("x"), 502),
        ],
    )
    def test_status_for(self, error, status):
        assert status_for(error) == status


class TestReplyPage:
    """Tests for GET /coaching-reply."""

    def test_shows_coaching_and_marks_read(self, client, lifecycle, sent_message):
        response = client.get("/coaching-reply", params={"token": sent_message.reply_token})

        assert response.status_code == 200
        assert "Ask about &lt;budget&gt; early." in response.text
        assert "reply-form" in response.text
        assert lifecycle.get(sent_message.id).status == CoachingStatus.READ

    def test_unknown_token(self, client, sent_message):
        response = client.get("/coaching-reply", params={"token": "f" * 64})
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Invalid or expired reply link"}

    def test_missing_token(self, client):
        response = client.get("/coaching-reply")
        assert response.status_code == 400

    def test_already_replied_shows_reply(self, sent_message, lifecycle):
        lifecycle.submit_reply(sent_message.reply_token, "Will do")
        page = render_reply_page(lifecycle.get(sent_message.id))
        assert "You already replied" in page
        assert "reply-form" not in page


class TestSubmitReply:
    """Tests for POST /coaching-reply."""

    def test_reply_recorded(self, client, lifecycle, sent_message):
        response = client.post(
            "/coaching-reply",
            params={"token": sent_message.reply_token},
            json={"message_id": sent_message.id, "reply_text": "Thanks, will do."},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "message_id": sent_message.id, "status": "replied"}
        assert lifecycle.get(sent_message.id).rep_response == "Thanks, will do."

    def test_duplicate_reply_conflict(self, client, sent_message):
        body = {"message_id": sent_message.id, "reply_text": "First"}
        params = {"token": sent_message.reply_token}
        assert client.post("/coaching-reply", params=params, json=body).status_code == 200

        response = client.post("/coaching-reply", params=params, json={**body, "reply_text": "Second"})
        assert response.status_code == 409
        assert response.json()["success"] is False

    def test_message_id_mismatch(self, client, sent_message):
        response = client.post(
            "/coaching-reply",
            params={"token": sent_message.reply_token},
            json={"message_id": "someone-else", "reply_text": "Hi"},
        )
        assert response.status_code == 400

    def test_empty_reply(self, client, sent_message):
        response = client.post(
            "/coaching-reply",
            params={"token": sent_message.reply_token},
            json={"message_id": sent_message.id, "reply_text": "  "},
        )
        assert response.status_code == 400

    def test_malformed_body(self, client, sent_message):
        response = client.post("/coaching-reply", params={"token": sent_message.reply_token}, json={})
        assert response.status_code == 400

    def test_unknown_token(self, client, sent_message):
        response = client.post(
            "/coaching-reply",
            params={"token": "f" * 64},
            json={"message_id": sent_message.id, "reply_text": "Hi"},
        )
        assert response.status_code == 404
