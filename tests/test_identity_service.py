"""
test_identity_service.py — Unit tests for services/identity_service.py

Token → subject resolution (userinfo endpoint mocked), webhook
signature verification, and user event mirroring.

Called by: pytest
Depends on: services/identity_service.py
"""

import base64
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from yumi.config import settings
from yumi.models import User
from yumi.services import identity_service
from yumi.services.identity_service import (
    WebhookVerificationError,
    apply_user_event,
    sign_webhook,
    verify_webhook,
)

USERINFO_URL = "https://id.yumi.test/oauth/userinfo"


def _response(status_code: int, payload=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    return resp


# ── fetch_subject ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_fetch_subject_returns_sub():
    with patch.object(settings, "auth_userinfo_url", USERINFO_URL), \
         patch.object(identity_service.http, "get", new_callable=AsyncMock) as mock_get:
        mock_get.return_value = _response(200, {"sub": "user_abc", "email": "a@b.c"})
        assert await identity_service.fetch_subject("tok") == "user_abc"
    _, kwargs = mock_get.call_args
    assert kwargs["headers"] == {"Authorization": "Bearer tok"}


@pytest.mark.asyncio
async def test_fetch_subject_rejected_token():
    with patch.object(settings, "auth_userinfo_url", USERINFO_URL), \
         patch.object(identity_service.http, "get", new_callable=AsyncMock) as mock_get:
        mock_get.return_value = _response(401)
        assert await identity_service.fetch_subject("tok") is None


@pytest.mark.asyncio
async def test_fetch_subject_provider_down():
    with patch.object(settings, "auth_userinfo_url", USERINFO_URL), \
         patch.object(identity_service.http, "get", new_callable=AsyncMock) as mock_get:
        mock_get.side_effect = httpx.ConnectError("boom")
        assert await identity_service.fetch_subject("tok") is None


@pytest.mark.asyncio
async def test_fetch_subject_not_configured():
    with patch.object(settings, "auth_userinfo_url", ""), \
         patch.object(identity_service.http, "get", new_callable=AsyncMock) as mock_get:
        assert await identity_service.fetch_subject("tok") is None
    mock_get.assert_not_called()


# ── verify_webhook ───────────────────────────────────────────────────


def _headers(secret: str, body: bytes, ts: int = 1_700_000_000, extra_sigs: str = "") -> dict:
    sig = sign_webhook(secret, "msg_9", str(ts), body)
    return {
        "svix-id": "msg_9",
        "svix-timestamp": str(ts),
        "svix-signature": f"{extra_sigs}v1,{sig}".strip(),
    }


def test_verify_accepts_valid_signature():
    body = json.dumps({"type": "user.created"}).encode()
    payload = verify_webhook(body, _headers("plain-secret", body), "plain-secret", now=1_700_000_010)
    assert payload == {"type": "user.created"}


def test_verify_accepts_any_matching_signature_in_list():
    body = b'{"type": "user.updated"}'
    headers = _headers("plain-secret", body, extra_sigs="v1,bm90LWl0 ")
    assert verify_webhook(body, headers, "plain-secret", now=1_700_000_000)["type"] == "user.updated"


def test_verify_decodes_whsec_secret():
    raw = b"binary-secret"
    secret = "whsec_" + base64.b64encode(raw).decode()
    body = b"{}"
    assert verify_webhook(body, _headers(secret, body), secret, now=1_700_000_000) == {}


def test_verify_rejects_tampered_body():
    body = b'{"type": "user.created"}'
    headers = _headers("plain-secret", body)
    with pytest.raises(WebhookVerificationError, match="Firma"):
        verify_webhook(b'{"type": "user.deleted"}', headers, "plain-secret", now=1_700_000_000)


def test_verify_rejects_old_timestamp():
    body = b"{}"
    with pytest.raises(WebhookVerificationError, match="tolerancia"):
        verify_webhook(body, _headers("s", body), "s", now=1_700_000_000 + 301)


def test_verify_rejects_non_numeric_timestamp():
    headers = {"svix-id": "m", "svix-timestamp": "ayer", "svix-signature": "v1,x"}
    with pytest.raises(WebhookVerificationError):
        verify_webhook(b"{}", headers, "s")


# ── apply_user_event ─────────────────────────────────────────────────


def test_created_event_links_existing_email(db_session, test_user):
    event = {
        "type": "user.created",
        "data": {"id": "user_new_sub", "email_addresses": [{"id": "e", "email_address": "cook@yumi.test"}]},
    }
    user = apply_user_event(db_session, event)
    db_session.commit()
    assert user.id == test_user.id
    assert user.external_id == "user_new_sub"


def test_created_event_without_email_is_skipped(db_session):
    assert apply_user_event(db_session, {"type": "user.created", "data": {"id": "user_x"}}) is None
    assert db_session.query(User).count() == 0


def test_unknown_event_type_ignored(db_session, test_user):
    event = {"type": "session.created", "data": {"id": test_user.external_id}}
    assert apply_user_event(db_session, event) is None


def test_event_without_subject_ignored(db_session):
    assert apply_user_event(db_session, {"type": "user.deleted", "data": {}}) is None
