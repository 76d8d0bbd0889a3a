"""Identity provider integration — token lookup and user sync webhook.

Identity is delegated to a hosted OIDC provider. Two touch points:

  - fetch_subject(token): resolve a bearer token to the provider's subject
    id through the OIDC userinfo endpoint.
  - verify_webhook(...) + apply_user_event(...): validate the signed
    user.created / user.updated / user.deleted webhook (Svix signing scheme)
    and mirror the change into the users table.

Business Rules:
- An unreachable or rejecting provider resolves to "no subject" (401 upstream)
- Webhook signatures are HMAC-SHA256 over "{id}.{timestamp}.{body}"
- Webhook timestamps older or newer than 5 minutes are rejected
- A created/updated event for an unknown subject links by email, else inserts

Called by: dependencies.py, routers/auth.py
Depends on: http_client, config, models
"""

import base64
import hashlib
import hmac
import json
import time

import httpx
from loguru import logger
from sqlalchemy.orm import Session

from ..config import settings
from ..http_client import http
from ..models import User

WEBHOOK_TOLERANCE_SECONDS = 300


class WebhookVerificationError(Exception):
    """Raised when a webhook request cannot be authenticated."""


# ── Token → subject ──────────────────────────────────────────────────


async def fetch_subject(token: str) -> str | None:
    """Return the subject id for a bearer token, or None if not valid."""
    if not settings.auth_userinfo_url:
        logger.warning("auth_userinfo_url not configured, rejecting bearer token")
        return None
    try:
        resp = await http.get(
            settings.auth_userinfo_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=settings.auth_timeout_seconds,
        )
    except httpx.HTTPError as e:
        logger.warning("Identity provider unreachable: {}", e)
        return None
    if resp.status_code != 200:
        logger.debug("Identity provider rejected token ({})", resp.status_code)
        return None
    try:
        subject = resp.json().get("sub")
    except ValueError:
        logger.warning("Identity provider returned a non-JSON userinfo body")
        return None
    return subject or None


# ── Webhook verification ─────────────────────────────────────────────


def _secret_bytes(secret: str) -> bytes:
    if secret.startswith("whsec_"):
        return base64.b64decode(secret[len("whsec_"):])
    return secret.encode()


def sign_webhook(secret: str, msg_id: str, timestamp: str, body: bytes) -> str:
    """Compute the v1 signature for a webhook payload."""
    signed = f"{msg_id}.{timestamp}.".encode() + body
    digest = hmac.new(_secret_bytes(secret), signed, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify_webhook(body: bytes, headers, secret: str, now: float | None = None) -> dict:
    """Check webhook headers and signature; return the decoded payload."""
    msg_id = headers.get("svix-id")
    timestamp = headers.get("svix-timestamp")
    signatures = headers.get("svix-signature")
    if not msg_id or not timestamp or not signatures:
        raise WebhookVerificationError("Faltan cabeceras de firma")

    try:
        ts = int(timestamp)
    except ValueError:
        raise WebhookVerificationError("Marca de tiempo no válida")
    now = time.time() if now is None else now
    if abs(now - ts) > WEBHOOK_TOLERANCE_SECONDS:
        raise WebhookVerificationError("Marca de tiempo fuera de tolerancia")

    expected = sign_webhook(secret, msg_id, timestamp, body)
    for candidate in signatures.split():
        version, _, value = candidate.partition(",")
        if version == "v1" and hmac.compare_digest(value, expected):
            break
    else:
        raise WebhookVerificationError("Firma no válida")

    try:
        return json.loads(body)
    except ValueError:
        raise WebhookVerificationError("Cuerpo no válido")


# ── User sync ────────────────────────────────────────────────────────


def _primary_email(data: dict) -> str | None:
    addresses = data.get("email_addresses") or []
    primary_id = data.get("primary_email_address_id")
    for addr in addresses:
        if addr.get("id") == primary_id:
            return addr.get("email_address")
    if addresses:
        return addresses[0].get("email_address")
    return None


def _display_name(data: dict) -> str | None:
    parts = [data.get("first_name"), data.get("last_name")]
    name = " ".join(p for p in parts if p)
    return name or data.get("username") or None


def apply_user_event(db: Session, event: dict) -> User | None:
    """Mirror an identity-provider user event into the users table.

    Returns the affected user (None for deletions and ignored events).
    Caller commits.
    """
    event_type = event.get("type")
    data = event.get("data") or {}
    external_id = data.get("id")
    if not external_id:
        logger.warning("Webhook {} without subject id, ignoring", event_type)
        return None

    user = db.query(User).filter_by(external_id=external_id).first()

    if event_type == "user.deleted":
        if user:
            db.delete(user)
            logger.info("User {} deleted via webhook", external_id)
        return None

    if event_type not in ("user.created", "user.updated"):
        logger.debug("Ignoring webhook event {}", event_type)
        return None

    email = _primary_email(data)
    if not user and email:
        user = db.query(User).filter_by(email=email.lower()).first()
        if user:
            user.external_id = external_id
    if not user:
        if not email:
            logger.warning("Webhook {} for {} has no email, skipping", event_type, external_id)
            return None
        user = User(external_id=external_id, email=email.lower())
        db.add(user)
        logger.info("User {} created via webhook", external_id)
    elif email:
        user.email = email.lower()

    name = _display_name(data)
    if name:
        user.name = name
    if data.get("image_url"):
        user.avatar_url = data["image_url"]
    return user
