"""
Polar billing webhook: signature verification and subscription updates.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from gsdapp.config import get_settings
from gsdapp.db import DbClient
from gsdapp.dependencies import get_db_client
from gsdapp.subscriptions import now_ms
from shared.types import (
    Subscription,
    SubscriptionStatus,
    SubscriptionTier,
    parse_iso,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/polar")

ACTIVATING_EVENTS = {
    "subscription.created",
    "subscription.updated",
    "subscription.active",
    "subscription.uncanceled",
}
ENDING_EVENTS = {"subscription.canceled", "subscription.revoked"}
DELETED_EVENT = "subscription.deleted"


@dataclass(frozen=True)
class SignatureCheck:
    is_valid: bool
    error: Optional[str] = None


def sign_payload(timestamp: str, body: str, secret: str) -> str:
    message = f"{timestamp}.{body}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_polar_signature(
    signature: Optional[str],
    timestamp: Optional[str],
    body: str,
    secret: Optional[str],
    max_age_ms: int,
    at_ms: Optional[int] = None,
) -> SignatureCheck:
    """
    Check the ``x-polar-signature`` header: a hex HMAC-SHA256 of
    ``timestamp + "." + body`` keyed by the webhook secret, sent no more
    than ``max_age_ms`` away from now.
    """
    if not signature:
        return SignatureCheck(False, "Missing signature")
    if not timestamp:
        return SignatureCheck(False, "Missing timestamp")
    if not secret:
        return SignatureCheck(False, "Webhook secret not configured")
    try:
        timestamp_ms = int(timestamp)
    except ValueError:
        return SignatureCheck(False, "Invalid timestamp")

    current = at_ms if at_ms is not None else now_ms()
    if abs(current - timestamp_ms) > max_age_ms:
        return SignatureCheck(False, "Timestamp too old")

    expected = sign_payload(timestamp, body, secret)
    if not hmac.compare_digest(signature.lower(), expected):
        return SignatureCheck(False, "Invalid signature")
    return SignatureCheck(True)


def _period_end_ms(value: Any) -> Optional[int]:
    """Polar sends epoch milliseconds or an ISO-8601 string."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return int(value)
    parsed = parse_iso(str(value))
    return int(parsed.timestamp() * 1000)


def _subscription_from_event(
    db: DbClient, event_type: str, data: dict[str, Any]
) -> Optional[Subscription]:
    """Map one subscription event to the record to store, or None to ignore it."""
    user_id = data.get("user_id")
    if not user_id:
        raise ValueError("Subscription event without user_id")
    polar_id = data.get("id")

    if event_type in ACTIVATING_EVENTS:
        return Subscription(
            user_id=user_id,
            status=(
                SubscriptionStatus.ACTIVE
                if data.get("status") == "active"
                else SubscriptionStatus.INACTIVE
            ),
            tier=(
                SubscriptionTier.TEAM
                if data.get("plan_id") == "team"
                else SubscriptionTier.PRO
            ),
            valid_until=_period_end_ms(data.get("current_period_end")),
            polar_subscription_id=polar_id,
        )
    if event_type in ENDING_EVENTS:
        existing = db.get_subscription(user_id)
        return Subscription(
            user_id=user_id,
            status=SubscriptionStatus.INACTIVE,
            tier=existing.tier if existing else SubscriptionTier.PRO,
            valid_until=(
                _period_end_ms(data.get("current_period_end"))
                or (existing.valid_until if existing else None)
            ),
            polar_subscription_id=polar_id,
        )
    if event_type == DELETED_EVENT:
        return Subscription(
            user_id=user_id,
            status=SubscriptionStatus.INACTIVE,
            tier=SubscriptionTier.FREE,
            valid_until=now_ms(),
            polar_subscription_id=polar_id,
        )
    return None


@router.post("")
async def polar_webhook(request: Request, db: DbClient = Depends(get_db_client)):
    settings = get_settings()
    try:
        body = (await request.body()).decode("utf-8")
        signature = request.headers.get("x-polar-signature")
        timestamp = request.headers.get("x-polar-timestamp")

        check = verify_polar_signature(
            signature,
            timestamp,
            body,
            settings.polar_webhook_secret,
            settings.webhook_max_age_ms,
        )
        if not check.is_valid:
            logger.warning("[Polar Webhook] Validation failed: %s", check.error)
            return JSONResponse({"error": check.error}, status_code=401)

        try:
            event = json.loads(body)
        except ValueError:
            logger.warning("[Polar Webhook] Body is not valid JSON")
            return JSONResponse({"error": "Invalid JSON"}, status_code=400)
        if not isinstance(event, dict):
            return JSONResponse({"error": "Invalid event data"}, status_code=400)

        event_type = str(event.get("type") or "")
        data = event.get("data") or {}
        logger.info(
            "[Polar Webhook] Received event %s (signature %s...)",
            event_type,
            signature[:8],
        )

        if not event_type.startswith("subscription."):
            logger.warning("[Polar Webhook] Unhandled event type: %s", event_type)
            return {"status": "ok"}

        subscription_data = data.get("subscription") if isinstance(data, dict) else None
        if not isinstance(subscription_data, dict):
            logger.warning("[Polar Webhook] Missing subscription data for %s", event_type)
            return JSONResponse({"error": "Invalid event data"}, status_code=400)

        try:
            subscription = _subscription_from_event(db, event_type, subscription_data)
        except ValueError as e:
            logger.warning("[Polar Webhook] %s", e)
            return JSONResponse({"error": "Invalid event data"}, status_code=400)

        if subscription is None:
            logger.warning("[Polar Webhook] Unhandled event type: %s", event_type)
        else:
            db.upsert_subscription(subscription)
            logger.info(
                "[Polar Webhook] Subscription for %s is now %s/%s",
                subscription.user_id,
                subscription.status,
                subscription.tier,
            )
        return {"status": "ok"}
    except Exception:
        logger.exception("[Polar Webhook] Error processing webhook")
        return JSONResponse({"error": "Internal server error"}, status_code=500)


@router.get("")
@router.get("/health")
def polar_health():
    return {"status": "ok"}
