"""
Owner subscriptions and the premium paywall.

Subscription rows are maintained exclusively by the billing webhook:

    customer.subscription.created / updated → premium, period fields
    customer.subscription.deleted           → canceled, free
    invoice.payment_succeeded               → active
    invoice.payment_failed                  → past_due

Owners without a row are on the free tier.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from taptab.services.backend.base import BaseMenuBackend, Row

logger = logging.getLogger(__name__)

PREMIUM_STATUSES = ("active", "trialing")

# Features gated behind premium when the paywall is enabled
PREMIUM_BENEFITS = [
    "Generate QR codes for your menus",
    "Publish menus publicly",
    "Share menu links with customers",
]


def free_tier_status() -> dict:
    return {
        "has_premium": False,
        "status": "active",
        "plan_type": "free",
        "current_period_end": None,
        "cancel_at_period_end": False,
    }


def has_premium(subscription: Optional[Row]) -> bool:
    if not subscription:
        return False
    return (
        subscription.get("plan_type") == "premium"
        and subscription.get("status") in PREMIUM_STATUSES
    )


async def get_subscription_status(backend: BaseMenuBackend, user_id: Optional[str]) -> dict:
    """Subscription summary of an owner; free tier when none is recorded."""
    if not user_id:
        return free_tier_status()
    subscription = await backend.select_one("subscriptions", {"user_id": user_id})
    if subscription is None:
        return free_tier_status()
    return {
        "has_premium": has_premium(subscription),
        "status": subscription.get("status"),
        "plan_type": subscription.get("plan_type"),
        "current_period_end": subscription.get("current_period_end"),
        "cancel_at_period_end": bool(subscription.get("cancel_at_period_end")),
    }


def _timestamp(value: Any) -> Optional[str]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).isoformat()


async def _update_by_subscription_id(
    backend: BaseMenuBackend, subscription_id: Optional[str], updates: Row
) -> Optional[Row]:
    if not subscription_id:
        return None
    row = await backend.select_one("subscriptions", {"stripe_subscription_id": subscription_id})
    if row is None:
        logger.warning(f"No subscription row for {subscription_id}, event ignored")
        return None
    return await backend.update("subscriptions", row["id"], updates)


async def apply_subscription_event(backend: BaseMenuBackend, event: dict) -> Optional[Row]:
    """
    Apply a billing webhook event. Returns the written row, or None when
    the event is ignored.
    """
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}

    if event_type in ("customer.subscription.created", "customer.subscription.updated"):
        user_id = (obj.get("metadata") or {}).get("userId")
        if not user_id:
            logger.error(f"{event_type}: no userId in subscription metadata")
            return None
        row = await backend.upsert("subscriptions", {
            "user_id": user_id,
            "stripe_customer_id": obj.get("customer"),
            "stripe_subscription_id": obj.get("id"),
            "status": obj.get("status") or "active",
            "plan_type": "premium",
            "current_period_start": _timestamp(obj.get("current_period_start")),
            "current_period_end": _timestamp(obj.get("current_period_end")),
            "cancel_at_period_end": bool(obj.get("cancel_at_period_end")),
        }, on_conflict="user_id")
        logger.info(f"Subscription for {user_id} is now {row['status']} ({row['plan_type']})")
        return row

    if event_type == "customer.subscription.deleted":
        row = await _update_by_subscription_id(
            backend, obj.get("id"), {"status": "canceled", "plan_type": "free"}
        )
        if row:
            logger.info(f"Subscription {obj.get('id')} downgraded to free")
        return row

    if event_type == "invoice.payment_succeeded":
        return await _update_by_subscription_id(backend, obj.get("subscription"), {"status": "active"})

    if event_type == "invoice.payment_failed":
        return await _update_by_subscription_id(backend, obj.get("subscription"), {"status": "past_due"})

    logger.info(f"Unhandled billing event type: {event_type}")
    return None
