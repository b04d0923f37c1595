# modules/billing/service.py
"""
Subscription status consumer.

Three calls against Stripe, mirroring the billing functions the UI needs:

- check_subscription(user)  -> {"subscribed", "subscription_tier", "subscription_end"}
- create_checkout(user, tier, ...) -> Checkout URL (monthly subscription)
- customer_portal(user, ...)       -> billing portal URL

Every Stripe failure is wrapped in RemoteCallError; callers log + flash and
leave the action retryable. Nothing here retries on its own.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import stripe
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import User, db
from modules.common.errors import RemoteCallError, ValidationError
from .config import CURRENCY, resolve_tier, tier_for_amount

log = logging.getLogger(__name__)

UNSUBSCRIBED = {"subscribed": False, "subscription_tier": None, "subscription_end": None}


class StripeBilling:
    """Thin wrapper so the app can swap the provider (tests use a fake)."""

    def __init__(self, api_key: str | None):
        self.api_key = api_key

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def find_customer(self, email: str) -> Optional[str]:
        customers = stripe.Customer.list(email=email, limit=1, api_key=self.api_key)
        data = customers.get("data") or []
        return data[0]["id"] if data else None

    def active_subscription(self, customer_id: str) -> Optional[Dict[str, Any]]:
        subs = stripe.Subscription.list(
            customer=customer_id, status="active", limit=1, api_key=self.api_key
        )
        data = subs.get("data") or []
        if not data:
            return None
        sub = data[0]
        item = ((sub.get("items") or {}).get("data") or [{}])[0]
        price = item.get("price") or {}
        # newer API versions carry the period on the item
        period_end = sub.get("current_period_end") or item.get("current_period_end")
        return {
            "id": sub.get("id"),
            "unit_amount": price.get("unit_amount"),
            "current_period_end": period_end,
        }

    def create_checkout_session(self, **params) -> str:
        session_obj = stripe.checkout.Session.create(api_key=self.api_key, **params)
        return session_obj.url

    def create_portal_session(self, customer_id: str, return_url: str) -> str:
        portal = stripe.billing_portal.Session.create(
            customer=customer_id, return_url=return_url, api_key=self.api_key
        )
        return portal.url


def get_billing() -> StripeBilling:
    client = current_app.extensions.get("mentor_billing")
    if client is None:
        client = StripeBilling(current_app.config.get("STRIPE_SECRET_KEY"))
        current_app.extensions["mentor_billing"] = client
    return client


def _iso_from_ts(ts: Any) -> Optional[str]:
    if not ts:
        return None
    try:
        return datetime.fromtimestamp(int(ts), tz=timezone.utc).isoformat()
    except (TypeError, ValueError):
        return None


def _customer_id(client: StripeBilling, user: User) -> Optional[str]:
    if user.stripe_customer_id:
        return user.stripe_customer_id
    customer_id = client.find_customer(user.email)
    if customer_id:
        user.stripe_customer_id = customer_id
    return customer_id


def check_subscription(user: User) -> Dict[str, Any]:
    """
    Ask Stripe whether `user` has an active subscription.

    An active subscription also sets the local premium flag; a missing one
    leaves the flag alone (it may have been granted by an admin).
    """
    client = get_billing()
    if not client.configured:
        return dict(UNSUBSCRIBED)

    try:
        customer_id = _customer_id(client, user)
        sub = client.active_subscription(customer_id) if customer_id else None
    except Exception as e:
        log.exception("check_subscription failed for user=%s", user.id)
        raise RemoteCallError("Could not check your subscription status.") from e

    if not sub:
        status = dict(UNSUBSCRIBED)
    else:
        status = {
            "subscribed": True,
            "subscription_tier": tier_for_amount(sub.get("unit_amount")),
            "subscription_end": _iso_from_ts(sub.get("current_period_end")),
        }
        user.is_premium = True

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        log.exception("Could not persist subscription status for user=%s", user.id)
    return status


def safe_check_subscription(user: User | None) -> Dict[str, Any]:
    """check_subscription for page renders: failures are logged, never raised."""
    if user is None:
        return dict(UNSUBSCRIBED)
    try:
        return check_subscription(user)
    except RemoteCallError:
        return dict(UNSUBSCRIBED)


def effective_status(user: User | None, status: Dict[str, Any] | None) -> Dict[str, Any]:
    """
    Merge the provider status with the local premium flag (logical OR).
    The provider's tier wins when it reports one.
    """
    status = status or UNSUBSCRIBED
    local = bool(user and user.is_premium)
    is_premium = bool(status.get("subscribed")) or local
    tier = status.get("subscription_tier") or ("Premium" if is_premium else "Free")
    return {
        "is_premium": is_premium,
        "tier": tier,
        "subscription_end": status.get("subscription_end"),
        "subscribed": bool(status.get("subscribed")),
    }


def create_checkout(user: User, tier_name: str | None, success_url: str, cancel_url: str) -> str:
    client = get_billing()
    if not client.configured:
        raise RemoteCallError("Billing is not configured. Please set STRIPE_SECRET_KEY.")

    tier = resolve_tier(tier_name)
    if tier.stripe_price_id:
        line_items = [{"price": tier.stripe_price_id, "quantity": 1}]
    else:
        line_items = [
            {
                "price_data": {
                    "currency": CURRENCY,
                    "product_data": {"name": tier.product_name},
                    "unit_amount": tier.amount_cents,
                    "recurring": {"interval": "month"},
                },
                "quantity": 1,
            }
        ]

    try:
        customer_id = _customer_id(client, user)
        url = client.create_checkout_session(
            mode="subscription",
            line_items=line_items,
            success_url=success_url,
            cancel_url=cancel_url,
            customer=customer_id or None,
            customer_email=None if customer_id else user.email,
            metadata={"user_id": str(user.id), "tier": tier.name},
        )
    except Exception as e:
        log.exception("Stripe Checkout error for user=%s tier=%s", user.id, tier.name)
        raise RemoteCallError("Unable to start checkout. Please try again.") from e

    db.session.commit()
    return url


def customer_portal(user: User, return_url: str) -> str:
    client = get_billing()
    if not client.configured:
        raise RemoteCallError("Billing is not configured. Please set STRIPE_SECRET_KEY.")

    try:
        customer_id = _customer_id(client, user)
    except Exception as e:
        log.exception("Stripe customer lookup failed for user=%s", user.id)
        raise RemoteCallError("Unable to open the billing portal.") from e

    if not customer_id:
        raise ValidationError("No billing account found. Subscribe to a plan first.")

    try:
        url = client.create_portal_session(customer_id, return_url)
    except Exception as e:
        log.exception("Stripe portal error for user=%s", user.id)
        raise RemoteCallError("Unable to open the billing portal.") from e

    db.session.commit()
    return url
