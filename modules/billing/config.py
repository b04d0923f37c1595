# modules/billing/config.py
"""
Subscription tiers shown on /subscription and used for Stripe Checkout.

- Prices are monthly, in USD cents (Stripe `unit_amount`).
- `stripe_price_id` is optional: when set (or when STRIPE_PRICE_ID_<TIER> is
  set in the environment) Checkout uses that Price, otherwise it builds an
  inline recurring price from `amount_cents`.
- Tier detection on the way back (check_subscription) maps the active
  subscription's unit amount onto these tiers, cheapest first.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List

DEFAULT_TIER = "Premium"
CURRENCY = "usd"


@dataclass
class Tier:
    name: str
    amount_cents: int
    price_display: str
    description: str
    features: List[str] = field(default_factory=list)
    popular: bool = False
    stripe_price_id: str | None = None

    @property
    def product_name(self) -> str:
        return f"{self.name} Plan"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "amount_cents": self.amount_cents,
            "price_display": self.price_display,
            "description": self.description,
            "features": list(self.features),
            "popular": self.popular,
            "stripe_price_id": self.stripe_price_id,
        }


TIERS: List[Tier] = [
    Tier(
        name="Basic",
        amount_cents=999,
        price_display="$9.99",
        description="Perfect for getting started",
        features=[
            "Access to basic learning modules",
            "Progress tracking",
            "Email support",
            "Basic analytics",
        ],
        stripe_price_id=os.getenv("STRIPE_PRICE_ID_BASIC"),
    ),
    Tier(
        name="Premium",
        amount_cents=1999,
        price_display="$19.99",
        description="Most popular choice",
        features=[
            "All Basic features",
            "Personalized learning paths",
            "Advanced analytics",
            "Priority support",
            "Live mentoring sessions",
            "Certificate generation",
        ],
        popular=True,
        stripe_price_id=os.getenv("STRIPE_PRICE_ID_PREMIUM"),
    ),
    Tier(
        name="Enterprise",
        amount_cents=4999,
        price_display="$49.99",
        description="For serious professionals",
        features=[
            "All Premium features",
            "Custom learning tracks",
            "Team management",
            "API access",
            "Dedicated support",
            "Custom integrations",
        ],
        stripe_price_id=os.getenv("STRIPE_PRICE_ID_ENTERPRISE"),
    ),
]

TIERS_BY_NAME: Dict[str, Tier] = {t.name: t for t in TIERS}


def resolve_tier(name: str | None) -> Tier:
    """Unknown / empty tier names fall back to Premium."""
    return TIERS_BY_NAME.get((name or "").strip().title(), TIERS_BY_NAME[DEFAULT_TIER])


def tier_for_amount(amount_cents: int | None) -> str:
    amount = int(amount_cents or 0)
    for t in TIERS:
        if amount <= t.amount_cents:
            return t.name
    return TIERS[-1].name
