from typing import Optional

from ..config import settings


# Legacy tier names still sent by older clients
_ALIASES = {"pro": "professional", "custom": "enterprise"}

# limits of None mean unlimited
PLANS = [
    {"id": "demo", "name": "Demo", "price": "Free", "branches_limit": 1, "employees_limit": 10},
    {"id": "basic", "name": "Basic", "price": "$10", "branches_limit": 1, "employees_limit": 25},
    {"id": "professional", "name": "Professional", "price": "$25", "branches_limit": 3, "employees_limit": 30},
    {"id": "enterprise", "name": "Enterprise", "price": "$50+", "branches_limit": None, "employees_limit": None},
]
SUBSCRIPTION_TYPES = tuple(p["id"] for p in PLANS)


def normalize_subscription(value: str) -> str:
    v = (value or "").strip().lower()
    v = _ALIASES.get(v, v)
    if v not in SUBSCRIPTION_TYPES:
        raise ValueError(f"subscription_type must be one of {', '.join(SUBSCRIPTION_TYPES)}")
    return v


def plan_defaults(subscription_type: Optional[str]) -> dict:
    """Limits a new company gets when the caller does not set them."""
    tier = normalize_subscription(subscription_type or settings.default_subscription)
    if tier == "demo":
        return {
            "subscription_type": tier,
            "branches_limit": settings.default_branches_limit,
            "employees_limit": settings.default_employees_limit,
        }
    plan = next(p for p in PLANS if p["id"] == tier)
    # unlimited tiers still store a concrete ceiling
    return {
        "subscription_type": tier,
        "branches_limit": plan["branches_limit"] or 1000,
        "employees_limit": plan["employees_limit"] or 100000,
    }
