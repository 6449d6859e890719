# facetstudio/subscriptions.py
# Plan catalogue and per-period analysis quota backed by the subscriptions collection.

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from facetstudio.auth import get_current_user
from facetstudio.backend import PocketBase, build_filter
from facetstudio.errors import StorageError, with_retry

log = logging.getLogger(__name__)

SUBSCRIPTIONS = "subscriptions"
PERIOD = timedelta(days=30)


@dataclass
class Plan:
    id: str
    name: str
    price: float
    interval: str  # "month" | "year"
    features: List[str] = field(default_factory=list)
    analysis_limit: Optional[int] = None  # None = unlimited


_PRO_FEATURES = [
    "Unlimited analyses",
    "Advanced skin analysis",
    "Personalized product recommendations",
    "Priority AI coach",
    "Visual makeup guides",
    "Trend research",
]

PLANS: Dict[str, Plan] = {
    "free": Plan(
        "free", "Free", 0.0, "month",
        ["3 analyses per month", "Basic color recommendations", "AI chat support"],
        analysis_limit=3,
    ),
    "pro_monthly": Plan("pro_monthly", "Pro", 9.99, "month", list(_PRO_FEATURES)),
    "pro_yearly": Plan("pro_yearly", "Pro Annual", 99.99, "year", _PRO_FEATURES + ["2 months free!"]),
}


@dataclass
class Subscription:
    id: str
    user_id: str
    plan_id: str
    status: str  # active | canceled | past_due | trialing
    current_period_start: Optional[datetime]
    current_period_end: Optional[datetime]
    cancel_at_period_end: bool = False


@dataclass
class AnalysisQuota:
    has_limit: bool
    used: int
    remaining: Optional[int]  # None = unlimited
    plan_name: str


def plan_pricing(plan_id: str) -> str:
    plan = PLANS.get(plan_id)
    if plan is None:
        return ""
    if plan.price == 0:
        return "Free"
    return f"${plan.price}/{plan.interval}"


def _parse_dt(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00").replace(" ", "T"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _from_record(r: Dict, user_id: str) -> Subscription:
    return Subscription(
        id=r.get("id", ""),
        user_id=user_id,
        plan_id=r.get("plan_id", "free"),
        status=r.get("status", "active"),
        current_period_start=_parse_dt(r.get("current_period_start")),
        current_period_end=_parse_dt(r.get("current_period_end")),
        cancel_at_period_end=bool(r.get("cancel_at_period_end")),
    )


def get_current_subscription(pb: PocketBase) -> Optional[Subscription]:
    user = get_current_user(pb)
    if user is None:
        return None
    try:
        rows = with_retry(lambda: pb.collection(SUBSCRIPTIONS).get_list(
            1, 1,
            filter=build_filter('user = {:uid} && status = "active"', uid=user.id),
            sort="-created",
        ))
    except Exception as e:
        log.error("Failed to get subscription: %s", e)
        return None
    items = rows.get("items") or []
    return _from_record(items[0], user.id) if items else None


def create_subscription(pb: PocketBase, plan_id: str, now: Optional[datetime] = None) -> Subscription:
    """Record a subscription for the current user. Card capture happens elsewhere."""
    if plan_id not in PLANS:
        raise ValueError(f"unknown plan: {plan_id}")
    user = get_current_user(pb)
    if user is None:
        raise StorageError("User must be authenticated to subscribe")

    start = now or datetime.now(timezone.utc)
    # every plan renews in 30-day periods
    end = start + PERIOD
    payload = {
        "user": user.id,
        "plan_id": plan_id,
        "status": "active",
        "current_period_start": start.isoformat(),
        "current_period_end": end.isoformat(),
        "cancel_at_period_end": False,
    }
    try:
        row = with_retry(lambda: pb.collection(SUBSCRIPTIONS).create(payload))
    except Exception as e:
        log.error("Failed to create subscription: %s", e)
        raise StorageError("Failed to create subscription") from e
    return _from_record({**payload, **row}, user.id)


def cancel_subscription(pb: PocketBase, subscription_id: str) -> bool:
    try:
        with_retry(lambda: pb.collection(SUBSCRIPTIONS).update(
            subscription_id, {"cancel_at_period_end": True}
        ))
        return True
    except Exception as e:
        log.error("Failed to cancel subscription: %s", e)
        return False


def check_analysis_limit(pb: PocketBase, now: Optional[datetime] = None) -> AnalysisQuota:
    subscription = get_current_subscription(pb)
    plan = PLANS.get(subscription.plan_id if subscription else "free", PLANS["free"])

    if plan.analysis_limit is None:
        return AnalysisQuota(False, 0, None, plan.name)

    user = get_current_user(pb)
    if user is None:
        return AnalysisQuota(True, 0, plan.analysis_limit, plan.name)

    now = now or datetime.now(timezone.utc)
    period_start = (subscription and subscription.current_period_start) or (now - PERIOD)
    try:
        page = with_retry(lambda: pb.collection("facial_geometry").get_list(
            1, 1,
            filter=build_filter("user = {:uid} && created >= {:start}", uid=user.id, start=period_start),
        ))
    except Exception as e:
        log.error("Failed to check analysis limit: %s", e)
        return AnalysisQuota(True, 0, plan.analysis_limit, plan.name)

    used = int(page.get("totalItems") or 0)
    return AnalysisQuota(True, used, max(0, plan.analysis_limit - used), plan.name)
