from datetime import datetime, timedelta, timezone

import pytest

from facetstudio import subscriptions
from facetstudio.errors import StorageError

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def test_plan_pricing():
    assert subscriptions.plan_pricing("free") == "Free"
    assert subscriptions.plan_pricing("pro_monthly") == "$9.99/month"
    assert subscriptions.plan_pricing("pro_yearly") == "$99.99/year"
    assert subscriptions.plan_pricing("platinum") == ""


def test_free_plan_counts_analyses_in_rolling_period(pb, session):
    session.add("GET", "/subscriptions/records", {"page": 1, "totalPages": 0, "items": []})
    session.add("GET", "/facial_geometry/records", {"page": 1, "totalItems": 2, "items": [{"id": "g1"}]})

    quota = subscriptions.check_analysis_limit(pb, now=NOW)

    assert quota == subscriptions.AnalysisQuota(True, 2, 1, "Free")
    count_call = session.calls_to("GET", "/facial_geometry/records")[0]
    assert count_call.params["perPage"] == 1
    assert count_call.params["filter"] == 'user = "u1" && created >= "2024-05-02 00:00:00.000Z"'


def test_remaining_never_negative(pb, session):
    session.add("GET", "/subscriptions/records", {"items": []})
    session.add("GET", "/facial_geometry/records", {"totalItems": 9, "items": []})
    assert subscriptions.check_analysis_limit(pb, now=NOW).remaining == 0


def test_pro_plan_is_unlimited(pb, session):
    session.add("GET", "/subscriptions/records", {"items": [{"id": "s1", "plan_id": "pro_monthly", "status": "active"}]})
    quota = subscriptions.check_analysis_limit(pb, now=NOW)
    assert quota.has_limit is False
    assert quota.remaining is None
    assert quota.plan_name == "Pro"
    assert session.calls_to("GET", "/facial_geometry/records") == []


def test_current_subscription_query(pb, session):
    session.add("GET", "/subscriptions/records", {"items": [{
        "id": "s1", "plan_id": "pro_yearly", "status": "active",
        "current_period_start": "2024-01-01 00:00:00.000Z",
    }]})
    sub = subscriptions.get_current_subscription(pb)
    assert sub.plan_id == "pro_yearly"
    assert sub.user_id == "u1"
    assert sub.current_period_start == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert session.calls[-1].params["filter"] == 'user = "u1" && status = "active"'


def test_create_subscription_uses_thirty_day_period(pb, session):
    session.add("POST", "/subscriptions/records", lambda call: {"id": "s9", **call.json})
    sub = subscriptions.create_subscription(pb, "pro_yearly", now=NOW)
    sent = session.calls[-1].json
    assert sent["plan_id"] == "pro_yearly"
    assert sent["current_period_start"] == "2024-06-01T00:00:00+00:00"
    assert sent["current_period_end"] == "2024-07-01T00:00:00+00:00"
    assert sub.id == "s9"
    assert sub.status == "active"
    assert sub.current_period_end - sub.current_period_start == timedelta(days=30)


def test_create_subscription_validation(pb, anon_pb):
    with pytest.raises(ValueError):
        subscriptions.create_subscription(pb, "platinum")
    with pytest.raises(StorageError):
        subscriptions.create_subscription(anon_pb, "pro_monthly")


def test_cancel_subscription(pb, session):
    session.add("PATCH", "/subscriptions/records/s1", {"id": "s1"})
    assert subscriptions.cancel_subscription(pb, "s1") is True
    assert session.calls[-1].json == {"cancel_at_period_end": True}

    assert subscriptions.cancel_subscription(pb, "missing") is False
