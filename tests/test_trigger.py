"""
Tests for per-tick trigger evaluation
"""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from autopublish.models import Tenant
from autopublish.scheduling.trigger import TriggerEvaluator, evaluate

DENVER = ZoneInfo("America/Denver")

MONDAY = datetime(2026, 10, 19, 0, 0, tzinfo=DENVER)


def _tenant(**kwargs):
    values = dict(id="acme", name="Acme", timezone="America/Denver", is_active=True,
                  auto_schedule_enabled=True, schedule_day_pair="TUE_THU", schedule_time_slot=5)
    values.update(kwargs)
    return Tenant(**values)


def test_fires_once_per_scheduled_day_over_a_week():
    tenant = _tenant()
    fired = []
    for hour in range(7 * 24):
        now = MONDAY + timedelta(hours=hour)
        if evaluate(tenant, now).due:
            fired.append(now)

    assert [(t.strftime("%a"), t.hour) for t in fired] == [("Tue", 13), ("Thu", 13)]


def test_local_time_uses_tenant_zone():
    tenant = _tenant(timezone="America/New_York")
    # 13:00 in New York is 11:00 in Denver
    decision = evaluate(tenant, datetime(2026, 10, 20, 11, 0, tzinfo=DENVER))
    assert decision.due
    assert decision.local_time.hour == 13


def test_naive_utc_input():
    # 19:00 UTC is 13:00 MDT
    assert evaluate(_tenant(), datetime(2026, 10, 20, 19, 0)).due


def test_invalid_timezone_falls_back_to_default():
    tenant = _tenant(timezone="Mars/Olympus_Mons")
    decision = evaluate(tenant, datetime(2026, 10, 20, 13, 0, tzinfo=DENVER))
    assert decision.timezone_fallback
    assert decision.due


def test_wrong_day_and_wrong_hour_reasons():
    tenant = _tenant()
    wednesday = evaluate(tenant, datetime(2026, 10, 21, 13, 0, tzinfo=DENVER))
    assert not wednesday.due
    assert "Wednesday" in wednesday.reason

    early = evaluate(tenant, datetime(2026, 10, 20, 12, 0, tzinfo=DENVER))
    assert not early.due
    assert "12" in early.reason


def test_missing_assignment_is_skipped():
    decision = evaluate(_tenant(schedule_time_slot=None), datetime(2026, 10, 20, 13, tzinfo=DENVER))
    assert not decision.due
    assert decision.reason == "missing day pair or time slot"


def test_next_run():
    decision = evaluate(_tenant(), datetime(2026, 10, 20, 13, 0, tzinfo=DENVER))
    assert decision.next_run() == datetime(2026, 10, 22, 13, 0, tzinfo=DENVER)

    before = evaluate(_tenant(), datetime(2026, 10, 19, 9, 30, tzinfo=DENVER))
    assert before.next_run() == datetime(2026, 10, 20, 13, 0, tzinfo=DENVER)


class TestTriggerEvaluator:
    def test_due_now_filters_tenants(self, db, make_tenant):
        make_tenant("due", day_pair="TUE_THU", time_slot=5)
        make_tenant("later", day_pair="TUE_THU", time_slot=6)
        make_tenant("unset")
        make_tenant("off", day_pair="TUE_THU", time_slot=5, auto_schedule_enabled=False)
        make_tenant("gone", day_pair="TUE_THU", time_slot=5, is_active=False)

        due = TriggerEvaluator(db).due_now(datetime(2026, 10, 20, 13, 0, tzinfo=DENVER))
        assert [t.id for t in due] == ["due"]

    def test_preview_reports_issues(self, db, make_tenant):
        make_tenant("ready", day_pair="TUE_THU", time_slot=5, templates=1, locations=1)
        make_tenant("broken", day_pair="MON_WED", time_slot=0, timezone="Nowhere/Special")
        make_tenant("paused", auto_schedule_enabled=False, templates=1, locations=1)

        preview = {p["tenant_id"]: p for p in TriggerEvaluator(db).preview(
            datetime(2026, 10, 20, 13, 0, tzinfo=DENVER))}

        assert preview["ready"]["would_run"] is True
        assert preview["ready"]["issues"] == []

        broken = preview["broken"]
        assert broken["would_run"] is False
        assert broken["timezone_fallback"] is True
        assert "no active templates" in broken["issues"]
        assert "no active locations" in broken["issues"]
        assert any("Nowhere/Special" in issue for issue in broken["issues"])

        assert preview["paused"]["reason"] == "auto scheduling disabled"
        assert preview["paused"]["next_run"] is None
