"""
Tests for plan status derivation.
"""
from datetime import datetime
from types import SimpleNamespace
import pytest
from travelbuddy.models.travel_plan import PlanStatus, TravelPlan
from travelbuddy.services.plan_status import (
    compute_status, derive_status, is_joinable, status_filter,
    ManualStatus, DerivedStatus
)

START = datetime(2025, 6, 1)
END = datetime(2025, 6, 10)


def plan_fields(**kwargs):
    values = dict(
        manual_status=PlanStatus.OPEN,
        max_participants=None,
        participants_count=0,
        start_date=START,
        end_date=END
    )
    values.update(kwargs)
    return SimpleNamespace(**values)


def test_open_before_start():
    assert derive_status(plan_fields(), datetime(2025, 5, 1)) == PlanStatus.OPEN


def test_ongoing_between_dates():
    assert derive_status(plan_fields(), datetime(2025, 6, 5)) == PlanStatus.ONGOING


def test_ongoing_includes_start_and_end():
    assert derive_status(plan_fields(), START) == PlanStatus.ONGOING
    assert derive_status(plan_fields(), END) == PlanStatus.ONGOING


def test_ended_after_end():
    assert derive_status(plan_fields(), datetime(2025, 6, 11)) == PlanStatus.ENDED


@pytest.mark.parametrize("now", [datetime(2025, 5, 1), datetime(2025, 6, 5), datetime(2025, 7, 1)])
def test_full_regardless_of_time(now):
    plan = plan_fields(max_participants=2, participants_count=2)
    assert derive_status(plan, now) == PlanStatus.FULL


@pytest.mark.parametrize("manual", [PlanStatus.CLOSED, PlanStatus.CANCELED])
def test_manual_override_wins(manual):
    plan = plan_fields(manual_status=manual, max_participants=1, participants_count=1)
    result = compute_status(manual, 1, 1, START, END, datetime(2025, 7, 1))
    assert result == ManualStatus(manual)
    assert derive_status(plan, datetime(2025, 7, 1)) == manual


def test_derived_result_is_tagged():
    result = compute_status(PlanStatus.OPEN, None, 0, START, END, datetime(2025, 6, 5))
    assert isinstance(result, DerivedStatus)
    assert result.status == PlanStatus.ONGOING


def test_tags_reject_wrong_kind():
    with pytest.raises(ValueError):
        ManualStatus(PlanStatus.OPEN)
    with pytest.raises(ValueError):
        DerivedStatus(PlanStatus.CANCELED)


def test_joinable_only_when_open_or_ongoing():
    assert is_joinable(plan_fields(), datetime(2025, 5, 1))
    assert is_joinable(plan_fields(), datetime(2025, 6, 5))
    assert not is_joinable(plan_fields(), datetime(2025, 7, 1))
    assert not is_joinable(plan_fields(manual_status=PlanStatus.CLOSED), datetime(2025, 5, 1))
    assert not is_joinable(plan_fields(max_participants=1, participants_count=1), datetime(2025, 5, 1))


@pytest.mark.parametrize("now,expected", [
    (datetime(2025, 5, 1), PlanStatus.OPEN),
    (datetime(2025, 6, 5), PlanStatus.ONGOING),
    (datetime(2025, 7, 1), PlanStatus.ENDED),
])
def test_status_filter_matches_derivation(db, make_user, make_plan, now, expected):
    host = make_user()
    plain = make_plan(host)
    full = make_plan(host, max_participants=1, participants_count=1)
    closed = make_plan(host, manual_status=PlanStatus.CLOSED)

    for status, plan in [(expected, plain), (PlanStatus.FULL, full), (PlanStatus.CLOSED, closed)]:
        ids = [p.id for p in db.query(TravelPlan).filter(status_filter(status, now)).all()]
        assert ids == [plan.id]
