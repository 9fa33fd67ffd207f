"""
Tests for joining travel plans.
"""
from datetime import datetime
from unittest.mock import patch
import pytest
from sqlalchemy.orm import Query
from travelbuddy.core.exceptions import (
    NotFoundError, ForbiddenError, PlanNotJoinableError, SelfJoinError,
    AlreadyJoinedError, PlanFullError
)
from travelbuddy.models.travel_plan import PlanStatus, TravelPlan, TravelPlanParticipant
from travelbuddy.models.user import User
from travelbuddy.services.participation_service import join_plan, list_participants, _increment_participants

BEFORE_START = datetime(2025, 5, 1)


def participant_rows(db, plan_id):
    return db.query(TravelPlanParticipant).filter(TravelPlanParticipant.plan_id == plan_id).count()


def test_join_increments_count_and_history(db, make_user, make_plan):
    host, guest = make_user(), make_user()
    plan = make_plan(host)

    joined = join_plan(db, plan.id, guest.id, BEFORE_START)

    assert joined.participants_count == 1
    assert participant_rows(db, plan.id) == 1
    db.refresh(guest)
    assert guest.travel_history == [plan.id]


def test_join_locks_plan_then_user(db, make_user, make_plan):
    host, guest = make_user(), make_user()
    first, second = make_plan(host), make_plan(host)

    with patch.object(Query, "with_for_update", autospec=True, side_effect=Query.with_for_update) as locked:
        join_plan(db, first.id, guest.id, BEFORE_START)

    locked_entities = [call.args[0].column_descriptions[0]["entity"] for call in locked.call_args_list]
    assert locked_entities == [TravelPlan, User]

    join_plan(db, second.id, guest.id, BEFORE_START)
    db.refresh(guest)
    assert guest.travel_history == [first.id, second.id]


def test_join_while_ongoing(db, make_user, make_plan):
    host, guest = make_user(), make_user()
    plan = make_plan(host)
    assert join_plan(db, plan.id, guest.id, datetime(2025, 6, 5)).participants_count == 1


def test_double_join_conflicts_and_keeps_count(db, make_user, make_plan):
    host, guest = make_user(), make_user()
    plan = make_plan(host)
    join_plan(db, plan.id, guest.id, BEFORE_START)

    with pytest.raises(AlreadyJoinedError):
        join_plan(db, plan.id, guest.id, BEFORE_START)

    db.refresh(plan)
    assert plan.participants_count == 1
    assert participant_rows(db, plan.id) == 1


def test_host_cannot_join_own_plan(db, make_user, make_plan):
    host = make_user()
    plan = make_plan(host)
    with pytest.raises(SelfJoinError):
        join_plan(db, plan.id, host.id, BEFORE_START)


def test_full_plan_rejects_join(db, make_user, make_plan):
    host, first, second = make_user(), make_user(), make_user()
    plan = make_plan(host, max_participants=1)
    join_plan(db, plan.id, first.id, BEFORE_START)

    with pytest.raises(PlanNotJoinableError):
        join_plan(db, plan.id, second.id, BEFORE_START)

    db.refresh(plan)
    assert plan.participants_count == 1


def test_lost_capacity_race_rolls_back(db, make_user, make_plan):
    host, guest = make_user(), make_user()
    plan = make_plan(host, max_participants=2)

    # A concurrent join took the last seat between the check and the increment
    with patch("travelbuddy.services.participation_service._increment_participants", return_value=False):
        with pytest.raises(PlanFullError):
            join_plan(db, plan.id, guest.id, BEFORE_START)

    db.refresh(plan)
    db.refresh(guest)
    assert plan.participants_count == 0
    assert participant_rows(db, plan.id) == 0
    assert guest.travel_history == []


def test_increment_refuses_past_cap(db, make_user, make_plan):
    plan = make_plan(make_user(), max_participants=1, participants_count=1)
    assert _increment_participants(db, plan.id) is False
    db.commit()
    db.refresh(plan)
    assert plan.participants_count == 1


@pytest.mark.parametrize("manual", [PlanStatus.CLOSED, PlanStatus.CANCELED])
def test_closed_or_canceled_rejects_join(db, make_user, make_plan, manual):
    host, guest = make_user(), make_user()
    plan = make_plan(host, manual_status=manual)
    with pytest.raises(PlanNotJoinableError):
        join_plan(db, plan.id, guest.id, BEFORE_START)
    assert participant_rows(db, plan.id) == 0


def test_ended_plan_rejects_join(db, make_user, make_plan):
    host, guest = make_user(), make_user()
    plan = make_plan(host)
    with pytest.raises(PlanNotJoinableError):
        join_plan(db, plan.id, guest.id, datetime(2025, 7, 1))


def test_missing_plan(db, make_user):
    with pytest.raises(NotFoundError):
        join_plan(db, 999, make_user().id, BEFORE_START)


def test_participants_visible_to_host_only(db, make_user, make_plan):
    host, guest, other = make_user(), make_user(), make_user()
    plan = make_plan(host)
    join_plan(db, plan.id, guest.id, BEFORE_START)

    result = list_participants(db, plan.id, host)
    assert result["count"] == 1
    assert result["users"][0]["id"] == guest.id

    with pytest.raises(ForbiddenError):
        list_participants(db, plan.id, other)
