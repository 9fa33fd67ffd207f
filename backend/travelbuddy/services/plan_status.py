"""
Travel plan lifecycle status derivation.

A plan's status is partly stored and partly computed. The host (or an admin)
can close or cancel a plan, and that manual override wins over everything.
Otherwise the status follows from capacity and the current time:

    CLOSED / CANCELED  (manual)  >  FULL  >  OPEN  >  ONGOING  >  ENDED

The status is recomputed on every read; only the manual overrides are stored.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union
from sqlalchemy import and_, or_, not_
from travelbuddy.models.travel_plan import PlanStatus, TravelPlan

MANUAL_STATUSES = frozenset({PlanStatus.CLOSED, PlanStatus.CANCELED})
DERIVED_STATUSES = frozenset({PlanStatus.OPEN, PlanStatus.ONGOING, PlanStatus.FULL, PlanStatus.ENDED})
JOINABLE_STATUSES = frozenset({PlanStatus.OPEN, PlanStatus.ONGOING})
SETTABLE_STATUSES = frozenset({PlanStatus.OPEN, PlanStatus.CLOSED, PlanStatus.CANCELED})


@dataclass(frozen=True)
class ManualStatus:
    """Status set explicitly by the host or an admin."""
    status: PlanStatus

    def __post_init__(self):
        if self.status not in MANUAL_STATUSES:
            raise ValueError(f"{self.status} is not a manual status")


@dataclass(frozen=True)
class DerivedStatus:
    """Status computed from capacity and dates."""
    status: PlanStatus

    def __post_init__(self):
        if self.status not in DERIVED_STATUSES:
            raise ValueError(f"{self.status} is not a derived status")


EffectiveStatus = Union[ManualStatus, DerivedStatus]


def compute_status(
    manual_status: Optional[PlanStatus],
    max_participants: Optional[int],
    participants_count: int,
    start_date: datetime,
    end_date: datetime,
    now: datetime
) -> EffectiveStatus:
    """Resolve the effective status from raw plan fields."""
    if manual_status in MANUAL_STATUSES:
        return ManualStatus(PlanStatus(manual_status))

    if max_participants is not None and (participants_count or 0) >= max_participants:
        return DerivedStatus(PlanStatus.FULL)

    if now < start_date:
        return DerivedStatus(PlanStatus.OPEN)
    if now <= end_date:
        return DerivedStatus(PlanStatus.ONGOING)
    return DerivedStatus(PlanStatus.ENDED)


def resolve_status(plan, now: datetime) -> EffectiveStatus:
    """Resolve the effective status of a plan (any object with the plan's fields)."""
    return compute_status(
        plan.manual_status,
        plan.max_participants,
        plan.participants_count,
        plan.start_date,
        plan.end_date,
        now
    )


def derive_status(plan, now: datetime) -> PlanStatus:
    """Return the plan's status as a flat enum value."""
    return resolve_status(plan, now).status


def is_joinable(plan, now: datetime) -> bool:
    return derive_status(plan, now) in JOINABLE_STATUSES


def status_filter(status: PlanStatus, now: datetime):
    """
    SQL clause matching plans whose derived status is ``status`` at ``now``.

    Mirrors ``compute_status`` so list endpoints can filter and paginate on the
    derived status without loading every plan.
    """
    status = PlanStatus(status)
    if status in MANUAL_STATUSES:
        return TravelPlan.manual_status == status

    not_manual = TravelPlan.manual_status.notin_(list(MANUAL_STATUSES))
    is_full = and_(
        TravelPlan.max_participants.isnot(None),
        TravelPlan.participants_count >= TravelPlan.max_participants
    )
    if status == PlanStatus.FULL:
        return and_(not_manual, is_full)

    has_room = not_(is_full)
    if status == PlanStatus.OPEN:
        return and_(not_manual, has_room, TravelPlan.start_date > now)
    if status == PlanStatus.ONGOING:
        return and_(not_manual, has_room, TravelPlan.start_date <= now, TravelPlan.end_date >= now)
    return and_(not_manual, has_room, TravelPlan.end_date < now)


def joinable_filter(now: datetime):
    """SQL clause matching plans that can currently be joined."""
    return or_(status_filter(PlanStatus.OPEN, now), status_filter(PlanStatus.ONGOING, now))
