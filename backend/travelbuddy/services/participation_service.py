"""
Participation service: joining plans and listing their participants.
"""
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy import update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from travelbuddy.core.exceptions import (
    AppError, NotFoundError, ForbiddenError, PlanNotJoinableError,
    SelfJoinError, AlreadyJoinedError, PlanFullError
)
from travelbuddy.core.utils import utcnow
from travelbuddy.models.travel_plan import TravelPlan, TravelPlanParticipant
from travelbuddy.models.user import User
from travelbuddy.services.plan_status import is_joinable

logger = logging.getLogger(__name__)


def _increment_participants(db: Session, plan_id: int) -> bool:
    """
    Atomically add one participant if the plan still has room.
    Returns False when the cap was reached by a concurrent join.
    """
    result = db.execute(
        update(TravelPlan)
        .where(TravelPlan.id == plan_id)
        .where(or_(
            TravelPlan.max_participants.is_(None),
            TravelPlan.participants_count < TravelPlan.max_participants
        ))
        .values(participants_count=TravelPlan.participants_count + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def join_plan(db: Session, plan_id: int, user_id: int, now: Optional[datetime] = None) -> TravelPlan:
    """
    Join a travel plan.

    The participation row, the counter increment and the travel history entry
    are committed together or not at all.
    """
    now = now or utcnow()

    plan = db.query(TravelPlan).filter(TravelPlan.id == plan_id).with_for_update().first()
    if not plan:
        raise NotFoundError("Travel plan not found")

    try:
        if not is_joinable(plan, now):
            raise PlanNotJoinableError()

        if plan.host_id == user_id:
            raise SelfJoinError()

        existing = db.query(TravelPlanParticipant).filter(
            TravelPlanParticipant.plan_id == plan_id,
            TravelPlanParticipant.user_id == user_id
        ).first()
        if existing:
            raise AlreadyJoinedError()

        if plan.max_participants is not None and plan.participants_count >= plan.max_participants:
            raise PlanFullError()

        # Locked after the plan so concurrent joins by the same user serialize on travel_history
        user = db.query(User).filter(User.id == user_id).populate_existing().with_for_update().first()
        if not user:
            raise NotFoundError("User not found")

        db.add(TravelPlanParticipant(plan_id=plan_id, user_id=user_id))
        db.flush()

        if not _increment_participants(db, plan_id):
            raise PlanFullError()

        user.travel_history = list(user.travel_history or []) + [plan_id]
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadyJoinedError()
    except AppError:
        db.rollback()
        raise

    db.refresh(plan)
    logger.info(f"User {user_id} joined plan {plan_id} ({plan.participants_count} participants)")
    return plan


def list_participants(db: Session, plan_id: int, requester: User) -> dict:
    """Return the participants of a plan. Only the host or an admin may see them."""
    plan = db.query(TravelPlan).filter(TravelPlan.id == plan_id).first()
    if not plan:
        raise NotFoundError("Travel plan not found")

    if plan.host_id != requester.id and not requester.is_admin:
        raise ForbiddenError("Only host or admin can view participants")

    users = db.query(User).join(
        TravelPlanParticipant, TravelPlanParticipant.user_id == User.id
    ).filter(
        TravelPlanParticipant.plan_id == plan_id
    ).order_by(TravelPlanParticipant.created_at.asc()).all()

    return {
        "count": len(users),
        "users": [{"id": u.id, "name": u.name, "image": u.image} for u in users]
    }
