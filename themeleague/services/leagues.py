import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import Conflict, Forbidden, NotFound, ValidationFailed
from ..models.models import League, LeagueMember, Round, RoundState, User
from ..utils.dates import to_naive_utc
from .round_state import league_complete

logger = logging.getLogger(__name__)


def get_league(db: Session, league_id: int) -> League:
    league = db.get(League, league_id)
    if not league:
        raise NotFound("League not found")
    return league


def list_leagues(db: Session, active: Optional[bool] = None) -> List[League]:
    query = db.query(League)
    if active is not None:
        query = query.filter(League.is_active == active)
    return query.order_by(League.created_at.desc(), League.league_id.desc()).all()


def get_round(db: Session, round_id: int) -> Round:
    round_obj = db.get(Round, round_id)
    if not round_obj:
        raise NotFound("Round not found")
    return round_obj


def list_rounds(db: Session, league_id: int) -> List[Round]:
    get_league(db, league_id)
    return (
        db.query(Round)
        .filter(Round.league_id == league_id)
        .order_by(Round.round_number)
        .all()
    )


def is_member(db: Session, league_id: int, user_id: int) -> bool:
    return (
        db.query(LeagueMember)
        .filter(
            LeagueMember.league_id == league_id,
            LeagueMember.user_id == user_id,
        )
        .first()
        is not None
    )


def create_league(
    db: Session,
    creator: User,
    name: str,
    number_of_rounds: int,
    upvotes_per_user: int,
    downvotes_per_user: int,
    start_date: datetime,
    description: Optional[str] = None,
) -> League:
    """Create a league and enrol its creator as the first member."""
    if number_of_rounds < 1:
        raise ValidationFailed("A league needs at least one round")
    if upvotes_per_user < 0 or downvotes_per_user < 0:
        raise ValidationFailed("Vote allowances cannot be negative")

    league = League(
        name=name,
        description=description,
        creator_id=creator.user_id,
        start_date=start_date,
        number_of_rounds=number_of_rounds,
        upvotes_per_user=upvotes_per_user,
        downvotes_per_user=downvotes_per_user,
        is_active=True,
    )
    db.add(league)
    db.flush()
    db.add(LeagueMember(league_id=league.league_id, user_id=creator.user_id))
    db.commit()
    db.refresh(league)

    logger.info(
        f"League {league.league_id} created by user {creator.user_id} "
        f"with {number_of_rounds} rounds"
    )
    return league


def join_league(db: Session, user: User, league_id: int) -> LeagueMember:
    league = get_league(db, league_id)
    if not league.is_active:
        raise ValidationFailed("This league is no longer accepting members")
    if is_member(db, league_id, user.user_id):
        raise Conflict("You are already a member of this league")

    member = LeagueMember(league_id=league_id, user_id=user.user_id)
    db.add(member)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("You are already a member of this league")
    db.refresh(member)
    logger.info(f"User {user.user_id} joined league {league_id}")
    return member


def leave_league(db: Session, user: User, league_id: int):
    league = get_league(db, league_id)
    member = (
        db.query(LeagueMember)
        .filter(
            LeagueMember.league_id == league_id,
            LeagueMember.user_id == user.user_id,
        )
        .first()
    )
    if not member:
        raise NotFound("You are not a member of this league")
    if league.creator_id == user.user_id:
        raise Forbidden("The league creator cannot leave the league")
    rounds = league.rounds
    if rounds and league_complete(rounds):
        raise Conflict("Cannot leave a league that has finished")

    db.delete(member)
    db.commit()
    logger.info(f"User {user.user_id} left league {league_id}")


def open_round(
    db: Session,
    user: User,
    league_id: int,
    theme: str,
    submission_deadline: datetime,
    voting_deadline: datetime,
    start_open: bool = True,
) -> Round:
    """Create the league's next round.

    Round numbers are assigned sequentially; the caller never picks one.
    """
    league = get_league(db, league_id)
    if league.creator_id != user.user_id:
        raise Forbidden("Only the league creator can create rounds")
    submission_deadline = to_naive_utc(submission_deadline)
    voting_deadline = to_naive_utc(voting_deadline)
    if voting_deadline <= submission_deadline:
        raise ValidationFailed(
            "Voting deadline must be after the submission deadline"
        )

    current_max = (
        db.query(func.max(Round.round_number))
        .filter(Round.league_id == league_id)
        .scalar()
    ) or 0
    if current_max >= league.number_of_rounds:
        raise ValidationFailed(
            f"League already has all {league.number_of_rounds} rounds"
        )

    round_obj = Round(
        league_id=league_id,
        round_number=current_max + 1,
        theme=theme,
        submission_deadline=submission_deadline,
        voting_deadline=voting_deadline,
        state=RoundState.SUBMISSION_OPEN if start_open else RoundState.DRAFT,
    )
    db.add(round_obj)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(
            f"Round {current_max + 1} was created by another request"
        )
    db.refresh(round_obj)

    logger.info(
        f"Round {round_obj.round_number} ({round_obj.state.value}) "
        f"created in league {league_id}"
    )
    return round_obj
