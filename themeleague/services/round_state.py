"""
Round state machine.

A round moves draft -> submission_open -> voting_open -> closed. Only the
league creator advances it, and only one step at a time. Closing a round's
voting opens submissions on the next round of the league, if that round is
still waiting in draft. Deadlines are shown to members but never advance a
round on their own.
"""

import logging
from typing import Dict, Iterable, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from ..exceptions import (
    Conflict,
    Forbidden,
    InvalidTransition,
    NotFound,
    Unavailable,
)
from ..models.models import Round, RoundState, User

logger = logging.getLogger(__name__)


# Valid transitions: {current_state: next_state}
TRANSITIONS: Dict[RoundState, RoundState] = {
    RoundState.DRAFT: RoundState.SUBMISSION_OPEN,
    RoundState.SUBMISSION_OPEN: RoundState.VOTING_OPEN,
    RoundState.VOTING_OPEN: RoundState.CLOSED,
}

OPEN_STATES = (RoundState.SUBMISSION_OPEN, RoundState.VOTING_OPEN)


def _load_round(db: Session, round_id: int) -> Round:
    round_obj = db.get(Round, round_id)
    if not round_obj:
        raise NotFound("Round not found")
    return round_obj


def _require_creator(round_obj: Round, user: User):
    if round_obj.league.creator_id != user.user_id:
        raise Forbidden("Only the league creator can change round phases")


def _advance(
    db: Session, round_id: int, expected: RoundState, target: RoundState
):
    """Move a round from ``expected`` to ``target`` with a conditional update.

    Raises Conflict when the row was no longer in ``expected``, which means
    another request advanced it first. Does not commit.
    """
    if TRANSITIONS.get(expected) != target:
        raise InvalidTransition(
            f"Cannot move a round from {expected.value} to {target.value}"
        )

    updated = (
        db.query(Round)
        .filter(Round.round_id == round_id, Round.state == expected)
        .update(
            {Round.state: target, Round.version: Round.version + 1},
            synchronize_session=False,
        )
    )
    if updated != 1:
        logger.warning(
            f"Round {round_id} transition {expected.value} -> "
            f"{target.value} lost a race"
        )
        raise Conflict(
            "The round was changed by another request, reload and try again"
        )


def _transition(
    db: Session,
    user: User,
    round_id: int,
    expected: RoundState,
    target: RoundState,
) -> Round:
    round_obj = _load_round(db, round_id)
    _require_creator(round_obj, user)

    if round_obj.state != expected:
        logger.warning(
            f"Rejected {target.value} on round {round_id} "
            f"in state {round_obj.state.value}"
        )
        raise InvalidTransition(
            f"Round {round_obj.round_number} is {round_obj.state.value}, "
            f"expected {expected.value}"
        )

    try:
        _advance(db, round_id, expected, target)
        if target == RoundState.CLOSED:
            _cascade_next_round(db, round_obj)
        db.commit()
    except OperationalError as e:
        db.rollback()
        logger.warning(f"Store unavailable during round transition: {e}")
        raise Unavailable() from e
    except Conflict:
        db.rollback()
        raise

    db.refresh(round_obj)
    logger.info(
        f"Round {round_obj.round_number} of league {round_obj.league_id} "
        f"moved {expected.value} -> {target.value}"
    )
    return round_obj


def _cascade_next_round(db: Session, round_obj: Round):
    next_round = (
        db.query(Round)
        .filter(
            Round.league_id == round_obj.league_id,
            Round.round_number == round_obj.round_number + 1,
        )
        .first()
    )
    if next_round is None:
        return
    if next_round.state != RoundState.DRAFT:
        logger.info(
            f"Round {next_round.round_number} already {next_round.state.value}"
        )
        return
    _advance(
        db,
        next_round.round_id,
        RoundState.DRAFT,
        RoundState.SUBMISSION_OPEN,
    )
    logger.info(
        f"Opened submissions for round {next_round.round_number} "
        f"of league {round_obj.league_id}"
    )


def open_submissions(db: Session, user: User, round_id: int) -> Round:
    """Open a draft round for submissions ahead of the cascade."""
    return _transition(
        db, user, round_id, RoundState.DRAFT, RoundState.SUBMISSION_OPEN
    )


def start_voting(db: Session, user: User, round_id: int) -> Round:
    return _transition(
        db,
        user,
        round_id,
        RoundState.SUBMISSION_OPEN,
        RoundState.VOTING_OPEN,
    )


def close_voting(db: Session, user: User, round_id: int) -> Round:
    return _transition(
        db, user, round_id, RoundState.VOTING_OPEN, RoundState.CLOSED
    )


def current_round(rounds: Iterable[Round]) -> Optional[Round]:
    """The round members should be working on right now.

    That is the lowest-numbered open round whose previous round has finished
    voting. A creator may open round N+1 for submissions while round N is
    still voting; round N stays current until its voting closes.
    """
    by_number = {r.round_number: r for r in rounds}
    for number in sorted(by_number):
        round_obj = by_number[number]
        if round_obj.state not in OPEN_STATES:
            continue
        previous = by_number.get(number - 1)
        if previous is None or not previous.is_voting_open:
            return round_obj
    return None


def league_complete(rounds: Iterable[Round]) -> bool:
    """True when no round accepts submissions or votes any more.

    A league without rounds has nothing left open and counts as complete.
    """
    return all(r.state == RoundState.CLOSED for r in rounds)
