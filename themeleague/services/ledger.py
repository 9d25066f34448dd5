"""
Vote ledger.

Committed votes are append-only. A member commits exactly once per round:
the commit marker row carries a unique (round, voter) constraint, so of two
racing commits only one can be written and the other sees AlreadyCommitted.
"""

import logging
from typing import Dict, List, Mapping

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from ..exceptions import (
    AlreadyCommitted,
    Forbidden,
    NotFound,
    SelfVoteForbidden,
    Unavailable,
    VotingClosed,
)
from ..models.models import Submission, User, Vote, VoteCommit
from .leagues import get_round, is_member

logger = logging.getLogger(__name__)


def has_committed(db: Session, user_id: int, round_id: int) -> bool:
    return (
        db.query(VoteCommit)
        .filter(VoteCommit.round_id == round_id, VoteCommit.user_id == user_id)
        .first()
        is not None
    )


def committed_votes(db: Session, user_id: int, round_id: int) -> List[Vote]:
    return (
        db.query(Vote)
        .filter(Vote.round_id == round_id, Vote.user_id == user_id)
        .order_by(Vote.vote_id)
        .all()
    )


def round_votes(db: Session, round_id: int) -> List[Vote]:
    return (
        db.query(Vote)
        .filter(Vote.round_id == round_id)
        .order_by(Vote.vote_id)
        .all()
    )


def commit_votes(
    db: Session, user: User, round_id: int, pending: Mapping[int, object]
) -> List[Vote]:
    """Write a member's pending votes for a round in one transaction.

    ``pending`` maps submission id to an object with ``value`` and
    ``comment`` attributes. Zero values are dropped. Nothing is written
    unless everything is.
    """
    round_obj = get_round(db, round_id)
    if not is_member(db, round_obj.league_id, user.user_id):
        raise Forbidden("You are not a member of this league")
    if has_committed(db, user.user_id, round_id):
        raise AlreadyCommitted()
    if not round_obj.is_voting_open:
        raise VotingClosed()

    targets: Dict[int, Submission] = {}
    if pending:
        targets = {
            s.sub_id: s
            for s in db.query(Submission).filter(
                Submission.round_id == round_id,
                Submission.sub_id.in_(list(pending)),
            )
        }
    for submission_id in pending:
        submission = targets.get(submission_id)
        if submission is None:
            raise NotFound(f"Submission {submission_id} is not in this round")
        if submission.user_id == user.user_id:
            raise SelfVoteForbidden()

    votes = [
        Vote(
            round_id=round_id,
            user_id=user.user_id,
            submission_id=submission_id,
            value=vote.value,
            comment=vote.comment,
        )
        for submission_id, vote in sorted(pending.items())
        if vote.value != 0
    ]

    db.add(VoteCommit(round_id=round_id, user_id=user.user_id))
    db.add_all(votes)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(
            f"Concurrent commit by user {user.user_id} on round {round_id}"
        )
        raise AlreadyCommitted()
    except OperationalError as e:
        db.rollback()
        logger.warning(f"Store unavailable while committing votes: {e}")
        raise Unavailable() from e

    logger.info(
        f"User {user.user_id} committed {len(votes)} votes on round {round_id}"
    )
    return votes
