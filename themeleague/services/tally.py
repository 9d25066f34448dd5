"""Round tallies, league standings and member round status."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.models import (
    ContentType,
    LeagueMember,
    Round,
    RoundState,
    Submission,
    User,
    Vote,
    VoteCommit,
)
from .leagues import get_league, get_round


@dataclass
class VoterContribution:
    user_id: int
    username: str
    value: int
    comments: List[str] = field(default_factory=list)


@dataclass
class SubmissionTally:
    submission_id: int
    user_id: int
    username: str
    content_type: ContentType
    content: str
    total: int
    rank: int = 0
    votes: List[VoterContribution] = field(default_factory=list)


@dataclass
class Standing:
    user_id: int
    username: str
    total: int
    rank: int


@dataclass
class MemberStatus:
    user_id: int
    username: str
    submitted: bool
    committed: bool
    status: str


def dense_ranks(ordered_totals: Iterable[int]) -> List[int]:
    """Dense ranks for totals already sorted best first: 5, 5, 3 -> 1, 1, 2."""
    ranks = []
    previous = None
    rank = 0
    for total in ordered_totals:
        if total != previous:
            rank += 1
            previous = total
        ranks.append(rank)
    return ranks


def rank_totals(
    totals: Mapping[int, int], names: Mapping[int, str]
) -> List[Standing]:
    """Order users by total, highest first, ties alphabetically by name.

    ``totals`` is keyed by user id so members sharing a display name are
    never merged.
    """
    ordered = sorted(
        totals.items(), key=lambda item: (-item[1], names[item[0]], item[0])
    )
    ranks = dense_ranks(total for _, total in ordered)
    return [
        Standing(user_id=user_id, username=names[user_id], total=total, rank=rank)
        for (user_id, total), rank in zip(ordered, ranks)
    ]


def group_by_voter(
    votes: Iterable[Vote], names: Mapping[int, str]
) -> List[VoterContribution]:
    """Collapse ledger rows for one submission into one entry per voter."""
    grouped: Dict[int, VoterContribution] = {}
    for vote in votes:
        entry = grouped.get(vote.user_id)
        if entry is None:
            entry = grouped[vote.user_id] = VoterContribution(
                user_id=vote.user_id,
                username=names.get(vote.user_id, ""),
                value=0,
            )
        entry.value += vote.value
        if vote.comment:
            entry.comments.append(vote.comment)
    return sorted(grouped.values(), key=lambda c: (c.username, c.user_id))


def _usernames(db: Session, user_ids: Iterable[int]) -> Dict[int, str]:
    user_ids = set(user_ids)
    if not user_ids:
        return {}
    return {
        user_id: username
        for user_id, username in db.query(User.user_id, User.username).filter(
            User.user_id.in_(user_ids)
        )
    }


def get_tally(db: Session, round_id: int) -> List[SubmissionTally]:
    get_round(db, round_id)
    submissions = (
        db.query(Submission).filter(Submission.round_id == round_id).all()
    )
    votes = (
        db.query(Vote)
        .filter(Vote.round_id == round_id)
        .order_by(Vote.vote_id)
        .all()
    )
    names = _usernames(
        db,
        [s.user_id for s in submissions] + [v.user_id for v in votes],
    )

    votes_by_submission: Dict[int, List[Vote]] = {}
    for vote in votes:
        votes_by_submission.setdefault(vote.submission_id, []).append(vote)

    tallies = []
    for submission in submissions:
        rows = votes_by_submission.get(submission.sub_id, [])
        tallies.append(
            SubmissionTally(
                submission_id=submission.sub_id,
                user_id=submission.user_id,
                username=names.get(submission.user_id, ""),
                content_type=submission.content_type,
                content=submission.content,
                total=sum(v.value for v in rows),
                votes=group_by_voter(rows, names),
            )
        )

    tallies.sort(key=lambda t: (-t.total, t.username, t.submission_id))
    for tally, rank in zip(tallies, dense_ranks(t.total for t in tallies)):
        tally.rank = rank
    return tallies


def league_totals(db: Session, league_id: int) -> Dict[int, int]:
    """Votes received per submitting user across every round of a league."""
    received = (
        db.query(Submission.user_id, func.coalesce(func.sum(Vote.value), 0))
        .join(Round, Round.round_id == Submission.round_id)
        .outerjoin(Vote, Vote.submission_id == Submission.sub_id)
        .filter(Round.league_id == league_id)
        .group_by(Submission.user_id)
        .all()
    )
    return {user_id: int(total) for user_id, total in received}


def get_league_standings(db: Session, league_id: int) -> List[Standing]:
    get_league(db, league_id)
    totals = league_totals(db, league_id)
    return rank_totals(totals, _usernames(db, totals))


def status_label(state: RoundState, submitted: bool, committed: bool) -> str:
    if state in (RoundState.DRAFT, RoundState.SUBMISSION_OPEN):
        return "Submitted" if submitted else "Pending"
    if committed:
        return "Voted"
    return "Pending" if state == RoundState.VOTING_OPEN else "Did not vote"


def member_statuses(db: Session, round_id: int) -> List[MemberStatus]:
    round_obj = get_round(db, round_id)
    members = (
        db.query(User.user_id, User.username)
        .join(LeagueMember, LeagueMember.user_id == User.user_id)
        .filter(LeagueMember.league_id == round_obj.league_id)
        .order_by(User.username)
        .all()
    )
    submitted = {
        user_id
        for (user_id,) in db.query(Submission.user_id).filter(
            Submission.round_id == round_id
        )
    }
    committed = {
        user_id
        for (user_id,) in db.query(VoteCommit.user_id).filter(
            VoteCommit.round_id == round_id
        )
    }
    return [
        MemberStatus(
            user_id=user_id,
            username=username,
            submitted=user_id in submitted,
            committed=user_id in committed,
            status=status_label(
                round_obj.state, user_id in submitted, user_id in committed
            ),
        )
        for user_id, username in members
    ]
