"""Pending vote allocation for a member before they commit.

A member spends their round budget one click at a time. Each click adds one
vote of a sign to a submission; clicking the opposite sign on a submission
clears what was there (refunding it) and starts over with a single vote.
Nothing here is persisted: the ledger only sees the final allocation.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, TypeVar

from sqlalchemy.orm import Session

from ..exceptions import (
    AlreadyCommitted,
    BudgetExceeded,
    Forbidden,
    NotFound,
    SelfVoteForbidden,
    VotingClosed,
)
from ..models.models import Round, Submission, User
from . import ledger
from .budget import Sign, VoteBudget
from .leagues import get_round, is_member

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PendingVote:
    value: int
    comment: Optional[str] = None


class VoteAllocation:
    """One member's uncommitted votes for one round."""

    def __init__(self, member_id: int, round_id: int, budget: VoteBudget):
        self.member_id = member_id
        self.round_id = round_id
        self.budget = budget
        self._votes: Dict[int, PendingVote] = {}
        self._committed = False
        self._lock = threading.Lock()

    @property
    def committed(self) -> bool:
        return self._committed

    def current(self, submission_id: int) -> int:
        vote = self._votes.get(submission_id)
        return vote.value if vote else 0

    def apply_vote(
        self,
        submission_id: int,
        sign: Sign,
        *,
        author_id: int,
        voting_open: bool,
    ) -> int:
        """Add one vote of ``sign`` to a submission.

        Returns the new pending total for the submission. A rejected vote
        leaves every pending total and the budget unchanged.
        """
        sign = Sign(sign)
        with self._lock:
            if self._committed:
                raise AlreadyCommitted()
            if author_id == self.member_id:
                raise SelfVoteForbidden()
            if not voting_open:
                raise VotingClosed()

            # A switch refunds the other sign, so the new sign's budget must
            # already have room whichever branch is taken.
            if self.budget.remaining(sign) == 0:
                kind = "upvote" if sign is Sign.UP else "downvote"
                raise BudgetExceeded(
                    f"You have reached your {kind} limit for this round"
                )

            current = self.current(submission_id)
            vote = self._votes.setdefault(submission_id, PendingVote(0))

            if current != 0 and Sign.of(current) != sign:
                # Switching direction: drop the old clicks entirely.
                self.budget.refund(Sign.of(current), abs(current))
                self.budget.consume(sign)
                vote.value = int(sign)
            else:
                self.budget.consume(sign)
                vote.value = current + int(sign)

            return vote.value

    def set_comment(
        self,
        submission_id: int,
        comment: Optional[str],
        *,
        voting_open: bool,
    ):
        with self._lock:
            if self._committed:
                raise AlreadyCommitted()
            if not voting_open:
                raise VotingClosed()
            comment = (comment or "").strip() or None
            vote = self._votes.get(submission_id)
            if vote is None:
                if comment is None:
                    return
                vote = self._votes[submission_id] = PendingVote(0)
            vote.comment = comment

    def pending(self) -> Dict[int, PendingVote]:
        """Nonzero pending votes keyed by submission id."""
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> Dict[int, PendingVote]:
        return {
            submission_id: PendingVote(vote.value, vote.comment)
            for submission_id, vote in self._votes.items()
            if vote.value != 0
        }

    def comments(self) -> Dict[int, str]:
        with self._lock:
            return {
                submission_id: vote.comment
                for submission_id, vote in self._votes.items()
                if vote.comment
            }

    def freeze(self):
        with self._lock:
            self._committed = True

    def commit(self, write: Callable[[Dict[int, PendingVote]], T]) -> T:
        """Hand the pending votes to ``write`` and freeze once it returns.

        The allocation stays locked for the whole write, so a click racing
        the commit waits and then sees AlreadyCommitted. If ``write`` fails
        for any other reason the allocation stays open and unchanged.
        """
        with self._lock:
            if self._committed:
                raise AlreadyCommitted()
            try:
                result = write(self._snapshot())
            except AlreadyCommitted:
                self._committed = True
                raise
            self._committed = True
            return result


class AllocationRegistry:
    """In-process store of pending allocations keyed by (member, round)."""

    def __init__(self):
        self._allocations: Dict[Tuple[int, int], VoteAllocation] = {}
        self._lock = threading.Lock()

    def get(self, member_id: int, round_id: int) -> Optional[VoteAllocation]:
        with self._lock:
            return self._allocations.get((member_id, round_id))

    def get_or_create(
        self, member_id: int, round_id: int, upvotes: int, downvotes: int
    ) -> VoteAllocation:
        with self._lock:
            key = (member_id, round_id)
            allocation = self._allocations.get(key)
            if allocation is None:
                allocation = VoteAllocation(
                    member_id, round_id, VoteBudget(upvotes, downvotes)
                )
                self._allocations[key] = allocation
            return allocation

    def discard_round(self, round_id: int):
        """Forget every allocation for a round (voting has closed)."""
        with self._lock:
            for key in [k for k in self._allocations if k[1] == round_id]:
                del self._allocations[key]

    def __len__(self):
        return len(self._allocations)


def _load_allocation(
    db: Session, registry: AllocationRegistry, user: User, round_obj: Round
) -> VoteAllocation:
    league = round_obj.league
    if not is_member(db, league.league_id, user.user_id):
        raise Forbidden("You are not a member of this league")

    # Only a round in voting keeps allocations in the registry; outside it
    # the member gets a throwaway view that rejects every change.
    if round_obj.is_voting_open:
        allocation = registry.get_or_create(
            user.user_id,
            round_obj.round_id,
            league.upvotes_per_user,
            league.downvotes_per_user,
        )
    else:
        allocation = registry.get(user.user_id, round_obj.round_id)
        if allocation is None:
            allocation = VoteAllocation(
                user.user_id,
                round_obj.round_id,
                VoteBudget(league.upvotes_per_user, league.downvotes_per_user),
            )
    if not allocation.committed and ledger.has_committed(
        db, user.user_id, round_obj.round_id
    ):
        allocation.freeze()
    return allocation


def get_allocation(
    db: Session, registry: AllocationRegistry, user: User, round_id: int
) -> VoteAllocation:
    round_obj = get_round(db, round_id)
    return _load_allocation(db, registry, user, round_obj)


def apply_vote(
    db: Session,
    registry: AllocationRegistry,
    user: User,
    round_id: int,
    submission_id: int,
    sign: Sign,
) -> VoteAllocation:
    round_obj = get_round(db, round_id)
    submission = (
        db.query(Submission)
        .filter(
            Submission.sub_id == submission_id,
            Submission.round_id == round_id,
        )
        .first()
    )
    if not submission:
        raise NotFound("Submission not found")

    allocation = _load_allocation(db, registry, user, round_obj)
    allocation.apply_vote(
        submission_id,
        sign,
        author_id=submission.user_id,
        voting_open=round_obj.is_voting_open,
    )
    return allocation


def set_comment(
    db: Session,
    registry: AllocationRegistry,
    user: User,
    round_id: int,
    submission_id: int,
    comment: Optional[str],
) -> VoteAllocation:
    round_obj = get_round(db, round_id)
    submission = (
        db.query(Submission)
        .filter(
            Submission.sub_id == submission_id,
            Submission.round_id == round_id,
        )
        .first()
    )
    if not submission:
        raise NotFound("Submission not found")
    if submission.user_id == user.user_id:
        raise SelfVoteForbidden("Cannot comment on your own submission")

    allocation = _load_allocation(db, registry, user, round_obj)
    allocation.set_comment(
        submission_id, comment, voting_open=round_obj.is_voting_open
    )
    return allocation


def commit_allocation(
    db: Session, registry: AllocationRegistry, user: User, round_id: int
):
    """Write the member's pending votes to the ledger and freeze them."""
    allocation = get_allocation(db, registry, user, round_id)
    return allocation.commit(
        lambda pending: ledger.commit_votes(db, user, round_id, pending)
    )
