from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from ..database import get_db
from ..dependencies import get_allocations, get_current_user
from ..models.models import User
from ..schemas.vote import (
    AllocationResponse,
    CommentRequest,
    PendingVoteResponse,
    VoteRequest,
    VoteResponse,
)
from ..services import allocation as allocation_service
from ..services import ledger
from ..services.allocation import AllocationRegistry, VoteAllocation
from ..services.budget import Sign

router = APIRouter(prefix="/rounds", tags=["Votes"])


def _allocation_response(
    db: Session, user: User, allocation: VoteAllocation
) -> AllocationResponse:
    if allocation.committed:
        votes = ledger.committed_votes(db, user.user_id, allocation.round_id)
        budget = allocation.budget
        used_up = sum(v.value for v in votes if v.value > 0)
        used_down = -sum(v.value for v in votes if v.value < 0)
        return AllocationResponse(
            round_id=allocation.round_id,
            committed=True,
            upvotes_remaining=max(budget.allowed(Sign.UP) - used_up, 0),
            downvotes_remaining=max(budget.allowed(Sign.DOWN) - used_down, 0),
            votes=[
                PendingVoteResponse(
                    submission_id=v.submission_id,
                    value=v.value,
                    comment=v.comment,
                )
                for v in votes
            ],
        )

    comments = allocation.comments()
    pending = allocation.pending()
    votes = [
        PendingVoteResponse(
            submission_id=submission_id,
            value=vote.value,
            comment=vote.comment,
        )
        for submission_id, vote in sorted(pending.items())
    ]
    votes.extend(
        PendingVoteResponse(submission_id=submission_id, value=0, comment=c)
        for submission_id, c in sorted(comments.items())
        if submission_id not in pending
    )
    return AllocationResponse(
        round_id=allocation.round_id,
        committed=False,
        upvotes_remaining=allocation.budget.upvotes_remaining,
        downvotes_remaining=allocation.budget.downvotes_remaining,
        votes=votes,
    )


@router.get("/{round_id}/allocation", response_model=AllocationResponse)
def get_allocation(
    round_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    allocations: AllocationRegistry = Depends(get_allocations),
):
    """Get the current user's pending votes and remaining budget"""
    allocation = allocation_service.get_allocation(
        db, allocations, current_user, round_id
    )
    return _allocation_response(db, current_user, allocation)


@router.post("/{round_id}/allocation", response_model=AllocationResponse)
def apply_vote(
    round_id: int,
    vote: VoteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    allocations: AllocationRegistry = Depends(get_allocations),
):
    """Add one upvote (+1) or downvote (-1) to a submission"""
    allocation = allocation_service.apply_vote(
        db,
        allocations,
        current_user,
        round_id,
        vote.submission_id,
        Sign(vote.sign),
    )
    return _allocation_response(db, current_user, allocation)


@router.put(
    "/{round_id}/allocation/{submission_id}/comment",
    response_model=AllocationResponse,
)
def set_comment(
    round_id: int,
    submission_id: int,
    body: CommentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    allocations: AllocationRegistry = Depends(get_allocations),
):
    """Attach a comment to the current user's vote on a submission"""
    allocation = allocation_service.set_comment(
        db, allocations, current_user, round_id, submission_id, body.comment
    )
    return _allocation_response(db, current_user, allocation)


@router.post(
    "/{round_id}/votes",
    response_model=List[VoteResponse],
    status_code=201,
)
def commit_votes(
    round_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    allocations: AllocationRegistry = Depends(get_allocations),
):
    """Submit the current user's votes for a round. This can only happen once."""
    return allocation_service.commit_allocation(
        db, allocations, current_user, round_id
    )
