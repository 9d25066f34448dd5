from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from ..database import get_db
from ..dependencies import get_allocations, get_current_user
from ..models.models import User
from ..schemas.round import MemberStatusResponse, RoundResponse
from ..services import round_state
from ..services.allocation import AllocationRegistry
from ..services.leagues import get_round
from ..services.tally import member_statuses

router = APIRouter(prefix="/rounds", tags=["Rounds"])


@router.get("/{round_id}", response_model=RoundResponse)
def get_round_detail(round_id: int, db: Session = Depends(get_db)):
    """Get a single round"""
    return get_round(db, round_id)


@router.post("/{round_id}/open-submissions", response_model=RoundResponse)
def open_submissions(
    round_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Open a draft round for submissions (league creator only)"""
    return round_state.open_submissions(db, current_user, round_id)


@router.post("/{round_id}/start-voting", response_model=RoundResponse)
def start_voting(
    round_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Close submissions and open voting (league creator only)"""
    return round_state.start_voting(db, current_user, round_id)


@router.post("/{round_id}/close-voting", response_model=RoundResponse)
def close_voting(
    round_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    allocations: AllocationRegistry = Depends(get_allocations),
):
    """Close voting and open the next round's submissions (league creator only)"""
    round_obj = round_state.close_voting(db, current_user, round_id)
    allocations.discard_round(round_id)
    return round_obj


@router.get(
    "/{round_id}/statuses", response_model=List[MemberStatusResponse]
)
def get_member_statuses(round_id: int, db: Session = Depends(get_db)):
    """Submission and voting status of every league member for a round"""
    return member_statuses(db, round_id)
