from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from ..database import get_db
from ..dependencies import get_current_user
from ..models.models import LeagueMember, User
from ..schemas.league import (
    LeagueCreate,
    LeagueDetailResponse,
    LeagueResponse,
    MemberResponse,
)
from ..schemas.round import RoundCreate, RoundResponse
from ..services import leagues as league_service
from ..services.round_state import current_round, league_complete

router = APIRouter(prefix="/leagues", tags=["Leagues"])


@router.get("", response_model=List[LeagueResponse])
def get_leagues(active: Optional[bool] = None, db: Session = Depends(get_db)):
    """Get all leagues, optionally filtered by active flag"""
    return league_service.list_leagues(db, active)


@router.post("", response_model=LeagueResponse, status_code=201)
def create_league(
    league: LeagueCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a new league; the creator joins it automatically"""
    return league_service.create_league(
        db, current_user, **league.model_dump()
    )


@router.get("/{league_id}", response_model=LeagueDetailResponse)
def get_league(league_id: int, db: Session = Depends(get_db)):
    """Get a league with its members, rounds and progress"""
    league = league_service.get_league(db, league_id)
    members = (
        db.query(LeagueMember, User.username)
        .join(User, User.user_id == LeagueMember.user_id)
        .filter(LeagueMember.league_id == league_id)
        .order_by(LeagueMember.joined_at, LeagueMember.member_id)
        .all()
    )
    rounds = league.rounds
    current = current_round(rounds)

    return LeagueDetailResponse(
        **LeagueResponse.model_validate(league).model_dump(),
        members=[
            MemberResponse(
                user_id=member.user_id,
                username=username,
                joined_at=member.joined_at,
            )
            for member, username in members
        ],
        rounds=[RoundResponse.model_validate(r) for r in rounds],
        current_round_number=current.round_number if current else None,
        is_complete=league_complete(rounds),
        can_create_round=len(rounds) < league.number_of_rounds,
    )


@router.post("/{league_id}/members", status_code=201)
def join_league(
    league_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Join a league"""
    league_service.join_league(db, current_user, league_id)
    return {"message": "Joined league"}


@router.delete("/{league_id}/members/me", status_code=204)
def leave_league(
    league_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Leave a league"""
    league_service.leave_league(db, current_user, league_id)


@router.get("/{league_id}/rounds", response_model=List[RoundResponse])
def get_rounds(league_id: int, db: Session = Depends(get_db)):
    """Get all rounds of a league in order"""
    return league_service.list_rounds(db, league_id)


@router.post(
    "/{league_id}/rounds", response_model=RoundResponse, status_code=201
)
def open_round(
    league_id: int,
    round_in: RoundCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create the league's next round (league creator only)"""
    return league_service.open_round(
        db,
        current_user,
        league_id,
        theme=round_in.theme,
        submission_deadline=round_in.submission_deadline,
        voting_deadline=round_in.voting_deadline,
        start_open=round_in.start_open,
    )
