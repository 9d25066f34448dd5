from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from ..database import get_db
from ..schemas.league import StandingResponse
from ..schemas.vote import SubmissionTallyResponse
from ..services import tally

router = APIRouter(tags=["Results"])


@router.get(
    "/rounds/{round_id}/tally",
    response_model=List[SubmissionTallyResponse],
)
def get_round_tally(round_id: int, db: Session = Depends(get_db)):
    """Vote totals for every submission of a round, best first"""
    return tally.get_tally(db, round_id)


@router.get(
    "/leagues/{league_id}/standings",
    response_model=List[StandingResponse],
)
def get_league_standings(league_id: int, db: Session = Depends(get_db)):
    """Votes received per member across all rounds of a league"""
    return tally.get_league_standings(db, league_id)
