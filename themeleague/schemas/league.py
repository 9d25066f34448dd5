from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from .round import RoundResponse


class LeagueCreate(BaseModel):
    name: str = Field(min_length=3, max_length=255)
    description: Optional[str] = None
    number_of_rounds: int = Field(ge=1)
    upvotes_per_user: int = Field(ge=0)
    downvotes_per_user: int = Field(ge=0)
    start_date: datetime


class LeagueResponse(BaseModel):
    league_id: int
    name: str
    description: Optional[str] = None
    creator_id: int
    start_date: datetime
    number_of_rounds: int
    upvotes_per_user: int
    downvotes_per_user: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class MemberResponse(BaseModel):
    user_id: int
    username: str
    joined_at: datetime


class LeagueDetailResponse(LeagueResponse):
    members: List[MemberResponse] = []
    rounds: List[RoundResponse] = []
    current_round_number: Optional[int] = None
    is_complete: bool = False
    can_create_round: bool = False


class StandingResponse(BaseModel):
    user_id: int
    username: str
    total: int
    rank: int

    class Config:
        from_attributes = True
