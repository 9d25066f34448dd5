from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime

from ..models.models import RoundState
from ..utils.dates import to_naive_utc


class RoundCreate(BaseModel):
    theme: str = Field(min_length=1, max_length=255)
    submission_deadline: datetime
    voting_deadline: datetime
    start_open: bool = True

    @field_validator("submission_deadline", "voting_deadline")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @model_validator(mode="after")
    def check_deadlines(self):
        if self.voting_deadline <= self.submission_deadline:
            raise ValueError(
                "Voting deadline must be after the submission deadline"
            )
        return self


class RoundResponse(BaseModel):
    round_id: int
    league_id: int
    round_number: int
    theme: str
    submission_deadline: datetime
    voting_deadline: datetime
    state: RoundState
    is_submission_open: bool
    is_voting_open: bool

    class Config:
        from_attributes = True


class MemberStatusResponse(BaseModel):
    user_id: int
    username: str
    submitted: bool
    committed: bool
    status: str

    class Config:
        from_attributes = True
