from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Literal, Optional

from ..models.models import ContentType


class VoteRequest(BaseModel):
    submission_id: int
    sign: Literal[1, -1]


class CommentRequest(BaseModel):
    comment: Optional[str] = Field(default=None, max_length=1000)


class PendingVoteResponse(BaseModel):
    submission_id: int
    value: int
    comment: Optional[str] = None


class AllocationResponse(BaseModel):
    round_id: int
    committed: bool
    upvotes_remaining: int
    downvotes_remaining: int
    votes: List[PendingVoteResponse] = []


class VoteResponse(BaseModel):
    vote_id: int
    round_id: int
    user_id: int
    submission_id: int
    value: int
    comment: Optional[str] = None
    voted_at: datetime

    class Config:
        from_attributes = True


class VoterContributionResponse(BaseModel):
    user_id: int
    username: str
    value: int
    comments: List[str] = []

    class Config:
        from_attributes = True


class SubmissionTallyResponse(BaseModel):
    submission_id: int
    user_id: int
    username: str
    content_type: ContentType
    content: str
    total: int
    rank: int
    votes: List[VoterContributionResponse] = []

    class Config:
        from_attributes = True
