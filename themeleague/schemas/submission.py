from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from ..models.models import ContentType


class SubmissionCreate(BaseModel):
    content_type: ContentType
    content: str


class SubmissionResponse(BaseModel):
    sub_id: int
    user_id: int
    round_id: int
    content_type: ContentType
    content: str
    submitted_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
