from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session
from typing import List
from ..database import get_db
from ..dependencies import get_current_user
from ..models.models import User
from ..schemas.submission import SubmissionCreate, SubmissionResponse
from ..services import submissions as submission_service

router = APIRouter(tags=["Submissions"])


@router.put(
    "/rounds/{round_id}/submission", response_model=SubmissionResponse
)
def save_submission(
    round_id: int,
    submission: SubmissionCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create or update the current user's entry for a round"""
    return submission_service.save_submission(
        db,
        current_user,
        round_id,
        submission.content_type,
        submission.content,
    )


@router.post(
    "/rounds/{round_id}/submission/image",
    response_model=SubmissionResponse,
)
def upload_image_submission(
    round_id: int,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Upload an image as the current user's entry for a round"""
    return submission_service.save_image_submission(
        db, current_user, round_id, file
    )


@router.get(
    "/rounds/{round_id}/submission", response_model=SubmissionResponse
)
def get_my_submission(
    round_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get the current user's entry for a round"""
    submission = submission_service.get_user_submission(
        db, current_user.user_id, round_id
    )
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")
    return submission


@router.get(
    "/rounds/{round_id}/submissions",
    response_model=List[SubmissionResponse],
)
def get_round_submissions(round_id: int, db: Session = Depends(get_db)):
    """Get all submissions for a round"""
    return submission_service.list_submissions(db, round_id)
