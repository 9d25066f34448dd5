import logging
from typing import List
from urllib.parse import urlparse

from fastapi import UploadFile
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import (
    Conflict,
    Forbidden,
    SubmissionClosed,
    ValidationFailed,
)
from ..models.models import ContentType, Round, Submission, User
from ..utils.file_handler import delete_file, save_upload_file
from .leagues import get_round, is_member

logger = logging.getLogger(__name__)


def _validate_content(content_type: ContentType, content: str) -> str:
    content = (content or "").strip()
    if not content:
        raise ValidationFailed("Submission content cannot be empty")
    if content_type == ContentType.URL:
        parsed = urlparse(content)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationFailed("Please enter a valid http(s) URL")
    return content


def _open_round_for(db: Session, user: User, round_id: int) -> Round:
    round_obj = get_round(db, round_id)
    if not is_member(db, round_obj.league_id, user.user_id):
        raise Forbidden("You are not a member of this league")
    if not round_obj.is_submission_open:
        raise SubmissionClosed()
    return round_obj


def get_user_submission(db: Session, user_id: int, round_id: int):
    return (
        db.query(Submission)
        .filter(
            Submission.user_id == user_id,
            Submission.round_id == round_id,
        )
        .first()
    )


def list_submissions(db: Session, round_id: int) -> List[Submission]:
    get_round(db, round_id)
    return (
        db.query(Submission)
        .filter(Submission.round_id == round_id)
        .order_by(Submission.sub_id)
        .all()
    )


def save_submission(
    db: Session,
    user: User,
    round_id: int,
    content_type: ContentType,
    content: str,
) -> Submission:
    """Create the member's entry for a round, or replace its content."""
    _open_round_for(db, user, round_id)
    content_type = ContentType(content_type)
    content = _validate_content(content_type, content)

    submission = get_user_submission(db, user.user_id, round_id)
    replaced_image = None
    if submission:
        if submission.content_type == ContentType.IMAGE:
            replaced_image = submission.content
        submission.content_type = content_type
        submission.content = content
    else:
        submission = Submission(
            user_id=user.user_id,
            round_id=round_id,
            content_type=content_type,
            content=content,
        )
        db.add(submission)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("You have already submitted to this round")
    db.refresh(submission)

    if replaced_image and replaced_image != submission.content:
        delete_file(replaced_image)

    logger.info(
        f"User {user.user_id} saved {content_type.value} submission "
        f"{submission.sub_id} for round {round_id}"
    )
    return submission


def save_image_submission(
    db: Session, user: User, round_id: int, upload: UploadFile
) -> Submission:
    _open_round_for(db, user, round_id)
    file_path = save_upload_file(upload, round_id)
    try:
        return save_submission(
            db, user, round_id, ContentType.IMAGE, file_path
        )
    except Exception:
        delete_file(file_path)
        raise
