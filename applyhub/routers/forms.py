"""
Application form persistence:
- progress is one row per user, upserted on every save
- submit stores the complete form and clears progress
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from applyhub.auth import get_current_user
from applyhub.database import get_db
from applyhub.models.form_progress import FormProgress
from applyhub.models.form_submission import FormSubmission
from applyhub.models.user import User
from applyhub.schemas.form import (
    FormData,
    ProgressResponse,
    SaveProgressRequest,
    SaveProgressResponse,
    SubmissionOut,
    SubmissionsResponse,
    SubmitFormRequest,
    SubmitFormResponse,
)
from applyhub.utils.clock import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/forms", tags=["forms"])


@router.get("/progress", response_model=ProgressResponse)
def get_progress(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    progress = db.query(FormProgress).filter(FormProgress.user_id == user.id).first()
    if not progress:
        return ProgressResponse(has_progress=False)
    return ProgressResponse(
        has_progress=True,
        data=FormData.model_validate(progress.form_data or {}),
        current_step=progress.current_step,
    )


@router.post("/save", response_model=SaveProgressResponse)
def save_progress(
    body: SaveProgressRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Upsert the user's in-progress form."""
    now = utcnow()
    form_data = body.form_data.model_dump(exclude_none=True)
    progress = db.query(FormProgress).filter(FormProgress.user_id == user.id).first()
    if progress:
        progress.form_data = form_data
        progress.current_step = body.current_step
        progress.last_saved_at = now
    else:
        progress = FormProgress(
            user_id=user.id,
            form_data=form_data,
            current_step=body.current_step,
            last_saved_at=now,
        )
        db.add(progress)
    db.commit()
    return SaveProgressResponse(saved_at=now)


@router.post("/submit", response_model=SubmitFormResponse)
def submit_form(
    body: SubmitFormRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    submission = FormSubmission(
        user_id=user.id,
        form_data=body.form_data.model_dump(exclude_none=True),
    )
    db.add(submission)
    db.query(FormProgress).filter(FormProgress.user_id == user.id).delete(synchronize_session=False)
    db.commit()
    db.refresh(submission)
    logger.info("Form submitted by user %s: %s", user.id, submission.id)
    return SubmitFormResponse(submission_id=submission.id)


@router.get("/submissions", response_model=SubmissionsResponse)
def list_submissions(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    rows = (
        db.query(FormSubmission)
        .filter(FormSubmission.user_id == user.id)
        .order_by(FormSubmission.submitted_at.desc())
        .all()
    )
    return SubmissionsResponse(submissions=[SubmissionOut.model_validate(r) for r in rows])
