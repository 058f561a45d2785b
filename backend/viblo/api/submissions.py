"""Submission endpoints. Videos are sent as the raw request body."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from viblo.api.deps import get_session, read_video
from viblo.domain.submission_status import posting_deadline
from viblo.flows.submissions import SubmissionFlow
from viblo.models.profile import SocialPlatform
from viblo.models.submission import SubmissionReview, SubmissionStatus, VideoItem, VideoUpload
from viblo.session import SessionContext

router = APIRouter(prefix="/submissions", tags=["submissions"])


@router.get("")
async def my_submissions(
    status: Optional[SubmissionStatus] = None,
    search: str = "",
    session: SessionContext = Depends(get_session),
):
    rows = await SubmissionFlow.list_my_submissions(session, status=status, search=search)
    return {"submissions": rows}


@router.post("/campaigns/{campaign_id}")
async def apply(
    campaign_id: str,
    message: Optional[str] = None,
    session: SessionContext = Depends(get_session),
    upload: VideoUpload = Depends(read_video),
):
    return await SubmissionFlow.apply(session, campaign_id, upload, message=message)


@router.post("/{submission_id}/resubmit")
async def resubmit(
    submission_id: str,
    session: SessionContext = Depends(get_session),
    upload: VideoUpload = Depends(read_video),
):
    return await SubmissionFlow.resubmit(session, submission_id, upload)


@router.get("/{submission_id}/videos")
async def videos_for_posting(
    submission_id: str,
    platform: SocialPlatform,
    session: SessionContext = Depends(get_session),
):
    videos = await SubmissionFlow.list_videos_for_posting(session, submission_id, platform)
    return {"videos": videos}


@router.post("/{submission_id}/posted-live")
async def posted_live(
    submission_id: str, video: VideoItem, session: SessionContext = Depends(get_session)
):
    return await SubmissionFlow.mark_posted_live(session, submission_id, video)


@router.post("/{submission_id}/review")
async def review(
    submission_id: str, data: SubmissionReview, session: SessionContext = Depends(get_session)
):
    submission = await SubmissionFlow.review_submission(session, submission_id, data)
    deadline = posting_deadline(submission.approved_at) if submission.approved_at else None
    return {"submission": submission, "posting_deadline": deadline}
