"""Submission status projection for the campaign detail screen.

The backend (and the brand's review action) is the only authority for status
changes. This module only answers "what should the screen offer for this
status and role", plus which transitions a client action may request.

    pending_review -> approved -> posted_live -> completed
    pending_review -> needs_revision -> (resubmit) -> pending_review
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from viblo.models.profile import UserType
from viblo.models.submission import SubmissionStatus

POSTING_WINDOW = timedelta(hours=24)


class PrimaryAction(str, Enum):
    APPLY = "apply"
    NONE = "none"
    REVISE = "revise"
    VIEW_SUBMISSION = "view_submission"
    EDIT_CAMPAIGN = "edit_campaign"


class StatusProjection(BaseModel):
    label: str
    primary_action: PrimaryAction
    primary_action_label: str
    primary_action_enabled: bool
    shows_metrics: bool = False
    error: bool = False


STATUS_LABELS: dict[SubmissionStatus, str] = {
    SubmissionStatus.PENDING_REVIEW: "Pending Review",
    SubmissionStatus.NEEDS_REVISION: "Needs Revision",
    SubmissionStatus.APPROVED: "Approved",
    SubmissionStatus.POSTED_LIVE: "Posted Live",
    SubmissionStatus.COMPLETED: "Completed",
}

_INFLUENCER_TABLE: dict[SubmissionStatus, tuple[PrimaryAction, str, bool]] = {
    SubmissionStatus.PENDING_REVIEW: (PrimaryAction.NONE, "Application Submitted", False),
    SubmissionStatus.NEEDS_REVISION: (PrimaryAction.REVISE, "Revise Submission", True),
    SubmissionStatus.APPROVED: (PrimaryAction.VIEW_SUBMISSION, "View Submission", True),
    SubmissionStatus.POSTED_LIVE: (PrimaryAction.VIEW_SUBMISSION, "View Submission", True),
    SubmissionStatus.COMPLETED: (PrimaryAction.NONE, "Campaign Completed", False),
}

METRICS_STATUSES = frozenset({SubmissionStatus.POSTED_LIVE, SubmissionStatus.COMPLETED})

# Transitions a client action may request. ``completed`` is set by the
# analytics sync on the backend, never by this client.
_CLIENT_TRANSITIONS: dict[SubmissionStatus, frozenset[SubmissionStatus]] = {
    SubmissionStatus.PENDING_REVIEW: frozenset(
        {SubmissionStatus.APPROVED, SubmissionStatus.NEEDS_REVISION}
    ),
    SubmissionStatus.NEEDS_REVISION: frozenset({SubmissionStatus.PENDING_REVIEW}),
    SubmissionStatus.APPROVED: frozenset({SubmissionStatus.POSTED_LIVE}),
    SubmissionStatus.POSTED_LIVE: frozenset(),
    SubmissionStatus.COMPLETED: frozenset(),
}


def project_submission(
    status: Optional[SubmissionStatus],
    role: UserType,
    campaign_loaded: bool = True,
) -> StatusProjection:
    """Map ``status x role`` to the label and primary button of the detail screen."""
    if not campaign_loaded:
        return StatusProjection(
            label="Campaign not found",
            primary_action=PrimaryAction.NONE,
            primary_action_label="",
            primary_action_enabled=False,
            error=True,
        )

    if role == UserType.BRAND:
        return StatusProjection(
            label=STATUS_LABELS[status] if status else "",
            primary_action=PrimaryAction.EDIT_CAMPAIGN,
            primary_action_label="Edit Campaign",
            primary_action_enabled=True,
            shows_metrics=status in METRICS_STATUSES,
        )

    if status is None:
        return StatusProjection(
            label="Not applied",
            primary_action=PrimaryAction.APPLY,
            primary_action_label="Apply Now",
            primary_action_enabled=True,
        )

    action, action_label, enabled = _INFLUENCER_TABLE[status]
    return StatusProjection(
        label=STATUS_LABELS[status],
        primary_action=action,
        primary_action_label=action_label,
        primary_action_enabled=enabled,
        shows_metrics=status in METRICS_STATUSES,
    )


def allowed_transitions(status: SubmissionStatus) -> frozenset[SubmissionStatus]:
    return _CLIENT_TRANSITIONS[status]


def can_transition(current: SubmissionStatus, target: SubmissionStatus) -> bool:
    return target in _CLIENT_TRANSITIONS[current]


def posting_deadline(approved_at: datetime, now: Optional[datetime] = None) -> str:
    """Hours left to publish an approved video (24h window after approval)."""
    now = now or datetime.now(timezone.utc)
    if approved_at.tzinfo is None:
        approved_at = approved_at.replace(tzinfo=timezone.utc)
    remaining = approved_at + POSTING_WINDOW - now
    hours = int(remaining.total_seconds() // 3600)
    return f"{hours} hours remaining" if hours > 0 else "Deadline passed"
