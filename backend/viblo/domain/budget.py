"""Budget progress, checkout arithmetic and campaign aggregates."""

from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from viblo.models.campaign import (
    Campaign,
    CampaignAnalytics,
    CampaignStats,
    InfluencerPerformance,
    SubmissionStats,
)
from viblo.models.payment import Coupon, PaymentSummary
from viblo.models.submission import SubmissionStatus

WARN_THRESHOLD = 50.0
CRITICAL_THRESHOLD = 85.0


class BudgetSeverity(str, Enum):
    NOMINAL = "nominal"
    WARN = "warn"
    CRITICAL = "critical"

    @property
    def color(self) -> str:
        return _SEVERITY_COLORS[self]


_SEVERITY_COLORS = {
    BudgetSeverity.NOMINAL: "success",
    BudgetSeverity.WARN: "warning",
    BudgetSeverity.CRITICAL: "error",
}


class BudgetProgress(BaseModel):
    total: float
    paid: float
    percentage: float  # raw, may exceed 100 when over-paid
    bar_percentage: float  # clamped to [0, 100] for the bar
    severity: BudgetSeverity
    overpaid: bool = False


def spent_percentage(total: Optional[float], paid: Optional[float]) -> float:
    total = total or 0.0
    paid = paid or 0.0
    return (paid / total) * 100 if total > 0 else 0.0


def severity_for(percentage: float) -> BudgetSeverity:
    if percentage > CRITICAL_THRESHOLD:
        return BudgetSeverity.CRITICAL
    if percentage > WARN_THRESHOLD:
        return BudgetSeverity.WARN
    return BudgetSeverity.NOMINAL


def budget_progress(total: Optional[float], paid: Optional[float]) -> BudgetProgress:
    """Spent percentage and colour tier. Purely presentational, never blocks spend."""
    percentage = spent_percentage(total, paid)
    return BudgetProgress(
        total=total or 0.0,
        paid=paid or 0.0,
        percentage=percentage,
        bar_percentage=min(max(percentage, 0.0), 100.0),
        severity=severity_for(percentage),
        overpaid=percentage > 100.0,
    )


def coupon_discount(subtotal: float, coupon: Optional[Coupon]) -> float:
    if coupon is None:
        return 0.0
    if coupon.percent_off:
        return subtotal * (coupon.percent_off / 100)
    if coupon.amount_off:
        return coupon.amount_off / 100
    return 0.0


def payment_summary(
    total_budget: float,
    coupon: Optional[Coupon] = None,
    fee_rate: float = 0.03,
) -> PaymentSummary:
    """Checkout breakdown: budget, coupon discount, processing fee and total."""
    subtotal = float(total_budget)
    discount = min(coupon_discount(subtotal, coupon), subtotal)
    after_discount = subtotal - discount
    fee = after_discount * fee_rate
    return PaymentSummary(
        subtotal=round(subtotal, 2),
        discount=round(discount, 2),
        subtotal_after_discount=round(after_discount, 2),
        processing_fee=round(fee, 2),
        total=round(after_discount + fee, 2),
    )


def submission_stats(statuses: Iterable[SubmissionStatus | str]) -> SubmissionStats:
    counts = Counter(SubmissionStatus(s) for s in statuses)
    return SubmissionStats(
        total=sum(counts.values()),
        pending_review=counts[SubmissionStatus.PENDING_REVIEW],
        needs_revision=counts[SubmissionStatus.NEEDS_REVISION],
        approved=counts[SubmissionStatus.APPROVED],
        posted_live=counts[SubmissionStatus.POSTED_LIVE],
        completed=counts[SubmissionStatus.COMPLETED],
    )


def can_edit_financials(campaign: Campaign, stats: Optional[SubmissionStats]) -> bool:
    """Budget and rate lock once money moved or a submission is in flight."""
    if campaign.total_paid > 0:
        return False
    return not (stats and stats.has_active_submissions)


def _num(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def influencer_performance(row: dict[str, Any]) -> InfluencerPerformance:
    """Flatten a submission row joined with its influencer profile."""
    influencer = row.get("influencer") or {}
    if influencer:
        full = f"{influencer.get('first_name') or ''} {influencer.get('last_name') or ''}".strip()
        name = full or influencer.get("username") or "Unknown"
    else:
        name = "Unknown"
    return InfluencerPerformance(
        submission_id=row["id"],
        influencer_id=row["influencer_id"],
        influencer_name=name,
        influencer_username=influencer.get("username") or "unknown",
        influencer_avatar=influencer.get("avatar_url"),
        submission_status=row["status"],
        view_count=_num(row.get("view_count")),
        like_count=_num(row.get("like_count")),
        comment_count=_num(row.get("comment_count")),
        earned_amount=_num(row.get("earned_amount")),
        posted_at=row.get("posted_at"),
    )


def campaign_stats(performances: list[InfluencerPerformance]) -> CampaignStats:
    return CampaignStats(
        total_views=sum(p.view_count for p in performances),
        total_likes=sum(p.like_count for p in performances),
        total_comments=sum(p.comment_count for p in performances),
        total_spent=sum(p.earned_amount for p in performances),
        active_influencers=len(performances),
        total_submissions=len(performances),
    )


def campaign_analytics(
    campaign: Campaign, rows: list[dict[str, Any]]
) -> CampaignAnalytics:
    """Analytics screen payload from live/completed submission rows."""
    performances = [influencer_performance(row) for row in rows]
    return CampaignAnalytics(
        campaign=campaign,
        stats=campaign_stats(performances),
        influencers=performances,
    )
