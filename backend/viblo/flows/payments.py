"""Campaign checkout and payment history.

The payment processor SDK is opaque: the caller supplies ``present_sheet``,
an async callable that shows the sheet for the given params and reports
whether the user completed it. A cancelled sheet is an outcome, not an error.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from viblo.config import settings
from viblo.domain.budget import payment_summary
from viblo.errors import FormValidationError
from viblo.models.campaign import Campaign
from viblo.models.payment import (
    Coupon,
    PaymentHistory,
    PaymentIntent,
    PaymentOutcome,
    PaymentSheetParams,
    PaymentSheetResult,
    PaymentStatus,
    PaymentSummary,
)
from viblo.models.profile import UserType
from viblo.services.backend_service import BackendService
from viblo.services.gateway import DataGateway
from viblo.session import SessionContext

logger = logging.getLogger(__name__)

PresentSheet = Callable[[PaymentSheetParams], Awaitable[PaymentSheetResult]]
"""Shows the payment sheet and resolves once the user finished or dismissed it."""


class PaymentPreparation(BaseModel):
    campaign: Campaign
    summary: PaymentSummary
    coupon: Optional[Coupon] = None


class PaymentStart(BaseModel):
    campaign_id: str
    sheet: PaymentSheetParams
    summary: PaymentSummary
    payment_intent_id: str


def sheet_params(intent: PaymentIntent) -> PaymentSheetParams:
    return PaymentSheetParams(
        merchant_display_name=settings.merchant_display_name,
        customer_id=intent.customer_id,
        customer_ephemeral_key_secret=intent.ephemeral_key,
        payment_intent_client_secret=intent.payment_intent,
        return_url=settings.payment_return_url,
    )


class PaymentFlow:

    @classmethod
    async def prepare_payment(
        cls, session: SessionContext, campaign_id: str, coupon: Optional[Coupon] = None
    ) -> PaymentPreparation:
        session.require_role(UserType.BRAND)
        campaign = await DataGateway.get_brand_campaign(
            session.access_token, campaign_id, session.user_id
        )
        return PaymentPreparation(
            campaign=campaign,
            summary=payment_summary(campaign.total_budget, coupon, settings.processing_fee_rate),
            coupon=coupon,
        )

    @classmethod
    async def apply_coupon(
        cls, session: SessionContext, campaign_id: str, coupon_code: str
    ) -> PaymentPreparation:
        if not coupon_code.strip():
            raise FormValidationError("Please enter a coupon code", field="coupon_code")
        coupon = await BackendService.validate_coupon(coupon_code)
        logger.info("Coupon %s applied to campaign %s", coupon.coupon_id, campaign_id)
        return await cls.prepare_payment(session, campaign_id, coupon)

    @classmethod
    async def start_payment(
        cls, session: SessionContext, campaign_id: str, coupon: Optional[Coupon] = None
    ) -> PaymentStart:
        """Create the payment intent and the params needed to show the sheet."""
        preparation = await cls.prepare_payment(session, campaign_id, coupon)
        intent = await BackendService.create_payment_intent(
            campaign_id, session.user_id, coupon.coupon_id if coupon else None
        )
        return PaymentStart(
            campaign_id=campaign_id,
            sheet=sheet_params(intent),
            summary=preparation.summary,
            payment_intent_id=intent.payment_intent_id,
        )

    @classmethod
    async def confirm_payment(
        cls, session: SessionContext, campaign_id: str, payment_intent_id: str
    ) -> PaymentOutcome:
        session.require_role(UserType.BRAND)
        await BackendService.confirm_payment(campaign_id, payment_intent_id)
        logger.info("Payment %s confirmed for campaign %s", payment_intent_id, campaign_id)
        return PaymentOutcome(
            campaign_id=campaign_id,
            succeeded=True,
            message="Payment successful! Your campaign is now active.",
        )

    @classmethod
    async def pay(
        cls,
        session: SessionContext,
        campaign_id: str,
        present_sheet: PresentSheet,
        coupon: Optional[Coupon] = None,
    ) -> PaymentOutcome:
        """Intent, sheet, confirmation. Confirmation only runs for a completed sheet."""
        start = await cls.start_payment(session, campaign_id, coupon)
        result = await present_sheet(start.sheet)
        if not result.completed:
            logger.info("Payment sheet dismissed for campaign %s", campaign_id)
            return PaymentOutcome(
                campaign_id=campaign_id,
                succeeded=False,
                cancelled=True,
                message=result.error_message or "Payment cancelled",
                summary=start.summary,
            )
        outcome = await cls.confirm_payment(session, campaign_id, start.payment_intent_id)
        outcome.summary = start.summary
        return outcome

    @classmethod
    async def payment_history(cls, session: SessionContext) -> PaymentHistory:
        session.require_role(UserType.BRAND)
        payments = await DataGateway.list_brand_payments(session.access_token, session.user_id)
        total = sum(p.amount for p in payments if p.status == PaymentStatus.SUCCEEDED)
        return PaymentHistory(payments=payments, total_spent=round(total, 2))
