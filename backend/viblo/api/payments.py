"""Checkout and payment history.

The payment sheet runs on the device, so checkout is split in two calls:
``/intent`` returns the sheet params, ``/confirm`` is sent once the sheet
completed.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from viblo.api.deps import get_session
from viblo.flows.payments import PaymentFlow
from viblo.models.payment import Coupon, payment_intent_id
from viblo.session import SessionContext

router = APIRouter(prefix="/payments", tags=["payments"])


class CouponRequest(BaseModel):
    coupon_code: str


class IntentRequest(BaseModel):
    coupon: Optional[Coupon] = None


class ConfirmRequest(BaseModel):
    client_secret: str


@router.get("/history")
async def history(session: SessionContext = Depends(get_session)):
    return await PaymentFlow.payment_history(session)


@router.get("/campaigns/{campaign_id}")
async def prepare(campaign_id: str, session: SessionContext = Depends(get_session)):
    return await PaymentFlow.prepare_payment(session, campaign_id)


@router.post("/campaigns/{campaign_id}/coupon")
async def apply_coupon(
    campaign_id: str, data: CouponRequest, session: SessionContext = Depends(get_session)
):
    return await PaymentFlow.apply_coupon(session, campaign_id, data.coupon_code)


@router.post("/campaigns/{campaign_id}/intent")
async def start(
    campaign_id: str, data: IntentRequest, session: SessionContext = Depends(get_session)
):
    return await PaymentFlow.start_payment(session, campaign_id, data.coupon)


@router.post("/campaigns/{campaign_id}/confirm")
async def confirm(
    campaign_id: str, data: ConfirmRequest, session: SessionContext = Depends(get_session)
):
    return await PaymentFlow.confirm_payment(
        session, campaign_id, payment_intent_id(data.client_secret)
    )
