"""Influencer wallet: earnings total and payout method management."""

from __future__ import annotations

import logging

from viblo.domain.validation import clean_payout_details
from viblo.errors import PermissionDeniedError
from viblo.models.payment import PayoutMethod, PayoutMethodForm, PayoutStatus, WalletSummary
from viblo.services.gateway import DataGateway, utcnow_iso
from viblo.session import SessionContext

logger = logging.getLogger(__name__)

OPEN_PAYOUT_STATUSES = (PayoutStatus.PENDING, PayoutStatus.PROCESSING)


class WalletFlow:

    @classmethod
    async def wallet_summary(cls, session: SessionContext) -> WalletSummary:
        token = session.access_token
        earned = await DataGateway.list_earned_amounts(token, session.user_id)
        methods = await DataGateway.list_payout_methods(token, session.user_id)
        payouts = await DataGateway.list_payouts(token, session.user_id)
        return WalletSummary(
            total_earnings=round(sum(earned), 2),
            has_payout_method=bool(methods),
            paid_out=round(sum(p.amount for p in payouts if p.status == PayoutStatus.COMPLETED), 2),
            pending_payouts=round(
                sum(p.amount for p in payouts if p.status in OPEN_PAYOUT_STATUSES), 2
            ),
            payouts=payouts,
        )

    @classmethod
    async def list_payout_methods(cls, session: SessionContext) -> list[PayoutMethod]:
        return await DataGateway.list_payout_methods(session.access_token, session.user_id)

    @classmethod
    async def get_payout_method(cls, session: SessionContext, method_id: str) -> PayoutMethod:
        method = await DataGateway.get_payout_method(session.access_token, method_id)
        if method.user_id != session.user_id:
            raise PermissionDeniedError("This payout method belongs to another user")
        return method

    @classmethod
    async def add_payout_method(cls, session: SessionContext, form: PayoutMethodForm) -> PayoutMethod:
        details = clean_payout_details(form)
        method = await DataGateway.insert_payout_method(
            session.access_token,
            {
                "user_id": session.user_id,
                "method_type": form.method_type.value,
                "details": details,
                "is_primary": form.is_primary,
            },
        )
        logger.info("Added %s payout method for %s", form.method_type.value, session.user_id)
        return method

    @classmethod
    async def update_payout_method(
        cls, session: SessionContext, method_id: str, form: PayoutMethodForm
    ) -> PayoutMethod:
        existing = await cls.get_payout_method(session, method_id)
        # the method type is fixed once created
        form = form.model_copy(update={"method_type": existing.method_type})
        return await DataGateway.update_payout_method(
            session.access_token,
            method_id,
            {
                "details": clean_payout_details(form),
                "is_primary": form.is_primary,
                "updated_at": utcnow_iso(),
            },
        )

    @classmethod
    async def delete_payout_method(cls, session: SessionContext, method_id: str) -> None:
        await cls.get_payout_method(session, method_id)
        await DataGateway.delete_payout_method(session.access_token, method_id)
        logger.info("Deleted payout method %s", method_id)
