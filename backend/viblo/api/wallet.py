"""Wallet summary and payout methods."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from viblo.api.deps import get_session
from viblo.flows.wallet import WalletFlow
from viblo.models.payment import PayoutMethodForm
from viblo.session import SessionContext

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("")
async def summary(session: SessionContext = Depends(get_session)):
    return await WalletFlow.wallet_summary(session)


@router.get("/payout-methods")
async def list_methods(session: SessionContext = Depends(get_session)):
    return {"payout_methods": await WalletFlow.list_payout_methods(session)}


@router.post("/payout-methods", status_code=201)
async def add_method(form: PayoutMethodForm, session: SessionContext = Depends(get_session)):
    return await WalletFlow.add_payout_method(session, form)


@router.get("/payout-methods/{method_id}")
async def get_method(method_id: str, session: SessionContext = Depends(get_session)):
    method = await WalletFlow.get_payout_method(session, method_id)
    return {"payout_method": method, "details": method.typed_details()}


@router.put("/payout-methods/{method_id}")
async def update_method(
    method_id: str, form: PayoutMethodForm, session: SessionContext = Depends(get_session)
):
    return await WalletFlow.update_payout_method(session, method_id, form)


@router.delete("/payout-methods/{method_id}")
async def delete_method(method_id: str, session: SessionContext = Depends(get_session)):
    await WalletFlow.delete_payout_method(session, method_id)
    return {"status": "deleted", "id": method_id}
