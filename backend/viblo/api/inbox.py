"""Conversations and messages."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from viblo.api.deps import get_session
from viblo.flows.inbox import InboxFlow
from viblo.session import SessionContext

router = APIRouter(prefix="/inbox", tags=["inbox"])


class StartConversationRequest(BaseModel):
    target_user_id: str


class SendMessageRequest(BaseModel):
    content: str


@router.get("")
async def conversations(session: SessionContext = Depends(get_session)):
    return {"conversations": await InboxFlow.list_conversations(session)}


@router.get("/creators")
async def creators(
    search: str = "",
    niches: Optional[list[str]] = Query(default=None),
    page: int = 0,
    session: SessionContext = Depends(get_session),
):
    return {"creators": await InboxFlow.search_creators(session, search, niches, page)}


@router.post("")
async def start_conversation(
    data: StartConversationRequest, session: SessionContext = Depends(get_session)
):
    conversation_id = await InboxFlow.start_conversation(session, data.target_user_id)
    return {"conversation_id": conversation_id}


@router.get("/{conversation_id}")
async def open_conversation(conversation_id: str, session: SessionContext = Depends(get_session)):
    return await InboxFlow.open_conversation(session, conversation_id)


@router.post("/{conversation_id}/messages", status_code=201)
async def send_message(
    conversation_id: str, data: SendMessageRequest, session: SessionContext = Depends(get_session)
):
    return await InboxFlow.send_message(session, conversation_id, data.content)
