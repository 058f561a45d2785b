"""Direct messages between brands and influencers."""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel

from viblo.config import settings
from viblo.domain.validation import validate_message
from viblo.errors import FormValidationError, RemoteCallError
from viblo.models.messaging import ConversationSummary, ConversationThread, Message
from viblo.services.gateway import DataGateway
from viblo.session import SessionContext

logger = logging.getLogger(__name__)


class InboxEntry(BaseModel):
    conversation: ConversationSummary
    unread: bool = False


class InboxFlow:

    @classmethod
    async def list_conversations(cls, session: SessionContext) -> list[InboxEntry]:
        conversations = await DataGateway.list_conversations(session.access_token)
        return [
            InboxEntry(conversation=c, unread=c.is_unread_for(session.user_id))
            for c in conversations
        ]

    @classmethod
    async def search_creators(
        cls,
        session: SessionContext,
        search: str = "",
        niches: Optional[list[str]] = None,
        page: int = 0,
    ) -> list[dict[str, Any]]:
        """Influencer directory used to pick someone to message."""
        size = settings.campaign_page_size
        return await DataGateway.search_creators(
            session.access_token,
            search.strip(),
            niches or [],
            row_range=(page * size, (page + 1) * size - 1),
        )

    @classmethod
    async def start_conversation(cls, session: SessionContext, target_user_id: str) -> str:
        """Return the id of the 1:1 conversation with ``target_user_id``, creating it if needed."""
        if target_user_id == session.user_id:
            raise FormValidationError("You cannot message yourself", field="target_user_id")
        return await DataGateway.create_or_get_conversation(session.access_token, target_user_id)

    @classmethod
    async def open_conversation(cls, session: SessionContext, conversation_id: str) -> ConversationThread:
        token = session.access_token
        messages = await DataGateway.list_messages(token, conversation_id)
        other_id = await DataGateway.other_participant_id(token, conversation_id, session.user_id)

        try:
            await DataGateway.mark_messages_read(token, conversation_id, other_id)
        except RemoteCallError as e:
            logger.warning("Marking messages read in %s failed: %s", conversation_id, e.message)
        else:
            for message in messages:
                if message.sender_id == other_id:
                    message.is_read = True

        other = await DataGateway.get_profile(token, other_id)
        return ConversationThread(
            conversation_id=conversation_id, messages=messages, other_participant=other
        )

    @classmethod
    async def send_message(cls, session: SessionContext, conversation_id: str, content: str) -> Message:
        text = validate_message(content)
        return await DataGateway.insert_message(
            session.access_token,
            {
                "conversation_id": conversation_id,
                "sender_id": session.user_id,
                "content": text,
                "is_read": False,
            },
        )
