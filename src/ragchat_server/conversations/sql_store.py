"""
SQL Conversation Store

SQLAlchemy async implementation of ``ConversationStore``. Each operation runs
in its own session and commits before returning, so callers never hold a
database session across network calls to the embedding or vector services.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from .models import (
    ChatMessage,
    ConversationSummary,
    DocumentRecord,
    MessageMetadata,
    utcnow,
)
from .store import ConversationStore, DEFAULT_USER_ID
from ..db.models import Conversation, ConversationDocument, ConversationMessage
from ..db.session import create_schema


class SqlConversationStore(ConversationStore):
    """
    Relational conversation store.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: Optional[AsyncEngine] = None,
    ) -> None:
        """
        Parameters
        ----------
        session_factory : async_sessionmaker[AsyncSession]
            Factory producing sessions bound to the conversation database.

        engine : Optional[AsyncEngine]
            Engine to dispose on ``close()``.
        """
        self._session_factory = session_factory
        self._engine = engine

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _get_or_create(
        session: AsyncSession,
        convo_id: str,
        user_id: str,
    ) -> Conversation:
        conversation = await session.get(Conversation, convo_id)
        if conversation is None:
            now = utcnow()
            conversation = Conversation(
                convo_id=convo_id,
                user_id=user_id,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            session.add(conversation)
            await session.flush()
        return conversation

    @staticmethod
    def _to_message(row: ConversationMessage) -> ChatMessage:
        return ChatMessage(
            id=row.message_id,
            sender=row.sender,
            message=row.content,
            ts=row.ts,
            metadata=MessageMetadata.model_validate(row.metadata_ or {}),
        )

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    async def upsert_conversation(self, convo_id: str, user_id: str) -> None:
        async with self._session_factory() as session:
            await self._get_or_create(session, convo_id, user_id)
            await session.commit()

    async def clear_messages(self, convo_id: str) -> None:
        async with self._session_factory() as session:
            conversation = await session.get(Conversation, convo_id)
            if conversation is None:
                return
            await session.execute(
                delete(ConversationMessage).where(
                    ConversationMessage.convo_id == convo_id
                )
            )
            conversation.updated_at = utcnow()
            await session.commit()

    async def set_last_upload(self, convo_id: str, timestamp: datetime) -> None:
        async with self._session_factory() as session:
            conversation = await session.get(Conversation, convo_id)
            if conversation is None:
                return
            conversation.last_upload = timestamp
            conversation.updated_at = utcnow()
            await session.commit()

    async def append_document_metadata(
        self,
        convo_id: str,
        record: DocumentRecord,
    ) -> None:
        async with self._session_factory() as session:
            conversation = await self._get_or_create(session, convo_id, DEFAULT_USER_ID)
            session.add(
                ConversationDocument(
                    convo_id=convo_id,
                    filename=record.filename,
                    uploaded_at=record.uploaded_at,
                    chunks=record.chunks,
                    words=record.words,
                    storage_url=record.storage_url,
                )
            )
            conversation.last_upload = record.uploaded_at
            conversation.updated_at = utcnow()
            await session.commit()

    async def add_message(
        self,
        convo_id: str,
        message: ChatMessage,
        user_id: str = DEFAULT_USER_ID,
    ) -> None:
        async with self._session_factory() as session:
            conversation = await self._get_or_create(session, convo_id, user_id)
            session.add(
                ConversationMessage(
                    convo_id=convo_id,
                    message_id=message.id,
                    sender=message.sender,
                    content=message.message,
                    ts=message.ts,
                    metadata_=message.metadata.model_dump(by_alias=True),
                )
            )
            conversation.updated_at = utcnow()
            await session.commit()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_history(
        self,
        convo_id: str,
        limit: Optional[int] = None,
    ) -> List[ChatMessage]:
        stmt = (
            select(ConversationMessage)
            .where(ConversationMessage.convo_id == convo_id)
            .order_by(ConversationMessage.seq.desc())
        )
        if limit:
            stmt = stmt.limit(limit)

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()

        return [self._to_message(row) for row in reversed(rows)]

    async def get_documents(self, convo_id: str) -> List[DocumentRecord]:
        stmt = (
            select(ConversationDocument)
            .where(ConversationDocument.convo_id == convo_id)
            .order_by(ConversationDocument.id)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()

        return [
            DocumentRecord(
                filename=row.filename,
                uploaded_at=row.uploaded_at,
                chunks=row.chunks,
                words=row.words,
                storage_url=row.storage_url,
            )
            for row in rows
        ]

    async def get_last_upload(self, convo_id: str) -> Optional[datetime]:
        async with self._session_factory() as session:
            conversation = await session.get(Conversation, convo_id)
            return conversation.last_upload if conversation else None

    async def list_conversations(
        self,
        user_id: str,
        limit: int = 50,
    ) -> List[ConversationSummary]:
        stmt = (
            select(Conversation)
            .where(Conversation.user_id == user_id)
            .options(
                selectinload(Conversation.messages),
                selectinload(Conversation.documents),
            )
            .order_by(Conversation.updated_at.desc())
            .limit(limit)
        )
        async with self._session_factory() as session:
            conversations = (await session.execute(stmt)).scalars().all()

            return [
                ConversationSummary(
                    convo_id=c.convo_id,
                    message_count=len(c.messages),
                    last_message=c.messages[-1].content if c.messages else "No messages",
                    last_message_time=c.updated_at,
                    created_at=c.created_at,
                    has_documents=bool(c.documents),
                )
                for c in conversations
            ]

    async def initialize(self) -> None:
        if self._engine is not None:
            await create_schema(self._engine)

    async def ping(self) -> bool:
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except Exception:
            return False
        return True

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
