"""
SQLAlchemy Models

Defines the database schema for:
- Conversations (owner, upload timestamp)
- Chat messages with their retrieval metadata
- Per-file document metadata recorded at ingestion
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, List

from sqlalchemy import (
    BigInteger,
    Boolean,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Index,
    JSON,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ---------------------------------------------------------------------
# Conversation Model
# ---------------------------------------------------------------------

class Conversation(Base):
    """
    A chat conversation owned by a user.
    """
    __tablename__ = "conversation"

    convo_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    last_upload: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    messages: Mapped[List["ConversationMessage"]] = relationship(
        "ConversationMessage",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="ConversationMessage.seq",
    )

    documents: Mapped[List["ConversationDocument"]] = relationship(
        "ConversationDocument",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="ConversationDocument.id",
    )

    __table_args__ = (
        Index("idx_conversation_owner", "user_id", "updated_at"),
    )


# ---------------------------------------------------------------------
# Chat Message Model
# ---------------------------------------------------------------------

class ConversationMessage(Base):
    """
    A single message within a conversation.
    """
    __tablename__ = "conversation_message"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    convo_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("conversation.convo_id", ondelete="CASCADE"),
        nullable=False,
    )
    message_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    sender: Mapped[str] = mapped_column(String(16), nullable=False)  # user | bot
    content: Mapped[str] = mapped_column(Text, nullable=False)
    ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    metadata_: Mapped[Optional[dict]] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
    )

    conversation: Mapped["Conversation"] = relationship(
        "Conversation",
        back_populates="messages",
    )

    __table_args__ = (
        Index("idx_message_conversation", "convo_id", "seq"),
    )


# ---------------------------------------------------------------------
# Document Metadata Model
# ---------------------------------------------------------------------

class ConversationDocument(Base):
    """
    Metadata for one file ingested into a conversation's index.
    """
    __tablename__ = "conversation_document"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    convo_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("conversation.convo_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    filename: Mapped[str] = mapped_column(Text, nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    chunks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    words: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    storage_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    conversation: Mapped["Conversation"] = relationship(
        "Conversation",
        back_populates="documents",
    )
