# backend/app/repositories/message_repository.py

from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..models.message import Message
from .base_repository import BaseRepository


class MessageRepository(BaseRepository[Message]):
    def __init__(self, db: Session):
        super().__init__(db, Message)

    def list_page(self, conversation_id: str, *, limit: int, before: Optional[Message] = None) -> List[Message]:
        """
        Newest-first page of a conversation.

        ``before`` is the oldest message of the previous page; ties on
        ``created_at`` are broken by id so paging never skips or repeats.
        """
        query = self.db.query(Message).filter(Message.conversation_id == conversation_id)
        if before is not None:
            query = query.filter(
                or_(
                    Message.created_at < before.created_at,
                    and_(Message.created_at == before.created_at, Message.id < before.id),
                )
            )
        query = query.order_by(Message.created_at.desc(), Message.id.desc()).limit(limit)
        return self._execute_query(query)

    def get_latest(self, conversation_id: str) -> Optional[Message]:
        return (
            self.db.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .first()
        )

    def mark_read(self, conversation_id: str, reader_id: str, read_at: datetime) -> List[str]:
        """Stamp ``read_at`` on other participants' unread messages; returns their ids."""
        messages = (
            self.db.query(Message)
            .filter(
                Message.conversation_id == conversation_id,
                Message.sender_id != reader_id,
                Message.read_at.is_(None),
            )
            .all()
        )
        for message in messages:
            message.read_at = read_at
        self.db.flush()
        return [message.id for message in messages]
