"""
Message Service

Append-only room history with sender-only edit and soft delete, plus
case-insensitive substring search.
"""
import logging
from typing import List

from sqlalchemy.orm import sessionmaker

from .. import crud
from ..database import SessionLocal, transaction
from ..errors import FailedPrecondition, InvalidArgument, NotFound, PermissionDenied
from ..models import Message, utcnow
from .users import require_user

logger = logging.getLogger(__name__)


class MessageService:
    """Message gateway."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def send(self, chat_room_id: int, sender_id: int, text: str) -> Message:
        # text is validated by the request schema before it gets here
        with transaction(self.session_factory) as db:
            if not crud.get_chat_room(db, chat_room_id):
                raise NotFound("Chat room not found")
            require_user(db, sender_id, "Sender")
            msg = Message(chat_room_id=chat_room_id, sender_id=sender_id, text=text, created_at=utcnow())
            db.add(msg)
            db.flush()
            return msg

    def list_by_room(self, chat_room_id: int) -> List[Message]:
        with transaction(self.session_factory) as db:
            return crud.list_room_messages(db, chat_room_id)

    def edit(self, message_id: int, sender_id: int, text: str) -> Message:
        with transaction(self.session_factory) as db:
            msg = crud.get_message(db, message_id)
            if not msg:
                raise NotFound("Message not found")
            if msg.sender_id != sender_id:
                raise PermissionDenied("Cannot edit another user's message")
            if msg.is_deleted:
                raise FailedPrecondition("Cannot edit deleted message")
            new_text = (text or "").strip()
            if not new_text:
                raise InvalidArgument("Message text is required")

            msg.text = new_text
            msg.is_edited = True
            msg.edited_at = utcnow()
            db.flush()
            return msg

    def delete(self, message_id: int, requester_id: int) -> Message:
        """Soft delete. Deleting twice returns the tombstone unchanged."""
        with transaction(self.session_factory) as db:
            msg = crud.get_message(db, message_id)
            if not msg:
                raise NotFound("Message not found")
            if msg.sender_id != requester_id:
                raise PermissionDenied("Cannot delete another user's message")
            if msg.is_deleted:
                return msg

            msg.is_deleted = True
            msg.deleted_at = utcnow()
            msg.deleted_by = requester_id
            msg.text = ""
            db.flush()
            logger.info("Message %s deleted by %s", msg.id, requester_id)
            return msg

    def search(self, chat_room_id: int, query: str) -> List[Message]:
        needle = (query or "").strip()
        if not needle:
            raise InvalidArgument("Query text is required")
        with transaction(self.session_factory) as db:
            return crud.search_room_messages(db, chat_room_id, needle)
