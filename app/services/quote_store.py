"""
Record Store for quotes, backed by SQLAlchemy.

Each call opens its own session and closes it before returning, so returned
Quote objects are detached snapshots.
"""
import re
import logging
from datetime import datetime
from typing import Iterable, Optional

from app.db.session import SessionLocal
from app.models.quote import Quote

logger = logging.getLogger(__name__)


def tags_match(pattern: str, tags_json: str) -> bool:
    """Regex search over the serialized tag list; bad patterns degrade to substring search."""
    try:
        return re.search(pattern, tags_json or "") is not None
    except re.error:
        return pattern in (tags_json or "")


class QuoteStore:
    def __init__(self, session_factory=None):
        self._session_factory = session_factory or SessionLocal

    def create(self, content: str, time: datetime, origin_message_id: str, tags: str, group: str) -> Quote:
        db = self._session_factory()
        try:
            quote = Quote(
                content=content,
                time=time,
                origin_message_id=origin_message_id,
                tags=tags,
                group=group,
            )
            db.add(quote)
            db.commit()
            db.refresh(quote)
            return quote
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def get(self, quote_id: int) -> Optional[Quote]:
        db = self._session_factory()
        try:
            return db.get(Quote, quote_id)
        finally:
            db.close()

    def find_by_origin(self, message_id: str, scope: str) -> Optional[Quote]:
        """Quote captured from `message_id`. Message ids are only unique within one chat."""
        db = self._session_factory()
        try:
            return (
                db.query(Quote)
                .filter(Quote.origin_message_id == str(message_id), Quote.group == scope)
                .order_by(Quote.id)
                .first()
            )
        finally:
            db.close()

    def set(self, quote_id: int, **fields) -> bool:
        """Update the given columns. Returns False if the quote no longer exists."""
        db = self._session_factory()
        try:
            quote = db.get(Quote, quote_id)
            if quote is None:
                return False
            for name, value in fields.items():
                setattr(quote, name, value)
            db.commit()
            return True
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def remove(self, quote_id: int) -> bool:
        db = self._session_factory()
        try:
            deleted = db.query(Quote).filter(Quote.id == quote_id).delete()
            db.commit()
            return deleted > 0
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def query(self, scope: Optional[str] = None, tag_filters: Iterable[str] = ()) -> list[Quote]:
        """Quotes in `scope` (all scopes if None) whose tags match every filter, ordered by id."""
        db = self._session_factory()
        try:
            q = db.query(Quote)
            if scope is not None:
                q = q.filter(Quote.group == scope)
            quotes = q.order_by(Quote.id).all()
        finally:
            db.close()

        filters = list(tag_filters)
        if filters:
            quotes = [quote for quote in quotes if all(tags_match(f, quote.tags) for f in filters)]
        return quotes


quote_store = QuoteStore()
