"""Tag set editing for stored quotes."""
import logging
from typing import Iterable, Optional

from app.models.tag_set import TagSet
from app.services.errors import QuoteNotFound
from app.services.quote_store import QuoteStore, quote_store as default_store

logger = logging.getLogger(__name__)


class TagEditor:
    def __init__(self, store: Optional[QuoteStore] = None):
        self.store = store or default_store

    def _load(self, quote_id: int) -> TagSet:
        quote = self.store.get(quote_id)
        if quote is None:
            raise QuoteNotFound(quote_id)
        return TagSet.from_json(quote.tags)

    def add_tags(self, quote_id: int, tags: Iterable[str]) -> int:
        """Add tags to a quote; existing ones are skipped. Returns the number added."""
        tag_set = self._load(quote_id)
        count = tag_set.add(tags)
        self.store.set(quote_id, tags=tag_set.to_json())
        logger.info(f"Quote {quote_id}: added {count} tag(s)")
        return count

    def remove_tags(self, quote_id: int, tags: Iterable[str]) -> int:
        tag_set = self._load(quote_id)
        count = tag_set.remove(tags)
        self.store.set(quote_id, tags=tag_set.to_json())
        logger.info(f"Quote {quote_id}: removed {count} tag(s)")
        return count


tag_editor = TagEditor()
