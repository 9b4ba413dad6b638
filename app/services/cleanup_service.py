"""
Removal of quotes and their files.

Broken quotes are announced right away and deleted after a short delay,
so the requester still sees which record is going away.
"""
import logging
from typing import Awaitable, Callable, Optional, Union

from app.config import settings
from app.services.quote_store import QuoteStore, quote_store as default_store
from app.services.scheduler_service import schedule_once
from app.services.storage_service import LocalQuoteStorage, storage as default_storage
from app.services.selection_service import QuoteReply, list_line
from app.utils.messages import MSG

logger = logging.getLogger(__name__)

Reply = Callable[[Union[str, QuoteReply]], Awaitable[None]]


class CleanupService:
    def __init__(
        self,
        store: Optional[QuoteStore] = None,
        storage: Optional[LocalQuoteStorage] = None,
        schedule=schedule_once,
        delay_seconds: Optional[float] = None,
    ):
        self.store = store or default_store
        self.storage = storage or default_storage
        self.schedule = schedule
        self.delay_seconds = settings.removal_delay_seconds if delay_seconds is None else delay_seconds

    def remove_now(self, quote_id: int) -> bool:
        """Delete the file and the record. Returns False if the record did not exist."""
        self.storage.delete(quote_id)
        return self.store.remove(quote_id)

    async def report_broken(self, quote_id: int, reply: Reply) -> None:
        """Announce a broken quote and schedule its removal; removal is scheduled before any reply."""
        quote = self.store.get(quote_id)
        logger.warning(f"Quote {quote_id} file is broken, removing it from the database")
        self.schedule(self._remove_later, self.delay_seconds, quote_id, reply)
        await reply(MSG.DOWNLOAD_FAILED.format(id=quote_id))
        if quote is not None:
            await reply(list_line(quote))

    async def _remove_later(self, quote_id: int, reply: Reply) -> None:
        try:
            self.remove_now(quote_id)
        except Exception as e:
            logger.error(f"Delayed removal of quote {quote_id} failed: {e}", exc_info=True)
            return
        await reply(MSG.DELETE_FINISHED.format(id=quote_id))


cleanup_service = CleanupService()
