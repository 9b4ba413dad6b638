"""
Capture state machine.

A capture request registers a `wait` entry for (scope, user). The next image
that user sends in that scope moves it to `pending` and is ingested; the
entry then becomes `finished` and is purged after the message is handled.

Handlers suspend at every I/O call, so entries can change between a lookup
and a later mutation; every transition re-checks the state it expects.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional

from app.config import settings
from app.models.events import ImageElement, InboundMessage
from app.models.tag_set import TagSet
from app.services.cleanup_service import CleanupService, Reply, cleanup_service as default_cleanup
from app.services.download_service import AttachmentFetcher, fetcher as default_fetcher
from app.services.errors import IngestOutcome, QuoteError
from app.services.quote_store import QuoteStore, quote_store as default_store
from app.services.storage_service import LocalQuoteStorage
from app.services.telegram_service import resolve_image_src
from app.utils.messages import MSG

logger = logging.getLogger(__name__)

ResolveSrc = Callable[[ImageElement], Awaitable[Optional[str]]]


class CaptureState(str, Enum):
    WAIT = "wait"
    PENDING = "pending"
    FINISHED = "finished"


@dataclass
class CapturePayload:
    time: datetime
    origin_message_id: str
    scope: str
    tags: TagSet


@dataclass
class PendingCapture:
    scope: str
    user: str
    payload: CapturePayload
    state: CaptureState = CaptureState.WAIT
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def active(self) -> bool:
        return self.state in (CaptureState.WAIT, CaptureState.PENDING)


class CaptureInProgress(QuoteError):
    def __init__(self, state: CaptureState):
        super().__init__(f"Capture already {state.value}")
        self.state = state

    @property
    def reply_text(self) -> str:
        if self.state == CaptureState.PENDING:
            return MSG.CAPTURE_IN_PROCESS
        return MSG.CAPTURE_STILL_WAITING


async def _src_as_is(image: ImageElement) -> Optional[str]:
    return image.src


class CaptureService:
    def __init__(
        self,
        store: Optional[QuoteStore] = None,
        fetcher: Optional[AttachmentFetcher] = None,
        cleanup: Optional[CleanupService] = None,
        resolve_src: ResolveSrc = _src_as_is,
        max_image_bytes: Optional[int] = None,
        cancel_keywords: Optional[Iterable[str]] = None,
    ):
        self.store = store or default_store
        self.fetcher = fetcher or default_fetcher
        self.cleanup = cleanup or default_cleanup
        self.resolve_src = resolve_src
        self.max_image_bytes = settings.max_image_bytes if max_image_bytes is None else max_image_bytes
        keywords = settings.cancel_keywords if cancel_keywords is None else cancel_keywords
        self.cancel_keywords = {k.strip().lower() for k in keywords}
        self._entries: dict[tuple[str, str], PendingCapture] = {}

    @property
    def storage(self) -> LocalQuoteStorage:
        return self.fetcher.storage

    # ==================== WORKING SET ====================

    def entry_for(self, scope: str, user: str) -> Optional[PendingCapture]:
        return self._entries.get((scope, user))

    def is_waiting(self, scope: str, user: str) -> bool:
        entry = self.entry_for(scope, user)
        return entry is not None and entry.state == CaptureState.WAIT

    def entries(self) -> list[PendingCapture]:
        return list(self._entries.values())

    def snapshot(self) -> list[dict]:
        return [{"scope": e.scope, "user": e.user, "state": e.state.value} for e in self.entries()]

    def purge(self) -> int:
        """Drop every finished entry. Returns how many were removed."""
        finished = [key for key, entry in self._entries.items() if entry.state == CaptureState.FINISHED]
        for key in finished:
            del self._entries[key]
        return len(finished)

    # ==================== TRANSITIONS ====================

    def register(self, message: InboundMessage, tags: Iterable[str] = ()) -> PendingCapture:
        """Open a capture for the message author. Raises CaptureInProgress if one is active."""
        scope, user = message.scope, message.user_id
        existing = self.entry_for(scope, user)
        if existing is not None and existing.active:
            raise CaptureInProgress(existing.state)

        entry = PendingCapture(
            scope=scope,
            user=user,
            payload=CapturePayload(
                time=datetime.now(timezone.utc),
                origin_message_id=message.message_id,
                scope=scope,
                tags=TagSet.for_scope(scope, tags),
            ),
        )
        self._entries[(scope, user)] = entry
        logger.info(f"Capture registered for user {user} in {scope}")
        return entry

    async def handle_message(self, message: InboundMessage, reply: Reply) -> Optional[IngestOutcome]:
        """Feed an inbound message to the waiting capture of its author, if any."""
        try:
            entry = self.entry_for(message.scope, message.user_id)
            if entry is None or entry.state != CaptureState.WAIT:
                return None

            image = message.first_image
            if image is not None:
                try:
                    return await self.ingest(entry, message, image, reply)
                except Exception:
                    entry.state = CaptureState.FINISHED
                    raise
            if message.text.lower() in self.cancel_keywords:
                entry.state = CaptureState.FINISHED
                logger.info(f"Capture cancelled by user {entry.user} in {entry.scope}")
                await reply(MSG.CAPTURE_CANCELLED)
                return IngestOutcome.CANCELLED
            return None
        finally:
            self.purge()

    async def ingest(
        self, entry: PendingCapture, message: InboundMessage, image: ImageElement, reply: Reply
    ) -> Optional[IngestOutcome]:
        entry.state = CaptureState.PENDING
        src = image.src or await self.resolve_src(image)
        if not src:
            logger.warning(f"No download URL for image {image.file_id}")
            entry.state = CaptureState.WAIT
            await reply(MSG.IMAGE_UNAVAILABLE)
            return None

        payload = entry.payload
        quote = self.store.create(
            content=src,
            time=payload.time,
            origin_message_id=payload.origin_message_id,
            tags=payload.tags.to_json(),
            group=payload.scope,
        )
        try:
            return await self._finalize(entry, message, quote.id, src, reply)
        except Exception as e:
            logger.error(f"Ingestion of quote {quote.id} failed: {e}", exc_info=True)
            entry.state = CaptureState.FINISHED
            await self.cleanup.report_broken(quote.id, reply)
            return IngestOutcome.INTEGRITY_FAILURE

    async def _finalize(
        self, entry: PendingCapture, message: InboundMessage, quote_id: int, src: str, reply: Reply
    ) -> IngestOutcome:
        """Download and check the file of a freshly created record, then confirm or discard it."""
        if not await self.fetcher.fetch_with_retry(src, quote_id):
            logger.warning(f"Quote {quote_id} download from {src} failed permanently")
            await self.cleanup.report_broken(quote_id, reply)
            entry.state = CaptureState.FINISHED
            return IngestOutcome.INTEGRITY_FAILURE

        size = self.storage.size(quote_id)
        if size is not None and size > self.max_image_bytes:
            self.storage.delete(quote_id)
            logger.warning(f"Quote {quote_id} file is too large ({size} bytes), removing it from the database")
            await reply(MSG.FILE_TOO_LARGE.format(id=quote_id))
            self.store.remove(quote_id)
            entry.state = CaptureState.FINISHED
            return IngestOutcome.SIZE_VIOLATION

        self.store.set(quote_id, origin_message_id=message.message_id)
        await reply(MSG.CAPTURE_SAVED.format(id=quote_id))
        entry.state = CaptureState.FINISHED
        return IngestOutcome.SUCCESS


capture_service = CaptureService(resolve_src=resolve_image_src)
