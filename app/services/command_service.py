"""
Quote commands: capture, remove, tag editing and selection.

Handlers return the reply to send (text or a rendered quote) or None when
they already replied themselves.
"""
import logging
from typing import Optional, Union

from app.config import settings
from app.models.events import InboundMessage
from app.services.capture_service import CaptureInProgress, CaptureService, capture_service as default_capture
from app.services.cleanup_service import CleanupService, Reply, cleanup_service as default_cleanup
from app.services.errors import MalformedReference, QuoteNotFound
from app.services.quote_store import QuoteStore, quote_store as default_store
from app.services.reference_service import resolve_quoted_id
from app.services.selection_service import (
    QuoteReply,
    SelectionEngine,
    list_line,
    list_page,
    render_quote,
    selection_engine as default_engine,
)
from app.services.storage_service import LocalQuoteStorage, storage as default_storage
from app.services.tag_service import TagEditor
from app.utils.commands import CommandUsageError, parse_id_option, parse_select_args
from app.utils.messages import MSG

logger = logging.getLogger(__name__)

Result = Optional[Union[str, QuoteReply]]

ALIASES = {
    "quote_add": "add",
    "addquote": "add",
    "quote_remove": "remove",
    "rmquote": "remove",
    "quote_tag_add": "tag_add",
    "addtag": "tag_add",
    "quote_tag_remove": "tag_remove",
    "rmtag": "tag_remove",
    "quote": "select",
    "quote_select": "select",
}


class CommandService:
    def __init__(
        self,
        store: Optional[QuoteStore] = None,
        storage: Optional[LocalQuoteStorage] = None,
        capture: Optional[CaptureService] = None,
        selection: Optional[SelectionEngine] = None,
        cleanup: Optional[CleanupService] = None,
        page_size: Optional[int] = None,
    ):
        self.store = store or default_store
        self.storage = storage or default_storage
        self.capture = capture or default_capture
        self.selection = selection or default_engine
        self.cleanup = cleanup or default_cleanup
        self.tags = TagEditor(self.store)
        self.page_size = page_size or settings.page_size

    def knows(self, name: str) -> bool:
        return name in ALIASES

    async def handle(self, name: str, args: list[str], message: InboundMessage, reply: Reply) -> Result:
        command = ALIASES.get(name)
        if command is None:
            return None
        try:
            if command == "add":
                return self.add(args, message)
            if command == "remove":
                return self.remove(args, message)
            if command == "tag_add":
                return self.tag_add(args, message)
            if command == "tag_remove":
                return self.tag_remove(args, message)
            return await self.select(args, message, reply)
        except CommandUsageError as e:
            return MSG.USAGE_ERROR.format(error=e)

    def add(self, args: list[str], message: InboundMessage) -> str:
        try:
            self.capture.register(message, args)
        except CaptureInProgress as e:
            return e.reply_text
        return MSG.CAPTURE_WAITING

    def remove(self, args: list[str], message: InboundMessage) -> str:
        quote_id, _ = parse_id_option(args)
        if quote_id is None:
            try:
                quote_id = resolve_quoted_id(message, self.store)
            except MalformedReference:
                return MSG.REMOVE_USAGE

        if self.store.get(quote_id) is None:
            return MSG.NO_RESULT
        try:
            self.cleanup.remove_now(quote_id)
        except Exception as e:
            logger.error(f"Database removal of quote {quote_id} failed: {e}")
            return MSG.REMOVE_FAILED.format(error=e)
        logger.info(f"Quote {quote_id} removed by {message.user_id}")
        return MSG.REMOVE_SUCCEED

    def tag_add(self, args: list[str], message: InboundMessage) -> str:
        if not args:
            return MSG.NO_TAG_TO_ADD
        return self._edit_tags(args, message, adding=True)

    def tag_remove(self, args: list[str], message: InboundMessage) -> str:
        if not args:
            return MSG.NO_TAG_TO_REMOVE
        return self._edit_tags(args, message, adding=False)

    def _edit_tags(self, args: list[str], message: InboundMessage, adding: bool) -> str:
        try:
            quote_id = resolve_quoted_id(message, self.store)
        except MalformedReference:
            return MSG.NO_MESSAGE_QUOTED
        try:
            if adding:
                return MSG.TAGS_ADDED.format(count=self.tags.add_tags(quote_id, args))
            return MSG.TAGS_REMOVED.format(count=self.tags.remove_tags(quote_id, args))
        except QuoteNotFound:
            return MSG.NOT_FOUND.format(id=quote_id)

    async def select(self, args: list[str], message: InboundMessage, reply: Reply) -> Result:
        options = parse_select_args(args)

        if options.id is not None:
            quote = self.store.get(options.id)
            if quote is None:
                return MSG.NO_RESULT
            if options.list_:
                return list_line(quote)
            if quote.is_file and not self.storage.is_valid(quote.id):
                await self.cleanup.report_broken(quote.id, reply)
                return None
            return render_quote(quote, self.storage, options.tag)

        scope = None if options.global_ else message.scope
        quotes = self.store.query(scope, options.filters)
        if not quotes:
            return MSG.NO_RESULT

        if options.list_:
            return list_page(quotes, options.page, self.page_size, options.full)

        quote = self.selection.pick(quotes, message.scope)
        if quote.is_file and not self.storage.is_valid(quote.id):
            await self.cleanup.report_broken(quote.id, reply)
            return None
        self.selection.remember(message.scope, quote.id)
        return render_quote(quote, self.storage, options.tag)


command_service = CommandService()
