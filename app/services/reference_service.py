"""Resolve "the quoted record" from a reply to an earlier bot message."""
import re
import logging
from typing import Optional

from app.models.events import InboundMessage
from app.services.errors import MalformedReference
from app.services.quote_store import QuoteStore

logger = logging.getLogger(__name__)

QUOTE_ID_PATTERN = re.compile(r">?(\d+):")


def parse_quote_id(content: str) -> Optional[int]:
    """Read the leading `<id>:` a rendered quote starts with."""
    match = QUOTE_ID_PATTERN.search(content or "")
    if not match:
        return None
    return int(match.group(1))


def resolve_quoted_id(message: InboundMessage, store: QuoteStore) -> int:
    """Quote id referenced by the message's reply, by `<id>:` prefix or by origin message id."""
    if message.quote is None:
        raise MalformedReference("No message quoted")

    quote_id = parse_quote_id(message.quote.content)
    if quote_id is not None:
        return quote_id

    if message.quote.message_id:
        found = store.find_by_origin(message.quote.message_id, message.scope)
        if found is not None:
            return found.id

    logger.info(f"Quoted message {message.quote.message_id} does not reference a quote")
    raise MalformedReference("Quoted message does not reference a quote")
