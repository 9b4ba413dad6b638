"""
Selection engine: paginated listings and anti-repetition random picks.
"""
import math
import random
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from app.config import settings
from app.models.quote import Quote
from app.services.recency_cache import RecencyCache
from app.services.storage_service import LocalQuoteStorage
from app.utils.messages import MSG

logger = logging.getLogger(__name__)

MAX_DRAWS = 10


@dataclass
class QuoteReply:
    """A rendered quote: `id:[tags]` text plus the local image, if the payload is a file."""
    quote_id: int
    text: str
    image_path: Optional[Path] = None

    @property
    def markup(self) -> str:
        if self.image_path is None:
            return self.text
        return f'{self.text}<img src="{self.image_path.resolve().as_uri()}">'

    def __str__(self):
        return self.markup


def render_quote(quote: Quote, storage: LocalQuoteStorage, with_tags: bool = False) -> QuoteReply:
    text = f"{quote.id}:"
    if with_tags:
        text += quote.tags
    if quote.is_file:
        return QuoteReply(quote.id, text, storage.path_for(quote.id))
    return QuoteReply(quote.id, text + quote.content)


def list_line(quote: Quote) -> str:
    return f"{quote.id}:{quote.tags}"


def list_page(quotes: Sequence[Quote], page: Optional[int], page_size: int, show_all: bool = False) -> str:
    """Render one page of `id:tags` lines; pages past the end clamp to the last one."""
    count = len(quotes)
    if count == 0:
        return ""
    total = math.ceil(count / page_size)
    if not page or page < 1:
        page = 1
    page = min(page, total)

    start = (page - 1) * page_size
    end = count if show_all else min(page * page_size, count)
    result = "\n".join(list_line(q) for q in quotes[start:end])
    if end < count:
        result += "\n" + MSG.MORE_RESULTS.format(page=page, total=total)
    return result


class SelectionEngine:
    """Random picks that avoid quotes recently shown in the same scope.

    `recency_cache` is optional; without it every first draw is accepted.
    """

    def __init__(
        self,
        recency_cache: Optional[RecencyCache] = None,
        less_repetition: Optional[int] = None,
        ttl: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        self.recency_cache = recency_cache
        self.less_repetition = settings.less_repetition if less_repetition is None else less_repetition
        self.ttl = settings.recency_ttl_seconds if ttl is None else ttl
        self.rng = rng or random.Random()

    def pick(self, quotes: Sequence[Quote], scope: str) -> Quote:
        if not quotes:
            raise ValueError("Cannot pick from an empty candidate list")
        chosen = quotes[0]
        for _ in range(MAX_DRAWS):
            chosen = self.rng.choice(quotes)
            if self.recency_cache is None or not self.recency_cache.was_recent(scope, chosen.id):
                break
            # Recently shown: keep it with probability (100 - less_repetition) / 100
            if self.rng.random() * 100 > self.less_repetition:
                break
        return chosen

    def remember(self, scope: str, quote_id: int) -> None:
        if self.recency_cache is not None:
            self.recency_cache.remember(scope, quote_id, self.ttl)


selection_engine = SelectionEngine(RecencyCache() if settings.recency_cache_enabled else None)
