"""
Attachment download with a bounded, fixed-delay retry loop.

Handles:
- Streaming a remote resource to <data_dir>/<id>
- Integrity checks (existence + minimum size) after each attempt
- Up to N retries with a constant delay between them
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

from app.config import settings
from app.services.storage_service import LocalQuoteStorage, storage as default_storage

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class AttachmentFetcher:
    """Downloads attachments for quotes. A failed attempt is reported, never raised."""

    def __init__(
        self,
        storage: Optional[LocalQuoteStorage] = None,
        retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        sleep: Sleep = asyncio.sleep,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.storage = storage or default_storage
        self.retries = settings.download_retries if retries is None else retries
        self.retry_delay = settings.download_retry_delay if retry_delay is None else retry_delay
        self.sleep = sleep
        self.transport = transport
        self.timeout = timeout

    async def fetch(self, url: str, quote_id: int) -> bool:
        """Stream `url` into the quote's file. Returns True if the body was written completely."""
        path = self.storage.path_for(quote_id)
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout, follow_redirects=True) as client:
                async with client.stream("GET", url) as resp:
                    resp.raise_for_status()
                    with open(path, "wb") as handle:
                        async for chunk in resp.aiter_bytes():
                            handle.write(chunk)
            logger.info(f"Quote {quote_id} downloaded")
            return True
        except Exception as e:
            logger.error(f"Download of quote {quote_id} failed: {e}")
            return False

    async def fetch_valid(self, url: str, quote_id: int) -> bool:
        await self.fetch(url, quote_id)
        return self.storage.is_valid(quote_id)

    async def fetch_with_retry(self, url: str, quote_id: int) -> bool:
        """Fetch and validate; on failure retry sequentially. First success stops the loop."""
        if await self.fetch_valid(url, quote_id):
            return True

        logger.warning(f"Quote {quote_id} download from {url} is broken, retrying")
        for attempt in range(self.retries):
            logger.info(f"Download failed, retry {attempt + 1}/{self.retries}")
            await self.sleep(self.retry_delay)
            if await self.fetch_valid(url, quote_id):
                logger.info(f"Quote {quote_id} downloaded on retry {attempt + 1}")
                return True

        logger.info(f"Quote {quote_id}: retry limit reached")
        return False


fetcher = AttachmentFetcher()
