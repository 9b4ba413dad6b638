"""
Outbound Telegram Bot API calls.

Every call logs and swallows its own failures; a lost reply must never abort
handling of the update that produced it.
"""
import logging
from typing import Optional, Union

import httpx

from app.config import settings
from app.models.events import ImageElement
from app.services.selection_service import QuoteReply

logger = logging.getLogger(__name__)

API_BASE = "https://api.telegram.org"
MAX_TEXT = 4000
MAX_CAPTION = 1000


async def send_telegram_text(chat_id: str | int, text_content: str, token: str, parse_mode: Optional[str] = None):
    """Send a text message to Telegram with error handling."""
    payload = {"chat_id": chat_id, "text": text_content[:MAX_TEXT]}
    if parse_mode:
        payload["parse_mode"] = parse_mode
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(f"{API_BASE}/bot{token}/sendMessage", json=payload, timeout=15.0)
            if resp.status_code != 200:
                logger.warning(f"Telegram sendMessage failed: {resp.status_code} {resp.text}")
    except Exception as e:
        logger.error(f"Failed to send Telegram message: {e}")


async def send_telegram_photo(chat_id: str | int, reply: QuoteReply, token: str):
    """Upload the quote's local image with its `id:[tags]` caption."""
    try:
        async with httpx.AsyncClient() as client:
            with open(reply.image_path, "rb") as image_file:
                files = {"photo": (f"{reply.quote_id}.jpg", image_file, "application/octet-stream")}
                data = {"chat_id": chat_id, "caption": reply.text[:MAX_CAPTION]}
                resp = await client.post(
                    f"{API_BASE}/bot{token}/sendPhoto",
                    data=data,
                    files=files,
                    timeout=30.0,
                )
            if resp.status_code != 200:
                logger.warning(f"Telegram sendPhoto failed: {resp.status_code} {resp.text}")
    except Exception as e:
        logger.error(f"Failed to send quote {reply.quote_id} photo: {e}")


async def get_file_url(file_id: str, token: Optional[str] = None) -> Optional[str]:
    """Resolve a Telegram file_id to a download URL via getFile."""
    token = token or settings.telegram_bot_token
    if not token:
        logger.warning("TELEGRAM_BOT_TOKEN is not set, cannot resolve files")
        return None
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(f"{API_BASE}/bot{token}/getFile", params={"file_id": file_id}, timeout=15.0)
            file_data = resp.json()
    except Exception as e:
        logger.error(f"getFile for {file_id} failed: {e}")
        return None

    if not file_data.get("ok"):
        logger.warning(f"getFile for {file_id} rejected: {file_data.get('description')}")
        return None
    file_path = file_data["result"]["file_path"]
    return f"{API_BASE}/file/bot{token}/{file_path}"


async def resolve_image_src(image: ImageElement) -> Optional[str]:
    if image.src:
        return image.src
    return await get_file_url(image.file_id)


def make_replier(chat_id: str | int, token: Optional[str] = None):
    """Reply callable bound to one chat: text goes out as a message, quotes with files as photos."""
    token = token or settings.telegram_bot_token

    async def reply(content: Union[str, QuoteReply]):
        if not token:
            logger.warning(f"TELEGRAM_BOT_TOKEN is not set, dropping reply to {chat_id}")
            return
        if isinstance(content, QuoteReply):
            if content.image_path is not None:
                await send_telegram_photo(chat_id, content, token)
            else:
                await send_telegram_text(chat_id, content.text, token)
        else:
            await send_telegram_text(chat_id, content, token)

    return reply
