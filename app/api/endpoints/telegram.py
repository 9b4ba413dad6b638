from fastapi import APIRouter, BackgroundTasks, Request, Header, HTTPException
from app.models.events import InboundMessage, parse_telegram_message
from app.services.auth_service import is_authorized
from app.services.capture_service import capture_service
from app.services.command_service import command_service
from app.services.telegram_service import make_replier
from app.utils.commands import split_command
import os
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


async def dispatch_message(message: InboundMessage):
    """Route one message to a quote command or to the capture state machine."""
    reply = make_replier(message.chat_id)
    try:
        command = split_command(message.text) if message.first_image is None else None
        if command and command_service.knows(command[0]):
            name, args = command
            logger.info(f"Command /{name} from {message.user_id} in {message.scope}")
            result = await command_service.handle(name, args, message, reply)
            if result is not None:
                await reply(result)
        else:
            await capture_service.handle_message(message, reply)
    except Exception as e:
        logger.error(f"Error handling message {message.message_id} in {message.scope}: {e}", exc_info=True)


@router.post("/webhook")
async def telegram_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_telegram_bot_api_secret_token: str = Header(None)
):
    # 1. Verify Secret Token
    expected_secret = os.getenv("TELEGRAM_WEBHOOK_SECRET")
    if expected_secret and x_telegram_bot_api_secret_token != expected_secret:
        raise HTTPException(status_code=401, detail="Unauthorized")

    update = await request.json()
    message = parse_telegram_message(update.get("message") or {})
    if message is None:
        return {"ok": True}

    # 2. Authorization
    if not is_authorized(message.scope):
        logger.info(f"Ignoring update from unauthorized scope: {message.scope}")
        return {"ok": True}

    # 3. Handle after responding; ingestion retries can take a while
    background_tasks.add_task(dispatch_message, message)
    return {"ok": True}
