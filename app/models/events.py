"""
Typed view of inbound chat messages.

The core only sees these classes; `parse_telegram_message` is the single
place that knows the Telegram Bot API payload layout.
"""
from dataclasses import dataclass, field
from typing import Optional, Union

IMAGE_MIME_PREFIX = "image/"


@dataclass
class TextElement:
    text: str


@dataclass
class ImageElement:
    file_id: str
    src: Optional[str] = None  # Download URL, resolved lazily


@dataclass
class QuoteElement:
    message_id: str
    content: str = ""


Element = Union[TextElement, ImageElement]


@dataclass
class InboundMessage:
    message_id: str
    chat_id: str
    user_id: str
    is_private: bool = False
    elements: list[Element] = field(default_factory=list)
    quote: Optional[QuoteElement] = None

    @property
    def scope(self) -> str:
        """Chat id in groups, user id in private chats."""
        return self.user_id if self.is_private else self.chat_id

    @property
    def text(self) -> str:
        return " ".join(e.text for e in self.elements if isinstance(e, TextElement)).strip()

    @property
    def first_image(self) -> Optional[ImageElement]:
        for element in self.elements:
            if isinstance(element, ImageElement):
                return element
        return None


def _image_from(message: dict) -> Optional[ImageElement]:
    photos = message.get("photo") or []
    if photos:
        # Telegram lists sizes smallest first
        largest = max(photos, key=lambda p: (p.get("file_size") or 0, p.get("width", 0) * p.get("height", 0)))
        return ImageElement(file_id=largest["file_id"])
    document = message.get("document") or {}
    if document.get("mime_type", "").startswith(IMAGE_MIME_PREFIX):
        return ImageElement(file_id=document["file_id"])
    return None


def _quote_from(reply: dict) -> QuoteElement:
    return QuoteElement(
        message_id=str(reply.get("message_id", "")),
        content=reply.get("text") or reply.get("caption") or "",
    )


def parse_telegram_message(message: dict) -> Optional[InboundMessage]:
    """Build an InboundMessage from a Bot API `message` object, or None if it has no sender."""
    chat = message.get("chat", {})
    sender = message.get("from", {})
    if not chat.get("id") or not sender.get("id"):
        return None

    elements: list[Element] = []
    image = _image_from(message)
    if image:
        elements.append(image)
    body = message.get("text") or message.get("caption")
    if body:
        elements.append(TextElement(body))

    reply = message.get("reply_to_message")
    return InboundMessage(
        message_id=str(message.get("message_id", "")),
        chat_id=str(chat["id"]),
        user_id=str(sender["id"]),
        is_private=chat.get("type") == "private",
        elements=elements,
        quote=_quote_from(reply) if reply else None,
    )
