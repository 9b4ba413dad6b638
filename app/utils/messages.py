"""
Centralized user-facing message strings.

Usage:
    from app.utils.messages import MSG

    response = MSG.CAPTURE_SAVED.format(id=12)
"""


class Messages:
    """All user-facing messages."""

    # ==================== CAPTURE ====================
    CAPTURE_WAITING = "📷 Send the image for the new quote (or \"cancel\")."
    CAPTURE_STILL_WAITING = "⏳ A capture is still waiting for your image."
    CAPTURE_IN_PROCESS = "⏳ Your previous image is still being processed."
    CAPTURE_CANCELLED = "Capture cancelled."
    CAPTURE_SAVED = "✅ Quote {id} saved."
    IMAGE_UNAVAILABLE = "❌ Could not read that image, please send it again."

    # ==================== INGEST FAILURES ====================
    DOWNLOAD_FAILED = "❌ The file of quote {id} is broken, removing it."
    DELETE_FINISHED = "🗑️ Quote {id} removed."
    FILE_TOO_LARGE = "❌ The image for quote {id} is too large and was discarded."

    # ==================== LOOKUP ====================
    NO_RESULT = "No matching quote."
    NOT_FOUND = "Quote {id} not found."
    MORE_RESULTS = "… page {page}/{total}, use -p to see more"

    # ==================== REMOVE ====================
    REMOVE_SUCCEED = "🗑️ Quote removed."
    REMOVE_FAILED = "❌ Failed to remove quote: {error}"
    REMOVE_USAGE = "Reply to the quote to remove, or pass its id.\nExample: /quote_remove -i 123"

    # ==================== TAGS ====================
    NO_TAG_TO_ADD = "Give at least one tag to add."
    NO_TAG_TO_REMOVE = "Give at least one tag to remove."
    NO_MESSAGE_QUOTED = "Reply to a quote message to use this command."
    TAGS_ADDED = "🏷️ Added {count} tag(s)."
    TAGS_REMOVED = "🏷️ Removed {count} tag(s)."

    # ==================== GENERAL ====================
    USAGE_ERROR = "⚠️ {error}"


# Singleton instance for easy import
MSG = Messages()
