import os

# Comma-separated list of chat/user ids the bot serves
# Example: ALLOWED_SCOPES=-1001234567890,87654321
ALLOWED_SCOPES = os.getenv("ALLOWED_SCOPES", "").split(",")


def is_authorized(scope: str) -> bool:
    """Checks if a chat (or private user) scope is allowed to use the bot."""
    if not ALLOWED_SCOPES or ALLOWED_SCOPES == [""]:
        # If not set, serve every chat
        return True
    return str(scope) in [s.strip() for s in ALLOWED_SCOPES]
