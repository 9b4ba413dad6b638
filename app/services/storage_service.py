"""Local file storage for ingested attachments: one file per quote, named by id."""
import logging
from pathlib import Path

from app.config import settings

logger = logging.getLogger(__name__)


class LocalQuoteStorage:
    def __init__(self, base_path: Path | str | None = None, min_file_size: int | None = None):
        self.base = Path(base_path) if base_path else settings.data_dir
        self.min_file_size = settings.min_file_size if min_file_size is None else min_file_size

    def ensure_dir(self) -> bool:
        """Create the storage root. Failures are logged, the caller keeps running."""
        try:
            self.base.mkdir(parents=True, exist_ok=True)
            return True
        except OSError as e:
            logger.error(f"Cannot create data directory {self.base}: {e}")
            logger.error("Check file permissions; quote storage is unavailable")
            return False

    def path_for(self, quote_id: int) -> Path:
        return self.base / str(quote_id)

    def uri_for(self, quote_id: int) -> str:
        return self.path_for(quote_id).resolve().as_uri()

    def size(self, quote_id: int) -> int | None:
        try:
            return self.path_for(quote_id).stat().st_size
        except OSError:
            return None

    def is_valid(self, quote_id: int) -> bool:
        """The file exists and is big enough not to be an error page or a truncated download."""
        size = self.size(quote_id)
        if size is None:
            logger.warning(f"Quote file {self.path_for(quote_id)} is missing")
            return False
        return size >= self.min_file_size

    def delete(self, quote_id: int) -> None:
        path = self.path_for(quote_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete quote file {path}: {e}")


storage = LocalQuoteStorage()
