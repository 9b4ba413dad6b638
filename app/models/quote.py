from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone

Base = declarative_base()

# Content values starting with this prefix (or equal to the marker) mean the
# payload lives in <data_dir>/<id> rather than in the column itself.
REMOTE_PREFIX = "http"
FILE_MARKER = "img"


class Quote(Base):
    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    content = Column(String, nullable=False)  # Remote URL, "img" marker or plain text
    time = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    origin_message_id = Column(String, index=True)
    tags = Column(Text, nullable=False, default="[]")  # JSON array, tags[0] is the scope
    group = Column(String, index=True)

    @property
    def is_file(self) -> bool:
        """True when the payload is the local file named by the id."""
        content = self.content or ""
        return content.startswith(REMOTE_PREFIX) or content == FILE_MARKER

    def __repr__(self):
        return f"<Quote id={self.id} group={self.group} tags={self.tags}>"
