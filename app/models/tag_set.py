"""Ordered, duplicate-free tag collection stored as a JSON array."""
import json
import logging
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)


class TagSet:
    """Tags attached to a quote. The first tag is the scope it was captured in."""

    def __init__(self, tags: Iterable[str] = ()):
        self._tags: list[str] = []
        for tag in tags:
            tag = str(tag)
            if tag not in self._tags:
                self._tags.append(tag)

    @classmethod
    def for_scope(cls, scope: str, extra: Iterable[str] = ()) -> "TagSet":
        return cls([scope, *extra])

    @classmethod
    def from_json(cls, raw: str | None) -> "TagSet":
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Unreadable tag column: {raw!r}")
            return cls()
        if not isinstance(data, list):
            return cls()
        return cls(data)

    def to_json(self) -> str:
        return json.dumps(self._tags, ensure_ascii=False)

    @property
    def scope(self) -> str | None:
        return self._tags[0] if self._tags else None

    def add(self, tags: Iterable[str]) -> int:
        """Append tags not present yet. Returns how many were added."""
        count = 0
        for tag in tags:
            if tag not in self._tags:
                self._tags.append(tag)
                count += 1
        return count

    def remove(self, tags: Iterable[str]) -> int:
        """Drop every listed tag except the scope, keeping the order of the rest. Returns how many were removed."""
        doomed = set(tags)
        kept = self._tags[:1] + [tag for tag in self._tags[1:] if tag not in doomed]
        count = len(self._tags) - len(kept)
        self._tags = kept
        return count

    def __iter__(self) -> Iterator[str]:
        return iter(self._tags)

    def __len__(self) -> int:
        return len(self._tags)

    def __contains__(self, tag: object) -> bool:
        return tag in self._tags

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TagSet):
            return self._tags == other._tags
        return NotImplemented

    def __repr__(self):
        return f"TagSet({self._tags!r})"

    def __str__(self):
        return self.to_json()
