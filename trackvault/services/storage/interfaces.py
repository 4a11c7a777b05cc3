"""Storage interfaces and shared dataclasses for object storage backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class StoredObject:
    """Result of storing an object."""

    key: str
    size: Optional[int] = None
    content_type: Optional[str] = None
    etag: Optional[str] = None


@dataclass
class ObjectStat:
    """Storage object metadata."""

    size: Optional[int] = None
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    content_type: Optional[str] = None


@dataclass
class ResolvedObject:
    """The first candidate key that held a non-empty object.

    ``content`` is only populated when the body was fetched server-side; signed
    URL delivery resolves on metadata alone.
    """

    key: str
    size: int
    content_type: Optional[str] = None
    content: Optional[bytes] = None
    candidates: List[str] = field(default_factory=list)

    @property
    def candidate_index(self) -> int:
        try:
            return self.candidates.index(self.key)
        except ValueError:
            return 0
