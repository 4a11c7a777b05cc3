"""
Read-side adapter between track rows and the media delivery path.

Older rows may carry the storage reference in ``storage_path`` instead of
``file_path``; that translation happens here and nowhere else.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from trackvault.database import db
from trackvault.errors import UpstreamError
from trackvault.models import Track

logger = logging.getLogger(__name__)


@dataclass
class TrackRecord:
    id: str
    project_id: str
    title: str
    reference: Optional[str]

    @classmethod
    def from_model(cls, track: Track) -> 'TrackRecord':
        reference = (track.file_path or '').strip() or (track.storage_path or '').strip() or None
        title = (track.title or '').strip() or 'Untitled'
        return cls(id=track.id, project_id=track.project_id, title=title, reference=reference)


def lookup_track(track_id: str) -> Optional[TrackRecord]:
    """Load a track's stored reference and title, or None if it doesn't exist."""
    try:
        track = db.session.get(Track, track_id)
    except SQLAlchemyError as e:
        logger.error(f"Track lookup failed for {track_id}: {e}")
        db.session.rollback()
        raise UpstreamError('Failed to load track record') from e
    if track is None:
        return None
    return TrackRecord.from_model(track)
