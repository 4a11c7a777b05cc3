"""
Background write-back of corrected storage keys.

When a stream or download resolves through a fallback candidate, the track row
is updated to point at the key that actually worked. This runs on a detached
thread with its own app context; the response never waits for it and never
sees its errors.
"""

import logging
import threading

from trackvault.database import db
from trackvault.models import Track

logger = logging.getLogger(__name__)


def persist_corrected_path(track_id, resolved_key):
    """Point the track at ``resolved_key``. Returns True when a row changed."""
    track = db.session.get(Track, track_id)
    if track is None:
        logger.warning(f"Write-back skipped, track {track_id} no longer exists")
        return False
    if track.file_path == resolved_key:
        return False
    previous = track.file_path or track.storage_path
    track.file_path = resolved_key
    db.session.commit()
    logger.info(f"Track {track_id} file_path corrected: '{previous}' -> '{resolved_key}'")
    return True


def _run_writeback(app, track_id, resolved_key):
    with app.app_context():
        try:
            persist_corrected_path(track_id, resolved_key)
        except Exception as e:
            db.session.rollback()
            logger.warning(f"Write-back of '{resolved_key}' for track {track_id} failed: {e}")
        finally:
            db.session.remove()


def schedule_path_writeback(app, track_id, resolved_key):
    """Start the write-back thread and return it without waiting."""
    thread = threading.Thread(
        target=_run_writeback,
        args=(app, track_id, resolved_key),
        daemon=True,
        name=f"PathWriteback-{track_id}",
    )
    thread.start()
    return thread
