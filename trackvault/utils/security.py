"""
Security utilities for identifiers and user-supplied filenames.
"""

import re
import uuid
from typing import Optional

ALLOWED_DOWNLOAD_EXTENSIONS = ('.mp3', '.wav', '.m4a')
MAX_FILENAME_LENGTH = 200

_UNSAFE_CHARS_RE = re.compile(r'[^A-Za-z0-9._-]')


def canonical_uuid(value) -> Optional[str]:
    """
    Lowercase form of an 8-4-4-4-12 hex UUID string, or None.

    Primary keys are stored lowercase, so ids from requests go through this
    before any lookup.
    """
    if not isinstance(value, str):
        return None
    value = value.strip().lower()
    try:
        if str(uuid.UUID(value)) == value:
            return value
    except ValueError:
        pass
    return None


def sanitize_upload_basename(name: str) -> str:
    """Filename component safe for storage keys; may be empty."""
    return _UNSAFE_CHARS_RE.sub('_', name or '')[:MAX_FILENAME_LENGTH]


def sanitize_download_filename(name: str, default: str = 'audio') -> str:
    """
    Filename safe for a Content-Disposition header.

    Characters outside [A-Za-z0-9._-] become '_', runs of dots collapse so no
    '..' survives, leading dots are dropped, and the result always ends in
    .mp3, .wav or .m4a within MAX_FILENAME_LENGTH characters.
    """
    safe = _UNSAFE_CHARS_RE.sub('_', name or '')
    safe = re.sub(r'\.{2,}', '_', safe).lstrip('.')
    if not safe.strip('_'):
        safe = default

    if safe.lower().endswith(ALLOWED_DOWNLOAD_EXTENSIONS):
        stem, ext = safe[:-4], safe[-4:]
    else:
        stem, ext = safe, '.mp3'
    return stem[:MAX_FILENAME_LENGTH - len(ext)].rstrip('.') + ext
