"""
Utility functions package for the TrackVault application.

- Identifier validation and canonicalization
- Download filename sanitizing
"""

from .security import (
    canonical_uuid,
    sanitize_download_filename,
    sanitize_upload_basename,
)

__all__ = [
    'canonical_uuid',
    'sanitize_download_filename',
    'sanitize_upload_basename',
]
