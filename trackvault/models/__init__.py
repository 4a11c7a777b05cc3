"""
Database models package for the TrackVault application.

- Artist: owner of projects
- Project: container of tracks; its id prefixes every storage key
- Track: one stored audio file plus BPM/key/notes annotations
"""

# Import database instance
from trackvault.database import db

from .artist import Artist
from .project import Project
from .track import Track

__all__ = [
    'db',
    'Artist',
    'Project',
    'Track',
]
