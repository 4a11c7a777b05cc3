"""
Track database model.
"""

import uuid
from datetime import datetime

from trackvault.database import db


class Track(db.Model):
    """An audio file stored in object storage plus its annotations."""

    __tablename__ = 'tracks'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    project_id = db.Column(db.String(36), db.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False, default='Untitled')
    # Canonical storage key: "<projectId>/<filename>"
    file_path = db.Column(db.String(1024), nullable=True)
    # Written by old upload code; read-only fallback for file_path
    storage_path = db.Column(db.String(1024), nullable=True)
    bpm = db.Column(db.Float, nullable=True)
    musical_key = db.Column('key', db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = db.relationship('Project', back_populates='tracks')

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'title': self.title,
            'file_path': self.file_path or self.storage_path,
            'bpm': self.bpm,
            'key': self.musical_key,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
