"""
Artist database model.
"""

import uuid
from datetime import datetime

from trackvault.database import db


class Artist(db.Model):
    """Top-level owner of projects."""

    __tablename__ = 'artists'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    projects = db.relationship('Project', back_populates='artist', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
