"""
Artist management.
"""

from flask import Blueprint, current_app, jsonify, request

from trackvault.database import db
from trackvault.models import Artist
from trackvault.utils import canonical_uuid

artists_bp = Blueprint('artists', __name__)


@artists_bp.route('/api/artists', methods=['GET'])
def list_artists():
    """All artists, newest first."""
    try:
        artists = Artist.query.order_by(Artist.created_at.desc()).all()
        return jsonify([artist.to_dict() for artist in artists])
    except Exception as e:
        current_app.logger.error(f"Error fetching artists: {e}", exc_info=True)
        return jsonify({'error': 'Failed to fetch artists'}), 500


@artists_bp.route('/api/artists', methods=['POST'])
def create_artist():
    data = request.get_json(silent=True) or {}
    name = data.get('name')
    if not isinstance(name, str) or not name.strip():
        return jsonify({'error': 'name is required'}), 400

    try:
        artist = Artist(name=name.strip())
        db.session.add(artist)
        db.session.commit()
        current_app.logger.info(f"Created artist {artist.id}")
        return jsonify(artist.to_dict())
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating artist: {e}", exc_info=True)
        return jsonify({'error': 'Failed to create artist'}), 500


@artists_bp.route('/api/artists', methods=['PATCH'])
def update_artist():
    data = request.get_json(silent=True) or {}
    artist_id = data.get('id')
    name = data.get('name')
    if not isinstance(artist_id, str) or not isinstance(name, str) or not name.strip():
        return jsonify({'error': 'id and name are required'}), 400
    artist_id = canonical_uuid(artist_id)
    if not artist_id:
        return jsonify({'error': 'id must be a valid UUID'}), 400

    try:
        artist = db.session.get(Artist, artist_id)
        if not artist:
            return jsonify({'error': 'Artist not found'}), 404
        artist.name = name.strip()
        db.session.commit()
        return jsonify(artist.to_dict())
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating artist {artist_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to update artist'}), 500


@artists_bp.route('/api/artists', methods=['DELETE'])
def delete_artist():
    """Delete an artist by ?id=...; its projects and tracks go with it."""
    artist_id = (request.args.get('id') or '').strip()
    if not artist_id:
        return jsonify({'error': 'id query param is required'}), 400
    artist_id = canonical_uuid(artist_id)
    if not artist_id:
        return jsonify({'error': 'id must be a valid UUID'}), 400

    try:
        artist = db.session.get(Artist, artist_id)
        if not artist:
            return jsonify({'error': 'Artist not found'}), 404
        db.session.delete(artist)
        db.session.commit()
        current_app.logger.info(f"Deleted artist {artist_id}")
        return jsonify({'success': True})
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting artist {artist_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to delete artist'}), 500
