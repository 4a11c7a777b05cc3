"""
Track records: registration after upload, annotation (BPM/key/notes) and deletion.
"""

from flask import Blueprint, current_app, jsonify, request

from trackvault.database import db
from trackvault.models import Project, Track
from trackvault.services.storage import get_storage_service
from trackvault.utils import canonical_uuid

tracks_bp = Blueprint('tracks', __name__)


def _first_title(*values):
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return 'Untitled'


@tracks_bp.route('/api/tracks', methods=['POST'])
def create_track():
    """Register a track for an object the client already uploaded."""
    data = request.get_json(silent=True) or {}
    project_id = data.get('projectId') or data.get('project_id')
    file_path = data.get('file_path')

    if not isinstance(project_id, str) or not project_id:
        return jsonify({'error': 'projectId is required'}), 400
    project_id = canonical_uuid(project_id)
    if not project_id:
        return jsonify({'error': 'projectId must be a valid UUID'}), 400
    if not isinstance(file_path, str) or not file_path.strip():
        return jsonify({'error': 'file_path is required'}), 400

    key = get_storage_service().normalize(file_path)
    if not key:
        return jsonify({'error': 'file_path must be object path only (e.g. projectId/filename.ext).'}), 400

    try:
        if not db.session.get(Project, project_id):
            return jsonify({'error': 'Project not found'}), 404
        track = Track(project_id=project_id, title=_first_title(data.get('name'), data.get('title')), file_path=key)
        db.session.add(track)
        db.session.commit()
        current_app.logger.info(f"Registered track {track.id} at '{key}'")
        return jsonify({'track': track.to_dict()})
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating track: {e}", exc_info=True)
        return jsonify({'error': 'Failed to create track'}), 500


@tracks_bp.route('/api/tracks', methods=['PATCH'])
def update_track():
    """Partial update of bpm, key, notes and name; wrongly typed fields are ignored."""
    data = request.get_json(silent=True) or {}
    track_id = data.get('id')
    if not track_id:
        return jsonify({'error': 'id is required'}), 400
    track_id = canonical_uuid(track_id)
    if not track_id:
        return jsonify({'error': 'id must be a valid UUID'}), 400

    try:
        track = db.session.get(Track, track_id)
        if not track:
            return jsonify({'error': 'Track not found'}), 404

        bpm = data.get('bpm')
        if isinstance(bpm, (int, float)) and not isinstance(bpm, bool):
            track.bpm = bpm
        if isinstance(data.get('key'), str):
            track.musical_key = data['key']
        if isinstance(data.get('notes'), str):
            track.notes = data['notes']
        if isinstance(data.get('name'), str) and data['name'].strip():
            track.title = data['name'].strip()

        db.session.commit()
        return jsonify(track.to_dict())
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating track {track_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to update track'}), 500


@tracks_bp.route('/api/tracks', methods=['DELETE'])
def delete_track():
    """Delete a track by ?id=...; its stored object is removed first, best-effort."""
    track_id = (request.args.get('id') or '').strip()
    if not track_id:
        return jsonify({'error': 'id is required'}), 400
    track_id = canonical_uuid(track_id)
    if not track_id:
        return jsonify({'error': 'id must be a valid UUID'}), 400

    try:
        track = db.session.get(Track, track_id)
        if not track:
            return jsonify({'error': 'Track not found'}), 404

        storage = get_storage_service()
        key = storage.normalize(track.file_path or track.storage_path)
        if key:
            try:
                storage.delete(key)
                current_app.logger.info(f"Deleted storage object: {key}")
            except Exception as e:
                current_app.logger.error(f"Error deleting storage object {key}: {e}")

        db.session.delete(track)
        db.session.commit()
        return jsonify({'success': True})
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting track {track_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to delete track'}), 500
