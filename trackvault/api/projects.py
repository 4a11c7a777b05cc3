"""
Project management and per-project track listing.
"""

from flask import Blueprint, current_app, jsonify, request

from trackvault.database import db
from trackvault.models import Artist, Project, Track
from trackvault.utils import canonical_uuid

projects_bp = Blueprint('projects', __name__)


def _get_project_or_error(project_id):
    canonical_id = canonical_uuid(project_id)
    if not canonical_id:
        return None, (jsonify({'error': 'Project id must be a valid UUID'}), 400)
    project = db.session.get(Project, canonical_id)
    if not project:
        return None, (jsonify({'error': 'Not found'}), 404)
    return project, None


@projects_bp.route('/api/projects', methods=['GET'])
def list_projects():
    """Projects, most recently updated first. Optional ?artist_id= filter."""
    artist_id = (request.args.get('artist_id') or '').strip()
    if artist_id:
        artist_id = canonical_uuid(artist_id)
    if artist_id is None:
        return jsonify({'error': 'artist_id must be a valid UUID'}), 400
    try:
        query = Project.query
        if artist_id:
            query = query.filter_by(artist_id=artist_id)
        projects = query.order_by(Project.updated_at.desc()).all()
        return jsonify([project.to_dict() for project in projects])
    except Exception as e:
        current_app.logger.error(f"Error fetching projects: {e}", exc_info=True)
        return jsonify({'error': 'Failed to fetch projects'}), 500


@projects_bp.route('/api/projects', methods=['POST'])
def create_project():
    data = request.get_json(silent=True) or {}
    name = data.get('name')
    artist_id = data.get('artist_id') or data.get('artistId')
    description = data.get('description')

    if not isinstance(name, str) or not name.strip():
        return jsonify({'error': 'name is required'}), 400
    artist_id = canonical_uuid(artist_id)
    if not artist_id:
        return jsonify({'error': 'artist_id must be a valid UUID'}), 400
    if description is not None and not isinstance(description, str):
        return jsonify({'error': 'description must be a string'}), 400

    try:
        if not db.session.get(Artist, artist_id):
            return jsonify({'error': 'Artist not found'}), 404
        project = Project(artist_id=artist_id, name=name.strip(), description=description)
        db.session.add(project)
        db.session.commit()
        current_app.logger.info(f"Created project {project.id} for artist {artist_id}")
        return jsonify(project.to_dict())
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating project: {e}", exc_info=True)
        return jsonify({'error': 'Failed to create project'}), 500


@projects_bp.route('/api/projects/<project_id>', methods=['GET'])
def get_project(project_id):
    try:
        project, error = _get_project_or_error(project_id)
        if error:
            return error
        return jsonify(project.to_dict())
    except Exception as e:
        current_app.logger.error(f"Error fetching project {project_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to fetch project'}), 500


@projects_bp.route('/api/projects/<project_id>', methods=['PATCH'])
def update_project(project_id):
    data = request.get_json(silent=True) or {}
    try:
        project, error = _get_project_or_error(project_id)
        if error:
            return error

        if isinstance(data.get('name'), str) and data['name'].strip():
            project.name = data['name'].strip()
        if 'description' in data:
            description = data['description']
            if description is not None and not isinstance(description, str):
                return jsonify({'error': 'description must be a string'}), 400
            project.description = description

        db.session.commit()
        return jsonify(project.to_dict())
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating project {project_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to update project'}), 500


@projects_bp.route('/api/projects/<project_id>', methods=['DELETE'])
def delete_project(project_id):
    try:
        project, error = _get_project_or_error(project_id)
        if error:
            return error
        db.session.delete(project)
        db.session.commit()
        current_app.logger.info(f"Deleted project {project_id}")
        return jsonify({'success': True})
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting project {project_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to delete project'}), 500


@projects_bp.route('/api/projects/<project_id>/tracks', methods=['GET'])
def list_project_tracks(project_id):
    """Tracks of one project, most recently updated first."""
    try:
        project, error = _get_project_or_error(project_id)
        if error:
            return error
        tracks = Track.query.filter_by(project_id=project.id).order_by(Track.updated_at.desc()).all()
        return jsonify([track.to_dict() for track in tracks])
    except Exception as e:
        current_app.logger.error(f"Error fetching tracks for project {project_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to fetch tracks'}), 500
