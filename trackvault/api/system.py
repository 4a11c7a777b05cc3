"""
Health check and diagnostics.
"""

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import text

from trackvault.config import app_config
from trackvault.config.version import get_version
from trackvault.database import db
from trackvault.services.storage import get_storage_service

system_bp = Blueprint('system', __name__)


@system_bp.route('/api/health', methods=['GET'])
def health():
    """Does the database answer?"""
    try:
        db.session.execute(text('SELECT 1'))
        return jsonify({'ok': True, 'error': None, 'version': get_version()})
    except Exception as e:
        current_app.logger.error(f"Health check failed: {e}")
        db.session.rollback()
        return jsonify({'ok': False, 'error': str(e), 'version': get_version()}), 503


@system_bp.route('/api/debug/storage', methods=['GET'])
def debug_storage():
    """List the objects stored for a project."""
    project_id = (request.args.get('projectId') or '').strip()
    if not project_id:
        return jsonify({'error': 'projectId is required'}), 400

    current_app.logger.info(f"[debug/storage] list objects start: {project_id}")
    try:
        names = get_storage_service().list_names(project_id)
    except Exception as e:
        current_app.logger.error(f"[debug/storage] list error: {e}")
        return jsonify({'error': 'Failed to list storage objects'}), 502

    current_app.logger.info(f"[debug/storage] list objects success: {project_id} count={len(names)}")
    return jsonify({'projectId': project_id, 'objects': [{'name': name} for name in names]})


@system_bp.route('/api/debug/env', methods=['GET'])
def debug_env():
    """Non-secret configuration, to check which storage this instance talks to."""
    storage = get_storage_service()
    return jsonify({
        'storageBackend': storage.settings.backend,
        'bucket': storage.bucket,
        's3EndpointUrl': app_config.S3_ENDPOINT_URL,
        'deliveryMode': current_app.config.get('AUDIO_DELIVERY_MODE'),
        'signedUrls': storage.supports_signed_urls,
        'hasS3Credentials': bool(app_config.S3_ACCESS_KEY_ID and app_config.S3_SECRET_ACCESS_KEY),
    })
