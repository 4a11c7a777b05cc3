"""
Audio uploads.

Two paths exist: a multipart upload through this server, and a signed PUT URL
the browser uploads to directly (followed by POST /api/tracks). Both build the
storage key as ``<projectId>/<epoch-ms>-<name>``; timestamp prefixes already on
the incoming name are dropped so a re-uploaded file never ends up with two.
"""

import os
import time

from flask import Blueprint, current_app, jsonify, request

from trackvault.database import db
from trackvault.models import Project, Track
from trackvault.services.storage import get_storage_service, strip_timestamp_prefixes
from trackvault.utils import canonical_uuid, sanitize_upload_basename

uploads_bp = Blueprint('uploads', __name__)

ALLOWED_TYPES = {
    'audio/mpeg': 'mp3',
    'audio/mp3': 'mp3',
    'audio/wav': 'wav',
    'audio/x-wav': 'wav',
    'audio/mp4': 'm4a',
    'audio/x-m4a': 'm4a',
}
ALLOWED_EXTENSIONS = set(ALLOWED_TYPES.values())
# Browsers sometimes send no type (or a generic one) for m4a files
SIGNED_UPLOAD_EXTRA_TYPES = ('application/octet-stream', '')


def build_upload_key(project_id, filename, *, content_type=None, now_ms=None):
    """
    Storage key for a new upload of ``filename`` into ``project_id``.

    The extension comes from ``content_type`` when it is an allowed audio type,
    otherwise from the filename if that is an audio extension; anything else
    is dropped.
    """
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    name = os.path.basename((filename or '').replace('\\', '/')).strip()
    base, dot, ext = name.rpartition('.')
    if not dot:
        base, ext = name, ''
    base = sanitize_upload_basename(strip_timestamp_prefixes(base)).strip('_') or 'audio'
    ext = ext.lower()
    ext = ALLOWED_TYPES.get((content_type or '').lower()) or (ext if ext in ALLOWED_EXTENSIONS else '')
    suffix = f".{ext}" if ext else ''
    return f"{project_id}/{now_ms}-{base}{suffix}"


def _default_title(filename):
    base = os.path.splitext(os.path.basename(filename or ''))[0].strip()
    return base or 'Untitled'


@uploads_bp.route('/api/uploads', methods=['POST'])
def upload_track():
    """Multipart upload: store the file, then create its track record."""
    file = request.files.get('file')
    project_id = (request.form.get('projectId') or '').strip()
    if not file or not file.filename or not project_id:
        return jsonify({'error': 'file and projectId are required'}), 400
    project_id = canonical_uuid(project_id)
    if not project_id:
        return jsonify({'error': 'projectId must be a valid UUID'}), 400

    mime = (file.mimetype or '').lower()
    if mime not in ALLOWED_TYPES:
        return jsonify({'error': 'Invalid file type. Allowed: mp3, wav, m4a'}), 400

    file.stream.seek(0, os.SEEK_END)
    size = file.stream.tell()
    file.stream.seek(0)
    max_bytes = current_app.config.get('MAX_CONTENT_LENGTH')
    if max_bytes and size > max_bytes:
        return jsonify({'error': f'File too large (max {max_bytes // (1024 * 1024)}MB)'}), 413

    title = (request.form.get('title') or request.form.get('name') or '').strip() or _default_title(file.filename)

    try:
        if not db.session.get(Project, project_id):
            return jsonify({'error': 'Project not found'}), 404
    except Exception as e:
        current_app.logger.error(f"Error loading project {project_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to load project'}), 500

    storage = get_storage_service()
    key = build_upload_key(project_id, file.filename, content_type=mime)
    current_app.logger.info(f"Upload start: project={project_id} filename={file.filename} key={key} "
                            f"size={size} type={mime}")

    try:
        storage.save_fileobj(file.stream, key, content_type=mime)
    except Exception as e:
        current_app.logger.error(f"Upload storage error for {key}: {e}", exc_info=True)
        return jsonify({'error': 'Upload failed'}), 502

    try:
        track = Track(project_id=project_id, title=title, file_path=key)
        db.session.add(track)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Upload DB insert error for {key}: {e}", exc_info=True)
        try:
            storage.delete(key)
        except Exception as cleanup_error:
            current_app.logger.error(f"Could not remove orphaned upload {key}: {cleanup_error}")
        return jsonify({'error': 'Failed to create track'}), 500

    current_app.logger.info(f"Upload success: project={project_id} key={key} track={track.id}")
    return jsonify({'track': track.to_dict()})


@uploads_bp.route('/api/uploads/create', methods=['POST'])
def create_signed_upload():
    """Body {projectId, filename, contentType}; returns {path, signedUrl} for a client PUT."""
    data = request.get_json(silent=True) or {}
    project_id = data.get('projectId')
    filename = data.get('filename')
    content_type = data.get('contentType')

    if not isinstance(project_id, str) or not project_id:
        return jsonify({'error': 'projectId is required'}), 400
    project_id = canonical_uuid(project_id)
    if not project_id:
        return jsonify({'error': 'projectId must be a valid UUID'}), 400
    if not isinstance(filename, str) or not filename.strip():
        return jsonify({'error': 'filename is required'}), 400

    content_type = (content_type.strip() if isinstance(content_type, str) else '') or 'audio/mpeg'
    if content_type.lower() not in ALLOWED_TYPES and content_type.lower() not in SIGNED_UPLOAD_EXTRA_TYPES:
        return jsonify({'error': 'Invalid contentType. Allowed: mp3, wav, m4a'}), 400

    storage = get_storage_service()
    if not storage.supports_signed_urls:
        return jsonify({'error': 'Signed uploads require the S3 storage backend'}), 501

    key = build_upload_key(project_id, filename, content_type=content_type)
    try:
        signed_url = storage.signed_upload_url(key, content_type=content_type)
    except Exception as e:
        current_app.logger.error(f"Could not create signed upload URL for {key}: {e}")
        return jsonify({'error': 'Failed to create upload URL'}), 502

    current_app.logger.info(f"Signed upload created: project={project_id} filename={filename} key={key}")
    return jsonify({'path': key, 'signedUrl': signed_url})
