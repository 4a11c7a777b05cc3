"""
Audio streaming and download endpoints.

A request names its audio either by ``path`` (any historical reference shape)
or by track ``id``. The reference is normalized, expanded into candidate keys,
resolved against storage and delivered according to AUDIO_DELIVERY_MODE.
"""

import httpx
from flask import Blueprint, current_app, jsonify, request

from trackvault.errors import (
    InputError,
    InternalError,
    MediaError,
    NotFoundError,
    UnsupportedError,
    UpstreamError,
)
from trackvault.services.delivery import (
    default_download_name,
    direct_response,
    download_response,
    proxy_response,
    redirect_response,
)
from trackvault.services.records import lookup_track
from trackvault.services.storage import content_type_for, get_storage_service
from trackvault.services.writeback import schedule_path_writeback
from trackvault.utils import canonical_uuid, sanitize_download_filename

media_bp = Blueprint('media', __name__)

TRUTHY_VALUES = ('1', 'true', 'yes', 'on')
MALFORMED_PATH_MESSAGE = 'path must be object path only (e.g. projectId/filename.ext).'


def _is_truthy(value) -> bool:
    return str(value or '').strip().lower() in TRUTHY_VALUES


def _http_client() -> httpx.Client:
    return httpx.Client(
        timeout=current_app.config.get('UPSTREAM_TIMEOUT_SECONDS', 30),
        transport=current_app.config.get('UPSTREAM_HTTP_TRANSPORT'),
    )


def _delivery_mode(storage) -> str:
    mode = current_app.config.get('AUDIO_DELIVERY_MODE', 'direct')
    if mode != 'direct' and not storage.supports_signed_urls:
        return 'direct'
    return mode


def resolve_request_reference(storage):
    """
    Turn the ``id``/``path`` query parameters into a canonical key.

    Returns (key, TrackRecord or None). Raises InputError before any storage
    access when the reference is missing or malformed.
    """
    track_id = (request.args.get('id') or '').strip()
    raw_path = (request.args.get('path') or '').strip()

    if track_id:
        track_id = canonical_uuid(track_id)
        if not track_id:
            raise InputError('id must be a valid track UUID.')
        record = lookup_track(track_id)
        if record is None:
            raise NotFoundError('Track not found')
        if not record.reference:
            raise NotFoundError('Track has no audio file')
        key = storage.normalize(record.reference)
        if not key:
            current_app.logger.warning(f"Track {track_id} has a malformed stored path: {record.reference!r}")
            raise InputError('Stored track path must be object path only (e.g. projectId/filename.ext).')
        return key, record

    if not raw_path:
        raise InputError('path or id query parameter is required')
    key = storage.normalize(raw_path)
    if not key:
        raise InputError(MALFORMED_PATH_MESSAGE)
    return key, None


def _maybe_write_back(record, resolved):
    if record is None or resolved.key == record.reference:
        return
    try:
        schedule_path_writeback(current_app._get_current_object(), record.id, resolved.key)
    except Exception as e:
        current_app.logger.warning(f"Could not schedule write-back for track {record.id}: {e}")


def _signed_url(storage, key, **kwargs):
    try:
        return storage.signed_url(key, **kwargs)
    except NotImplementedError as e:
        raise UnsupportedError('Signed URLs are not supported by the configured storage backend') from e
    except Exception as e:
        current_app.logger.error(f"Could not create signed URL for '{key}': {e}")
        raise UpstreamError('Could not create signed URL') from e


def deliver_audio(download: bool):
    storage = get_storage_service()
    key, record = resolve_request_reference(storage)
    mode = _delivery_mode(storage)

    resolved = storage.resolve(key, fetch_body=(mode == 'direct'))
    if resolved is None:
        current_app.logger.info(f"Audio not found for '{key}'")
        raise NotFoundError('Audio file not found in storage')
    _maybe_write_back(record, resolved)

    if download:
        requested_name = (request.args.get('filename') or '').strip()
        download_name = sanitize_download_filename(
            requested_name or default_download_name(resolved, record.title if record else None)
        )
        if mode == 'direct':
            return download_response(resolved, download_name)
        signed_url = _signed_url(storage, resolved.key)
        return proxy_response(resolved, signed_url, _http_client(), download_name=download_name)

    if mode == 'direct':
        return direct_response(resolved)

    signed_url = _signed_url(storage, resolved.key, mime_type=content_type_for(resolved.key))
    if mode == 'redirect':
        with _http_client() as client:
            return redirect_response(resolved, signed_url, client)
    return proxy_response(resolved, signed_url, _http_client(), range_header=request.headers.get('Range'))


# --- Routes ---

@media_bp.route('/api/stream', methods=['GET'])
def stream_audio():
    """Play (default) or download (``download=1``) a track's audio."""
    try:
        return deliver_audio(download=_is_truthy(request.args.get('download')))
    except MediaError:
        raise
    except Exception as e:
        raise InternalError('An unexpected error occurred.') from e


@media_bp.route('/api/download', methods=['GET'])
def download_audio():
    try:
        return deliver_audio(download=True)
    except MediaError:
        raise
    except Exception as e:
        raise InternalError('An unexpected error occurred.') from e


@media_bp.route('/api/stream/url', methods=['GET'])
def get_stream_url():
    """Return a short-lived signed URL for clients that load audio directly."""
    try:
        storage = get_storage_service()
        key, record = resolve_request_reference(storage)
        if not storage.supports_signed_urls:
            raise UnsupportedError('Signed URLs are not supported by the configured storage backend')
        resolved = storage.resolve(key, fetch_body=False)
        if resolved is None:
            raise NotFoundError('Audio file not found in storage')
        _maybe_write_back(record, resolved)
        url = _signed_url(storage, resolved.key, mime_type=content_type_for(resolved.key))
        return jsonify({'url': url, 'path': resolved.key})
    except MediaError:
        raise
    except Exception as e:
        raise InternalError('An unexpected error occurred.') from e
