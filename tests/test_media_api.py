"""
End-to-end tests for /api/stream, /api/download and /api/stream/url.
"""

import threading
import uuid
from unittest.mock import patch
from wsgiref.simple_server import WSGIRequestHandler, make_server

import httpx

from conftest import create_track, put_object, storage_transport

WAV_KEY = 'proj-1/1699999999-take1.wav'


class TestReferenceValidation:

    def test_missing_path_and_id(self, client, storage):
        response = client.get('/api/stream')
        assert response.status_code == 400
        assert response.get_json() == {'error': 'path or id query parameter is required'}

    def test_malformed_path_is_distinguished_from_missing(self, client, storage):
        response = client.get('/api/stream?path=onlyfilename')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'path must be object path only (e.g. projectId/filename.ext).'

    def test_undefined_path(self, client, storage):
        assert client.get('/api/stream?path=undefined').status_code == 400

    def test_invalid_track_id(self, client, storage):
        response = client.get('/api/stream?id=not-a-uuid')
        assert response.status_code == 400

    def test_unknown_track_id(self, client, storage):
        response = client.get(f'/api/stream?id={uuid.uuid4()}')
        assert response.status_code == 404
        assert response.get_json() == {'error': 'Track not found'}

    def test_track_with_malformed_stored_path(self, app, client, storage, project):
        track_id = create_track(app, project['project_id'], 'undefined')
        response = client.get(f'/api/stream?id={track_id}')
        assert response.status_code == 400

    def test_track_without_audio(self, app, client, storage, project):
        track_id = create_track(app, project['project_id'], None)
        response = client.get(f'/api/stream?id={track_id}')
        assert response.status_code == 404

    def test_missing_object(self, client, storage):
        response = client.get('/api/stream?path=proj-1/nothing-here.mp3')
        assert response.status_code == 404
        assert response.get_json() == {'error': 'Audio file not found in storage'}
        assert 'no-store' in response.headers['Cache-Control']


class TestDirectStreaming:

    def test_stream_by_path(self, client, storage):
        put_object(storage, WAV_KEY, b'\x01' * 120000)
        response = client.get(f'/api/stream?path={WAV_KEY}')
        assert response.status_code == 200
        assert response.headers['Content-Type'] == 'audio/wav'
        assert response.headers['Content-Length'] == '120000'
        assert response.headers['Accept-Ranges'] == 'bytes'
        assert 'no-store' in response.headers['Cache-Control']
        assert len(response.data) == 120000

    def test_stream_by_public_url(self, client, storage):
        put_object(storage, 'c/f.mp3', b'abc')
        url = 'https://host/storage/v1/object/public/music-files/c/f.mp3?token=abc'
        response = client.get('/api/stream', query_string={'path': url})
        assert response.status_code == 200
        assert response.headers['Content-Type'] == 'audio/mpeg'
        assert response.data == b'abc'

    def test_stale_timestamp_resolves_to_listed_object(self, client, storage):
        put_object(storage, 'proj-1/2-take1.wav', b'\x02' * 64)
        response = client.get(f'/api/stream?path={WAV_KEY}')
        assert response.status_code == 200
        assert response.headers['X-Resolved-Key'] == 'proj-1/2-take1.wav'
        assert response.headers['X-Resolution-Source'] == 'fallback'

    def test_duplicate_timestamp_is_repaired(self, client, storage):
        put_object(storage, 'p1/1771457986955-song.m4a', b'\x03' * 10)
        response = client.get('/api/stream?path=p1/1771660361425-1771457986955-song.m4a')
        assert response.status_code == 200
        assert response.headers['Content-Type'] == 'audio/mp4'

    def test_empty_exact_object_falls_through(self, client, storage):
        put_object(storage, WAV_KEY, b'')
        put_object(storage, 'proj-1/5-take1.wav', b'real')
        response = client.get(f'/api/stream?path={WAV_KEY}')
        assert response.status_code == 200
        assert response.data == b'real'

    def test_stream_by_id(self, app, client, storage, project):
        put_object(storage, WAV_KEY, b'\x04' * 32)
        track_id = create_track(app, project['project_id'], WAV_KEY)
        with patch('trackvault.api.media.schedule_path_writeback') as writeback:
            response = client.get(f'/api/stream?id={track_id}')
        assert response.status_code == 200
        assert response.data == b'\x04' * 32
        writeback.assert_not_called()

    def test_id_wins_over_path(self, app, client, storage, project):
        put_object(storage, WAV_KEY, b'from-id')
        put_object(storage, 'other/x.mp3', b'from-path')
        track_id = create_track(app, project['project_id'], WAV_KEY)
        response = client.get(f'/api/stream?id={track_id}&path=other/x.mp3')
        assert response.data == b'from-id'

    def test_legacy_storage_path_column(self, app, client, storage, project):
        put_object(storage, WAV_KEY, b'legacy')
        track_id = create_track(app, project['project_id'], None, storage_path=f'music-files/{WAV_KEY}')
        with patch('trackvault.api.media.schedule_path_writeback') as writeback:
            response = client.get(f'/api/stream?id={track_id}')
        assert response.status_code == 200
        assert response.data == b'legacy'
        assert writeback.call_args[0][2] == WAV_KEY

    def test_fallback_by_id_schedules_write_back(self, app, client, storage, project):
        put_object(storage, 'proj-1/2-take1.wav', b'\x05' * 8)
        track_id = create_track(app, project['project_id'], WAV_KEY)
        with patch('trackvault.api.media.schedule_path_writeback') as writeback:
            response = client.get(f'/api/stream?id={track_id}')
        assert response.status_code == 200
        writeback.assert_called_once()
        _, called_id, called_key = writeback.call_args[0]
        assert called_id == track_id
        assert called_key == 'proj-1/2-take1.wav'

    def test_write_back_failure_does_not_affect_response(self, app, client, storage, project):
        put_object(storage, 'proj-1/2-take1.wav', b'\x06' * 8)
        track_id = create_track(app, project['project_id'], WAV_KEY)
        with patch('trackvault.api.media.schedule_path_writeback', side_effect=RuntimeError('no threads')):
            response = client.get(f'/api/stream?id={track_id}')
        assert response.status_code == 200
        assert response.data == b'\x06' * 8

    def test_unsafe_backend_key_is_rejected_without_crashing(self, client, storage):
        response = client.get('/api/stream?path=proj-1/../../etc/passwd')
        assert response.status_code in (400, 404)


class TestDownload:

    def test_download_uses_title_and_extension(self, app, client, storage, project):
        put_object(storage, WAV_KEY, b'wav-bytes')
        track_id = create_track(app, project['project_id'], WAV_KEY, title='Final Mix')
        response = client.get(f'/api/download?id={track_id}')
        assert response.status_code == 200
        assert response.headers['Content-Disposition'] == 'attachment; filename="Final_Mix.wav"'
        assert response.headers['Content-Type'] == 'audio/wav'
        assert response.data == b'wav-bytes'

    def test_stream_with_download_flag(self, client, storage):
        put_object(storage, 'c/f.mp3', b'mp3')
        response = client.get('/api/stream?path=c/f.mp3&download=true')
        assert response.headers['Content-Disposition'] == 'attachment; filename="f.mp3"'

    def test_download_flag_false_streams(self, client, storage):
        put_object(storage, 'c/f.mp3', b'mp3')
        response = client.get('/api/stream?path=c/f.mp3&download=0')
        assert 'Content-Disposition' not in response.headers

    def test_requested_filename_is_sanitized(self, client, storage):
        put_object(storage, 'c/f.mp3', b'mp3')
        response = client.get('/api/download', query_string={'path': 'c/f.mp3', 'filename': '../../etc/passwd'})
        disposition = response.headers['Content-Disposition']
        assert '..' not in disposition
        assert '/' not in disposition
        assert disposition.endswith('.mp3"')


class TestSignedUrlModes:

    def test_local_backend_always_delivers_directly(self, app, client, storage):
        app.config['AUDIO_DELIVERY_MODE'] = 'redirect'
        put_object(storage, 'c/f.mp3', b'direct')
        response = client.get('/api/stream?path=c/f.mp3')
        assert response.status_code == 200
        assert response.data == b'direct'

    def test_redirect_mode(self, app, client, signed_storage):
        app.config['AUDIO_DELIVERY_MODE'] = 'redirect'
        app.config['UPSTREAM_HTTP_TRANSPORT'] = storage_transport(signed_storage.backend, 'audio/mpeg')
        put_object(signed_storage, 'c/f.mp3', b'x' * 20)
        response = client.get('/api/stream?path=c/f.mp3')
        assert response.status_code == 302
        assert response.headers['Location'] == 'https://storage.test/music-files/c/f.mp3?token=abc'
        assert response.headers['X-Audio-Probe-Status'] == '200'
        assert 'no-store' in response.headers['Cache-Control']

    def test_redirect_mode_resolves_fallback_before_signing(self, app, client, signed_storage):
        app.config['AUDIO_DELIVERY_MODE'] = 'redirect'
        app.config['UPSTREAM_HTTP_TRANSPORT'] = storage_transport(signed_storage.backend)
        put_object(signed_storage, 'proj-1/2-take1.wav', b'x' * 20)
        response = client.get(f'/api/stream?path={WAV_KEY}')
        assert response.status_code == 302
        assert response.headers['Location'].endswith('proj-1/2-take1.wav?token=abc')

    def test_proxy_mode_range_request(self, app, client, signed_storage):
        app.config['AUDIO_DELIVERY_MODE'] = 'proxy'
        app.config['UPSTREAM_HTTP_TRANSPORT'] = storage_transport(signed_storage.backend)
        content = bytes(i % 251 for i in range(1000))
        put_object(signed_storage, 'c/song.mp3', content)
        response = client.get('/api/stream?path=c/song.mp3', headers={'Range': 'bytes=0-99'})
        assert response.status_code == 206
        assert response.headers['Content-Range'] == 'bytes 0-99/1000'
        assert response.headers['Content-Length'] == '100'
        assert response.headers['Content-Type'] == 'audio/mpeg'
        assert response.data == content[:100]

    def test_proxy_mode_full_request(self, app, client, signed_storage):
        app.config['AUDIO_DELIVERY_MODE'] = 'proxy'
        app.config['UPSTREAM_HTTP_TRANSPORT'] = storage_transport(signed_storage.backend, 'audio/wav')
        put_object(signed_storage, WAV_KEY, b'w' * 300)
        response = client.get(f'/api/stream?path={WAV_KEY}')
        assert response.status_code == 200
        assert response.headers['Content-Length'] == '300'
        assert response.data == b'w' * 300

    def test_proxy_mode_unsatisfiable_range(self, app, client, signed_storage):
        app.config['AUDIO_DELIVERY_MODE'] = 'proxy'
        app.config['UPSTREAM_HTTP_TRANSPORT'] = storage_transport(signed_storage.backend)
        put_object(signed_storage, 'c/song.mp3', b'a' * 1000)
        response = client.get('/api/stream?path=c/song.mp3', headers={'Range': 'bytes=5000-'})
        assert response.status_code == 416
        assert response.headers['Content-Range'] == 'bytes */1000'

    def test_proxy_download(self, app, client, signed_storage):
        app.config['AUDIO_DELIVERY_MODE'] = 'proxy'
        app.config['UPSTREAM_HTTP_TRANSPORT'] = storage_transport(signed_storage.backend, 'audio/mpeg')
        put_object(signed_storage, 'c/song.mp3', b'd' * 50)
        response = client.get('/api/download?path=c/song.mp3')
        assert response.status_code == 200
        assert response.headers['Content-Disposition'] == 'attachment; filename="song.mp3"'
        assert response.data == b'd' * 50

    def test_stream_url(self, client, signed_storage):
        put_object(signed_storage, 'proj-1/2-take1.wav', b'x')
        response = client.get(f'/api/stream/url?path={WAV_KEY}')
        assert response.status_code == 200
        assert response.get_json() == {
            'url': 'https://storage.test/music-files/proj-1/2-take1.wav?token=abc',
            'path': 'proj-1/2-take1.wav',
        }

    def test_stream_url_requires_signed_url_backend(self, client, storage):
        put_object(storage, 'c/f.mp3', b'x')
        response = client.get('/api/stream/url?path=c/f.mp3')
        assert response.status_code == 501


class _SilentHandler(WSGIRequestHandler):

    def log_message(self, format, *args):
        pass


def _serve_one_request(app, path, params):
    """Run a single request through a real WSGI server so headers are encoded on the wire."""
    server = make_server('127.0.0.1', 0, app, handler_class=_SilentHandler)
    thread = threading.Thread(target=server.handle_request, daemon=True)
    thread.start()
    try:
        with httpx.Client(trust_env=False, timeout=10) as http:
            return http.get(f'http://127.0.0.1:{server.server_port}{path}', params=params)
    finally:
        thread.join(timeout=10)
        server.server_close()


class TestNonAsciiKeys:

    def test_stream_over_real_server(self, app, storage):
        put_object(storage, 'p1/日本.mp3', b'0123456789')
        response = _serve_one_request(app, '/api/stream', {'path': 'p1/%E6%97%A5%E6%9C%AC.mp3'})
        assert response.status_code == 200
        assert response.content == b'0123456789'
        assert response.headers['X-Resolved-Key'] == 'p1/%E6%97%A5%E6%9C%AC.mp3'

    def test_download_over_real_server(self, app, storage):
        put_object(storage, 'p1/日本.mp3', b'0123456789')
        response = _serve_one_request(app, '/api/download', {'path': 'p1/日本.mp3'})
        assert response.status_code == 200
        assert response.headers['Content-Disposition'].isascii()

    def test_all_header_values_encode_as_latin1(self, client, storage):
        put_object(storage, 'p1/日本.mp3', b'0123456789')
        response = client.get('/api/stream', query_string={'path': 'p1/日本.mp3', 'download': '1'})
        assert response.status_code == 200
        for _, value in response.headers.items():
            value.encode('latin-1')


class TestTrackIdCase:

    def test_uppercase_id_finds_track(self, app, client, storage, project):
        put_object(storage, WAV_KEY, b'upper')
        track_id = create_track(app, project['project_id'], WAV_KEY)
        response = client.get(f'/api/stream?id={track_id.upper()}')
        assert response.status_code == 200
        assert response.data == b'upper'


class TestUnexpectedErrors:

    def test_stream_failure_is_json_500(self, app, client, storage, project):
        track_id = create_track(app, project['project_id'], WAV_KEY)
        with patch('trackvault.api.media.lookup_track', side_effect=RuntimeError('boom')):
            response = client.get(f'/api/stream?id={track_id}')
        assert response.status_code == 500
        assert response.get_json() == {'error': 'An unexpected error occurred.'}
        assert 'no-store' in response.headers['Cache-Control']

    def test_stream_url_failure_is_json_500(self, client, signed_storage):
        with patch.object(signed_storage, 'resolve', side_effect=RuntimeError('boom')):
            response = client.get(f'/api/stream/url?path={WAV_KEY}')
        assert response.status_code == 500
        assert response.get_json() == {'error': 'An unexpected error occurred.'}
