"""
Shared test setup.

The Flask app is built at import time from environment variables, so the
database and storage locations are pointed at a temporary directory before
anything imports trackvault.app.
"""

import os
import sys
import tempfile

import httpx
import pytest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

_TEST_DIR = tempfile.mkdtemp(prefix='trackvault_test_')
os.environ['SQLALCHEMY_DATABASE_URI'] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ['UPLOAD_FOLDER'] = os.path.join(_TEST_DIR, 'uploads')
os.environ['FILE_STORAGE_BACKEND'] = 'local'
os.environ['STORAGE_BUCKET'] = 'music-files'
os.environ['AUDIO_DELIVERY_MODE'] = 'direct'
os.environ['LOG_LEVEL'] = 'WARNING'

from trackvault.app import app as flask_app  # noqa: E402
from trackvault.database import db  # noqa: E402
from trackvault.models import Artist, Project, Track  # noqa: E402
from trackvault.services.storage import StorageService, set_storage_service  # noqa: E402
from trackvault.services.storage.factory import StorageSettings  # noqa: E402
from trackvault.services.storage.local import LocalStorageBackend  # noqa: E402


class SignedUrlBackend(LocalStorageBackend):
    """Local files plus fake signed URLs served by :func:`storage_transport`."""

    supports_signed_urls = True
    base_url = 'https://storage.test/music-files/'

    def presign_get_url(self, key, expires_seconds=3600, response_content_type=None):
        return f"{self.base_url}{key}?token=abc"

    def presign_put_url(self, key, expires_seconds=3600, content_type=None):
        return f"{self.base_url}upload/{key}?token=put"


def storage_transport(backend, content_type='application/octet-stream'):
    """httpx transport answering GET/HEAD for SignedUrlBackend URLs, honoring Range."""

    def handler(request):
        key = request.url.path.split('/music-files/', 1)[-1]
        try:
            content, _ = backend.get(key)
        except (FileNotFoundError, ValueError):
            return httpx.Response(404, json={'error': 'not_found'})

        total = len(content)
        headers = {'content-type': content_type}
        if request.method == 'HEAD':
            return httpx.Response(200, headers={**headers, 'content-length': str(total)})

        range_header = request.headers.get('range')
        if range_header and range_header.startswith('bytes='):
            start_s, _, end_s = range_header[len('bytes='):].partition('-')
            start = int(start_s)
            end = int(end_s) if end_s else total - 1
            if start >= total:
                return httpx.Response(416, headers={'content-range': f'bytes */{total}'})
            end = min(end, total - 1)
            body = content[start:end + 1]
            headers.update({
                'content-range': f'bytes {start}-{end}/{total}',
                'content-length': str(len(body)),
            })
            return httpx.Response(206, headers=headers, content=body)

        headers['content-length'] = str(total)
        return httpx.Response(200, headers=headers, content=content)

    return httpx.MockTransport(handler)


@pytest.fixture
def app():
    flask_app.config['AUDIO_DELIVERY_MODE'] = 'direct'
    flask_app.config['UPSTREAM_HTTP_TRANSPORT'] = None
    yield flask_app
    flask_app.config['AUDIO_DELIVERY_MODE'] = 'direct'
    flask_app.config['UPSTREAM_HTTP_TRANSPORT'] = None
    with flask_app.app_context():
        Track.query.delete()
        Project.query.delete()
        Artist.query.delete()
        db.session.commit()


@pytest.fixture
def client(app):
    return app.test_client()


def _service_for(backend, root):
    settings = StorageSettings(backend='local', local_root=str(root), bucket='music-files',
                               presign_ttl_seconds=3600)
    return StorageService(settings=settings, backend=backend)


@pytest.fixture
def storage(tmp_path):
    """Local storage rooted in a per-test directory."""
    service = _service_for(LocalStorageBackend(str(tmp_path)), tmp_path)
    set_storage_service(service)
    yield service
    set_storage_service(None)


@pytest.fixture
def signed_storage(tmp_path):
    """Storage that hands out signed URLs, for redirect and proxy delivery."""
    service = _service_for(SignedUrlBackend(str(tmp_path)), tmp_path)
    set_storage_service(service)
    yield service
    set_storage_service(None)


def put_object(service, key, content):
    path = service.backend.resolve_path(key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'wb') as f:
        f.write(content)


@pytest.fixture
def project(app):
    with app.app_context():
        artist = Artist(name='Test Artist')
        db.session.add(artist)
        db.session.commit()
        project = Project(artist_id=artist.id, name='Test Project')
        db.session.add(project)
        db.session.commit()
        return {'artist_id': artist.id, 'project_id': project.id}


def create_track(app, project_id, file_path, title='Take One', storage_path=None):
    with app.app_context():
        track = Track(project_id=project_id, title=title, file_path=file_path, storage_path=storage_path)
        db.session.add(track)
        db.session.commit()
        return track.id
