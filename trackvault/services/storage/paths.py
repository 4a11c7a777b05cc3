"""Normalization of track references into canonical object keys.

Stored references come in several historical shapes: a bare
``<projectId>/<filename>`` key, a full public or signed storage URL, a key
prefixed with the bucket name, or a percent-encoded variant of any of those.
Every externally supplied path goes through :func:`normalize_storage_path`
before it is used to address storage.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlsplit

DEFAULT_BUCKET = 'music-files'

STORAGE_API_MARKERS = ('/storage/v1/', '/object/')
_SCHEME_RE = re.compile(r'^[a-z][a-z0-9+.\-]*://', re.IGNORECASE)


def _after_bucket(path: str, bucket: str) -> Optional[str]:
    match = re.search(rf'/{re.escape(bucket)}/([^?#]+)', path, re.IGNORECASE)
    return match.group(1) if match else None


def _strict_unquote(value: str) -> str:
    """Percent-decode, raising on malformed escapes or non-UTF-8 bytes."""
    if re.search(r'%(?![0-9A-Fa-f]{2})', value):
        raise ValueError(f"Malformed percent-escape in {value!r}")
    return unquote(value, errors='strict')


def normalize_storage_path(raw, bucket: str = DEFAULT_BUCKET) -> Optional[str]:
    """Return the canonical ``container/filename`` key for ``raw`` or None.

    Never raises; every malformed input yields None.
    """
    if not isinstance(raw, str):
        return None
    path = raw.strip()
    path = path.lstrip('/')
    if not path or path == 'undefined':
        return None

    if path.lower().startswith(('http://', 'https://')):
        try:
            pathname = urlsplit(path).path
        except ValueError:
            return None
        extracted = _after_bucket(pathname, bucket)
        if not extracted:
            return None
        path = extracted
        if _SCHEME_RE.match(path) or path.lower().startswith('http'):
            return None
    elif any(marker in path for marker in STORAGE_API_MARKERS):
        extracted = _after_bucket(path, bucket)
        if extracted:
            path = extracted
        if any(marker in path for marker in STORAGE_API_MARKERS):
            return None

    query_at = path.find('?')
    if query_at >= 0:
        path = path[:query_at]

    try:
        path = _strict_unquote(path)
    except ValueError:
        pass

    path = re.sub(rf'^{re.escape(bucket)}(/|$)', '', path, flags=re.IGNORECASE).strip()
    path = path.lstrip('/')
    path = re.sub(r'/+', '/', path)
    if path.endswith('/'):
        path = path[:-1]

    if not path or '/' not in path:
        return None
    return path


def split_key(key: str):
    """Split a canonical key into (container, filename)."""
    container, _, filename = key.partition('/')
    return container, filename


def filename_from_key(key: str) -> str:
    return key.rsplit('/', 1)[-1]


def local_path_from_key(local_root: str, key: str) -> str:
    """Resolve a storage key under local_root and prevent path traversal."""
    safe_key = re.sub(r'/+', '/', (key or '').replace('\\', '/').strip()).lstrip('/')
    root = Path(local_root).resolve()
    candidate = (root / Path(*safe_key.split('/'))).resolve()
    try:
        candidate.relative_to(root)
    except ValueError as exc:
        raise ValueError(f"Local storage key resolves outside root: {key}") from exc
    return str(candidate)


_EXTENSION_TYPES = {
    '.mp3': 'audio/mpeg',
    '.wav': 'audio/wav',
    '.m4a': 'audio/mp4',
}


def content_type_for(filename: str) -> str:
    """Audio content type from the file extension; generic binary otherwise."""
    lower = (filename or '').lower()
    for ext, content_type in _EXTENSION_TYPES.items():
        if lower.endswith(ext):
            return content_type
    return 'application/octet-stream'
