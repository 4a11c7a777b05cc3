"""Storage service facade: normalization, candidate resolution and backend access."""

from __future__ import annotations

import threading
from typing import BinaryIO, List, Optional

from .candidates import build_candidates
from .factory import StorageSettings, build_backend, load_storage_settings_from_env
from .fetcher import resolve_object
from .interfaces import ResolvedObject, StoredObject
from .paths import normalize_storage_path


class StorageService:
    """Facade to hide storage backend details from request handlers."""

    def __init__(self, settings: Optional[StorageSettings] = None, backend=None):
        self.settings = settings or load_storage_settings_from_env()
        self.backend = backend if backend is not None else build_backend(self.settings)

    @property
    def bucket(self) -> str:
        return self.settings.bucket

    @property
    def supports_signed_urls(self) -> bool:
        return bool(getattr(self.backend, 'supports_signed_urls', False))

    def normalize(self, raw) -> Optional[str]:
        return normalize_storage_path(raw, self.bucket)

    def list_names(self, container: str) -> List[str]:
        return self.backend.list_names(container)

    def candidates_for(self, key: str) -> List[str]:
        return build_candidates(key, self.backend.list_names)

    def resolve(self, key: str, *, fetch_body: bool = True) -> Optional[ResolvedObject]:
        """Resolve a canonical key to the first non-empty candidate object."""
        return resolve_object(self.candidates_for(key), self.backend, fetch_body=fetch_body)

    def save_fileobj(self, fileobj: BinaryIO, key: str, *, content_type: Optional[str] = None) -> StoredObject:
        return self.backend.save_fileobj(fileobj, key, content_type=content_type)

    def delete(self, key: Optional[str], missing_ok: bool = True) -> bool:
        if not key:
            return bool(missing_ok)
        return self.backend.delete(key, missing_ok=missing_ok)

    def signed_url(self, key: str, *, mime_type: Optional[str] = None) -> str:
        return self.backend.presign_get_url(
            key,
            expires_seconds=self.settings.presign_ttl_seconds,
            response_content_type=mime_type,
        )

    def signed_upload_url(self, key: str, *, content_type: Optional[str] = None) -> str:
        return self.backend.presign_put_url(
            key,
            expires_seconds=self.settings.presign_ttl_seconds,
            content_type=content_type,
        )


_storage_service_singleton: Optional[StorageService] = None
_storage_service_singleton_lock = threading.Lock()


def get_storage_service() -> StorageService:
    global _storage_service_singleton
    if _storage_service_singleton is None:
        with _storage_service_singleton_lock:
            if _storage_service_singleton is None:
                _storage_service_singleton = StorageService()
    return _storage_service_singleton


def set_storage_service(service: Optional[StorageService]) -> None:
    global _storage_service_singleton
    with _storage_service_singleton_lock:
        _storage_service_singleton = service


def reset_storage_service_singleton() -> None:
    set_storage_service(None)
