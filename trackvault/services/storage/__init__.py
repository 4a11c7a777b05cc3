"""Object storage: path normalization, candidate resolution and backends."""

from .candidates import base_name, build_candidates, strip_duplicate_timestamp, strip_timestamp_prefixes
from .fetcher import resolve_object
from .interfaces import ObjectStat, ResolvedObject, StoredObject
from .paths import content_type_for, filename_from_key, normalize_storage_path, split_key
from .service import StorageService, get_storage_service, reset_storage_service_singleton, set_storage_service

__all__ = [
    'base_name',
    'build_candidates',
    'strip_duplicate_timestamp',
    'strip_timestamp_prefixes',
    'resolve_object',
    'ObjectStat',
    'ResolvedObject',
    'StoredObject',
    'content_type_for',
    'filename_from_key',
    'normalize_storage_path',
    'split_key',
    'StorageService',
    'get_storage_service',
    'reset_storage_service_singleton',
    'set_storage_service',
]
