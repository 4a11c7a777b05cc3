"""Candidate keys for a possibly stale track reference.

Uploads occasionally wrote filenames with two leading ``<epoch-ms>-`` prefixes,
and storage listings may hold the object under a slightly different prefix or
extension case than the database recorded. Rather than failing on a stale
key, resolution tries a ranked list of plausible keys:

1. the recorded key itself;
2. the key with a duplicated timestamp prefix removed;
3. every object in the same container whose name, stripped of timestamp
   prefixes and audio extension, equals (or ends with ``-`` plus) the recorded
   name's base.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, List

from .paths import split_key

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = ('.mp3', '.wav', '.m4a')

_DOUBLE_TIMESTAMP_RE = re.compile(r'^\d+-(\d+-.+)$')
_TIMESTAMP_PREFIX_RE = re.compile(r'^(?:\d+-)+')


def strip_timestamp_prefixes(filename: str) -> str:
    """Remove every leading ``<digits>-`` segment."""
    return _TIMESTAMP_PREFIX_RE.sub('', filename)


def strip_audio_extension(filename: str) -> str:
    lower = filename.lower()
    for ext in AUDIO_EXTENSIONS:
        if lower.endswith(ext):
            return filename[:-len(ext)]
    return filename


def base_name(filename: str) -> str:
    """Comparison base: no timestamp prefixes, no audio extension, lowercase."""
    return strip_audio_extension(strip_timestamp_prefixes(filename)).lower()


def strip_duplicate_timestamp(key: str):
    """Return the key without its first timestamp when the filename carries two, else None."""
    container, filename = split_key(key)
    match = _DOUBLE_TIMESTAMP_RE.match(filename)
    if not container or not match:
        return None
    return f"{container}/{match.group(1)}"


def _matches_base(listed_name: str, base: str) -> bool:
    listed_base = base_name(listed_name)
    return listed_base == base or listed_base.endswith(f"-{base}")


def _dedupe(keys: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for key in keys:
        if key and key not in seen:
            seen.add(key)
            ordered.append(key)
    return ordered


def build_candidates(canonical_key: str, list_objects: Callable[[str], List[str]]) -> List[str]:
    """Ordered, de-duplicated candidate keys for ``canonical_key``.

    ``list_objects(container)`` returns the object names in a container. It may
    raise; a failed or empty listing only shrinks the candidate set.
    """
    candidates = [canonical_key]

    stripped = strip_duplicate_timestamp(canonical_key)
    if stripped:
        candidates.append(stripped)

    container, filename = split_key(canonical_key)
    base = base_name(filename)
    if not container or not base:
        return _dedupe(candidates)

    try:
        listed = list_objects(container) or []
    except Exception as e:
        logger.warning(f"Listing container '{container}' failed, using recorded key only: {e}")
        listed = []

    for name in listed:
        name = (name or '').rsplit('/', 1)[-1]
        if name and _matches_base(name, base):
            candidates.append(f"{container}/{name}")

    return _dedupe(candidates)
