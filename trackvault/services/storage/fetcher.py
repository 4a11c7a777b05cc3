"""Sequential retrieval across candidate keys."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .interfaces import ResolvedObject

logger = logging.getLogger(__name__)


def resolve_object(candidates: Sequence[str], backend, *, fetch_body: bool = True) -> Optional[ResolvedObject]:
    """Return the first candidate holding a non-empty object, or None.

    With ``fetch_body`` the object bytes are downloaded through ``backend.get``;
    otherwise only ``backend.stat`` is consulted, which is enough when the
    client will be sent a signed URL. Zero-byte objects count as misses.
    Candidates are tried one at a time, in order.
    """
    candidates = list(candidates)
    for key in candidates:
        try:
            if fetch_body:
                content, content_type = backend.get(key)
                size = len(content or b'')
            else:
                stat = backend.stat(key)
                content, content_type = None, stat.content_type
                size = stat.size or 0
        except FileNotFoundError:
            logger.debug(f"Candidate '{key}' does not exist")
            continue
        except Exception as e:
            logger.warning(f"Candidate '{key}' could not be read: {e}")
            continue

        if size <= 0:
            logger.warning(f"Candidate '{key}' is empty, skipping")
            continue

        if key != candidates[0]:
            logger.info(f"Resolved '{candidates[0]}' via fallback candidate '{key}'")
        return ResolvedObject(
            key=key,
            size=size,
            content_type=content_type,
            content=content,
            candidates=candidates,
        )

    logger.info(f"No candidate resolved for '{candidates[0] if candidates else ''}' "
                f"({len(candidates)} tried)")
    return None
