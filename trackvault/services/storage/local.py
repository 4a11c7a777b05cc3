"""Local filesystem storage backend."""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import BinaryIO, List, Optional

from .interfaces import ObjectStat, StoredObject
from .paths import content_type_for, local_path_from_key


class LocalStorageBackend:
    """Objects live at ``<root>/<container>/<filename>``; no signed URLs."""

    supports_signed_urls = False

    def __init__(self, root: str):
        self.root = str(Path(root))
        Path(self.root).mkdir(parents=True, exist_ok=True)

    def resolve_path(self, key: str) -> str:
        return local_path_from_key(self.root, key)

    def list_names(self, container: str) -> List[str]:
        directory = self.resolve_path(container)
        if not os.path.isdir(directory):
            return []
        return sorted(
            entry.name for entry in os.scandir(directory)
            if entry.is_file()
        )

    def get(self, key: str):
        path = self.resolve_path(key)
        with open(path, 'rb') as f:
            content = f.read()
        return content, content_type_for(key)

    def save_fileobj(self, fileobj: BinaryIO, key: str, content_type: Optional[str] = None) -> StoredObject:
        dst = self.resolve_path(key)
        Path(dst).parent.mkdir(parents=True, exist_ok=True)
        with open(dst, 'wb') as out_f:
            shutil.copyfileobj(fileobj, out_f)
        size = os.path.getsize(dst)
        return StoredObject(key=key, size=size, content_type=content_type)

    def exists(self, key: str) -> bool:
        return os.path.isfile(self.resolve_path(key))

    def delete(self, key: str, missing_ok: bool = True) -> bool:
        path = self.resolve_path(key)
        if not os.path.exists(path):
            if missing_ok:
                return True
            raise FileNotFoundError(path)
        os.remove(path)
        return True

    def stat(self, key: str) -> ObjectStat:
        st = os.stat(self.resolve_path(key))
        return ObjectStat(size=st.st_size, content_type=content_type_for(key))

    def presign_get_url(self, key: str, *args, **kwargs) -> str:
        raise NotImplementedError('Local backend does not support presigned URLs')

    def presign_put_url(self, key: str, *args, **kwargs) -> str:
        raise NotImplementedError('Local backend does not support presigned uploads')
