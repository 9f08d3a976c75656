"""
Process-local backend with the same conditional-write contract as GitHub.

Versions are the SHA-1 of the content, so identical content always carries
the same version. Used for local development (JOBS_BACKEND=memory) and tests.
"""
from __future__ import annotations

import hashlib
import threading
from typing import Dict, Optional

from ..errors import VersionConflict
from .base import BlobSnapshot, RemoteFileBackend


def content_version(content: bytes) -> str:
    return hashlib.sha1(content).hexdigest()


class InMemoryBackend(RemoteFileBackend):
    def __init__(self, files: Optional[Dict[str, bytes]] = None):
        self._files: Dict[str, bytes] = dict(files or {})
        self._lock = threading.Lock()
        self.writes = 0
        self.conflicts = 0

    def get(self, path: str) -> Optional[BlobSnapshot]:
        with self._lock:
            content = self._files.get(path)
        if content is None:
            return None
        return BlobSnapshot(content=content, version=content_version(content))

    def put(self, path: str, content: bytes, expected_version: Optional[str]) -> str:
        with self._lock:
            current = self._files.get(path)
            current_version = content_version(current) if current is not None else None
            if current_version != expected_version:
                self.conflicts += 1
                raise VersionConflict(path, expected_version)
            self._files[path] = bytes(content)
            self.writes += 1
        return content_version(content)

    def raw(self, path: str) -> Optional[bytes]:
        """Stored bytes for path, bypassing the snapshot wrapper."""
        with self._lock:
            return self._files.get(path)
