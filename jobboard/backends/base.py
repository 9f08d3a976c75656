from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BlobSnapshot:
    content: bytes
    version: str


class RemoteFileBackend(ABC):
    """
    A named-blob store with conditional writes.

    put() must reject a write whose expected_version is not the blob's current
    version (None means "the blob must not exist yet") by raising
    VersionConflict, and must leave the blob untouched when it does.
    """

    @abstractmethod
    def get(self, path: str) -> Optional[BlobSnapshot]:
        pass

    @abstractmethod
    def put(self, path: str, content: bytes, expected_version: Optional[str]) -> str:
        pass
