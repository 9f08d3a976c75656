"""
Job list stored as one JSON file behind a RemoteFileBackend.

Every read goes to the backend; nothing is cached. Writes are
read-modify-write with the version token from the read, so a writer that
lost a race gets VersionConflict, re-reads and re-applies its append on top
of the winner's content.
"""
from __future__ import annotations

import json
import logging
import random
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .backends.base import RemoteFileBackend
from .config import DEFAULT_JOBS_PATH
from .errors import ConcurrentModificationError, DecodeError, VersionConflict
from .models import OPTIONAL_TEXT_FIELDS, RECORD_FIELDS, Enrichment, missing_required

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


def decode_collection(content: bytes) -> List[Record]:
    """Parse blob bytes into a list of records; empty content is an empty list."""
    if not content.strip():
        return []
    try:
        data = json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodeError(f"jobs blob is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise DecodeError(f"jobs blob must be a JSON array, got {type(data).__name__}")
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise DecodeError(f"jobs[{index}] is not an object")
        job_id = item.get("id")
        if not isinstance(job_id, int) or isinstance(job_id, bool):
            raise DecodeError(f"jobs[{index}] has no integer id")
    return data


def encode_collection(collection: Iterable[Record]) -> bytes:
    return json.dumps(list(collection), indent=2, ensure_ascii=False).encode("utf-8")


def next_id(collection: Iterable[Record]) -> int:
    return max((job["id"] for job in collection), default=0) + 1


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class VersionedBlobStore:
    def __init__(
        self,
        backend: RemoteFileBackend,
        path: str = DEFAULT_JOBS_PATH,
        max_attempts: int = 3,
        backoff: float = 0.1,
        clock: Callable[[], str] = _now_iso,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.backend = backend
        self.path = path
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.clock = clock

    def read_all(self) -> Tuple[List[Record], Optional[str]]:
        """Return (collection, version); an absent blob is ([], None)."""
        snapshot = self.backend.get(self.path)
        if snapshot is None:
            return [], None
        return decode_collection(snapshot.content), snapshot.version

    def append(self, candidate: Mapping[str, Any], enrich: Any = None) -> Record:
        """
        Append a new job built from candidate and return it.

        `enrich` is anything with an enrich(candidate) -> Enrichment method.
        It runs once, after the first successful read, and its result is reused
        if the write has to be retried. Enrichment errors never abort the append.

        Raises ValueError, before touching the backend, when title, description
        or companyName is missing or blank.
        Raises ConcurrentModificationError after max_attempts lost races;
        BackendUnavailable and DecodeError propagate on the first occurrence.
        """
        missing = missing_required(candidate)
        if missing:
            raise ValueError(f"job is missing required fields: {', '.join(missing)}")

        enrichment: Optional[Enrichment] = None

        for attempt in range(1, self.max_attempts + 1):
            collection, version = self.read_all()

            if enrichment is None:
                enrichment = self._enrich(candidate, enrich)

            record = self._build_record(candidate, next_id(collection), enrichment)
            collection.append(record)

            try:
                new_version = self.backend.put(self.path, encode_collection(collection), version)
            except VersionConflict:
                logger.warning(
                    "append conflict path=%s attempt=%s/%s version=%s",
                    self.path, attempt, self.max_attempts, version,
                )
                if attempt < self.max_attempts:
                    self._sleep_before_retry(attempt)
                continue

            logger.info(
                "append ok path=%s id=%s attempt=%s version=%s",
                self.path, record["id"], attempt, new_version,
            )
            return record

        raise ConcurrentModificationError(self.path, self.max_attempts)

    @staticmethod
    def find(collection: Iterable[Record], predicate: Callable[[Record], bool]) -> List[Record]:
        return [job for job in collection if predicate(job)]

    def list_jobs(self) -> List[Record]:
        collection, _ = self.read_all()
        return collection

    def jobs_for_user(self, user_id: Any) -> List[Record]:
        """Jobs posted by user_id; ids are compared as strings (query params are text)."""
        collection, _ = self.read_all()
        wanted = str(user_id)
        return self.find(collection, lambda job: str(job.get("userId")) == wanted)

    def get_job(self, job_id: int) -> Optional[Record]:
        collection, _ = self.read_all()
        matches = self.find(collection, lambda job: job["id"] == job_id)
        return matches[0] if matches else None

    def _enrich(self, candidate: Mapping[str, Any], enrich: Any) -> Enrichment:
        if enrich is None:
            return Enrichment()
        try:
            result = enrich.enrich(candidate)
        except Exception as e:  # noqa: BLE001
            logger.warning("enrichment failed title=%r error=%s", candidate.get("title"), e)
            return Enrichment()
        if result is None:
            return Enrichment()
        return Enrichment(
            company_summary=result.company_summary or None,
            is_spam=bool(result.is_spam),
        )

    def _build_record(self, candidate: Mapping[str, Any], job_id: int, enrichment: Enrichment) -> Record:
        now = self.clock()
        values: Record = {
            "id": job_id,
            "title": candidate["title"],
            "description": candidate["description"],
            "companyName": candidate["companyName"],
            "companySummary": enrichment.company_summary,
            "isSpam": enrichment.is_spam,
            "userId": candidate.get("userId"),
            "createdBy": candidate.get("createdBy"),
            "createdAt": now,
            "updatedAt": now,
        }
        for name in OPTIONAL_TEXT_FIELDS:
            values[name] = candidate.get(name)
        return {name: values[name] for name in RECORD_FIELDS}

    def _sleep_before_retry(self, attempt: int) -> None:
        if self.backoff <= 0:
            return
        time.sleep(self.backoff * attempt * (0.5 + random.random()))
