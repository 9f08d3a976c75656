import json
from typing import Any, Dict, List, Optional

import pytest
import requests

from jobboard.backends.memory import InMemoryBackend
from jobboard.config import Settings
from jobboard.models import Enrichment
from jobboard.store import VersionedBlobStore

JOBS_PATH = "data/jobs.json"


class StubEnricher:
    """Records calls; returns a fixed Enrichment or raises `error`."""

    enabled = True

    def __init__(self, enrichment: Optional[Enrichment] = None, error: Optional[Exception] = None):
        self.enrichment = enrichment or Enrichment()
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def enrich(self, candidate):
        self.calls.append(dict(candidate))
        if self.error is not None:
            raise self.error
        return self.enrichment


class FakeResponse:
    def __init__(self, status_code: int = 200, json_data: Any = None, text: str = ""):
        self.status_code = status_code
        self._json = json_data
        self.text = text if text else (json.dumps(json_data) if json_data is not None else "")

    def json(self):
        if self._json is None:
            raise ValueError("no json body")
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class FakeSession:
    """Stands in for requests.Session: replays queued responses and records calls."""

    def __init__(self, *responses):
        self.headers: Dict[str, str] = {}
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def _next(self, method, url, kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def request(self, method, url, **kwargs):
        return self._next(method, url, kwargs)

    def get(self, url, **kwargs):
        return self._next("GET", url, kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, kwargs)


def jobs_blob(jobs) -> bytes:
    return json.dumps(jobs, indent=2).encode("utf-8")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        github_client_id="client-123",
        github_client_secret="shh",
        github_callback_url="http://localhost:3000/callback",
        jobs_backend="memory",
        jwt_secret="test-secret",
        client_url="http://localhost:3000",
    )


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def store(backend) -> VersionedBlobStore:
    return VersionedBlobStore(backend, path=JOBS_PATH, max_attempts=3, backoff=0)
