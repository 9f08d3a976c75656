"""
GitHub Contents API backend.

The blob is a file in a repository; its version token is the file's blob SHA.
GitHub refuses a PUT whose `sha` is not the current one (409, or 422 when the
file appeared after we saw it as missing), which is exactly the conditional
write the store needs.
Docs: https://docs.github.com/en/rest/repos/contents
"""
from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional

import requests

from ..config import Settings
from ..errors import BackendUnavailable, VersionConflict
from .base import BlobSnapshot, RemoteFileBackend

logger = logging.getLogger(__name__)

CONFLICT_STATUS = 409
# 422 is also used for bad branches, paths and payloads; only sha complaints are conflicts.
VALIDATION_STATUS = 422


class GitHubContentsBackend(RemoteFileBackend):
    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        branch: str = "",
        api_url: str = "https://api.github.com",
        timeout: float = 20.0,
        session: Optional[requests.Session] = None,
        commit_message: str = "Update {path} via API",
    ):
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.commit_message = commit_message

        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/vnd.github+json"})
        if token:
            self.session.headers["Authorization"] = f"token {token}"

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "GitHubContentsBackend":
        if not settings.github_repo_configured:
            raise ValueError("GITHUB_REPO_OWNER and GITHUB_REPO_NAME are required for the github backend")
        return cls(
            owner=settings.github_repo_owner,
            repo=settings.github_repo_name,
            token=settings.github_access_token,
            branch=settings.github_branch,
            api_url=settings.github_api_url,
            timeout=settings.http_timeout,
            session=session,
        )

    def _contents_url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/contents/{path.lstrip('/')}"

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise BackendUnavailable(f"{method} {url} failed: {e}") from e

    @staticmethod
    def _json(resp: requests.Response) -> Dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as e:
            raise BackendUnavailable(f"GitHub returned a non-JSON body (status {resp.status_code})") from e
        if not isinstance(data, dict):
            raise BackendUnavailable("GitHub returned an unexpected payload for a contents request")
        return data

    def get(self, path: str) -> Optional[BlobSnapshot]:
        params = {"ref": self.branch} if self.branch else None
        resp = self._request("GET", self._contents_url(path), params=params)
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise BackendUnavailable(f"GET {path} returned {resp.status_code}")

        data = self._json(resp)
        sha = data.get("sha")
        if not sha:
            raise BackendUnavailable(f"GET {path} returned no sha")

        encoded = data.get("content") or ""
        # Files over 1 MB come back without inline content.
        if not encoded and data.get("encoding") == "none":
            encoded = self._fetch_blob(sha)

        content = base64.b64decode(encoded) if encoded else b""
        return BlobSnapshot(content=content, version=sha)

    def _fetch_blob(self, sha: str) -> str:
        url = f"{self.api_url}/repos/{self.owner}/{self.repo}/git/blobs/{sha}"
        resp = self._request("GET", url)
        if resp.status_code != 200:
            raise BackendUnavailable(f"GET blob {sha} returned {resp.status_code}")
        return self._json(resp).get("content") or ""

    @staticmethod
    def _is_conflict(resp: requests.Response) -> bool:
        if resp.status_code == CONFLICT_STATUS:
            return True
        return resp.status_code == VALIDATION_STATUS and "sha" in _message(resp).lower()

    def put(self, path: str, content: bytes, expected_version: Optional[str]) -> str:
        body: Dict[str, Any] = {
            "message": self.commit_message.format(path=path),
            "content": base64.b64encode(content).decode("ascii"),
        }
        if expected_version is not None:
            body["sha"] = expected_version
        if self.branch:
            body["branch"] = self.branch

        resp = self._request("PUT", self._contents_url(path), json=body)
        if self._is_conflict(resp):
            logger.info("github put conflict path=%s status=%s sha=%s", path, resp.status_code, expected_version)
            raise VersionConflict(path, expected_version)
        if resp.status_code not in (200, 201):
            raise BackendUnavailable(f"PUT {path} returned {resp.status_code}: {_message(resp)}")

        new_sha = (self._json(resp).get("content") or {}).get("sha")
        if not new_sha:
            raise BackendUnavailable(f"PUT {path} returned no sha")
        logger.info("github put ok path=%s sha=%s", path, new_sha)
        return new_sha


def _message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return ""
    return str(data.get("message", "")) if isinstance(data, dict) else ""
