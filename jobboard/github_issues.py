"""Thin pass-through to the issues API of the configured repository."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from .config import Settings
from .errors import BackendUnavailable

logger = logging.getLogger(__name__)


class GitHubIssuesClient:
    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        api_url: str = "https://api.github.com",
        timeout: float = 20.0,
        session: Optional[requests.Session] = None,
    ):
        self.base = f"{api_url.rstrip('/')}/repos/{owner}/{repo}/issues"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/vnd.github+json"})
        if token:
            self.session.headers["Authorization"] = f"token {token}"

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "GitHubIssuesClient":
        return cls(
            owner=settings.github_repo_owner,
            repo=settings.github_repo_name,
            token=settings.github_access_token,
            api_url=settings.github_api_url,
            timeout=settings.http_timeout,
            session=session,
        )

    def _call(self, method: str, **kwargs: Any) -> Any:
        try:
            resp = self.session.request(method, self.base, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as e:
            raise BackendUnavailable(f"{method} issues failed: {e}") from e

    def list_issues(self, state: str = "open", per_page: int = 30, page: int = 1) -> List[Dict[str, Any]]:
        data = self._call("GET", params={"state": state, "per_page": per_page, "page": page})
        # The issues endpoint also returns pull requests.
        return [item for item in data if "pull_request" not in item]

    def create_issue(
        self,
        title: str,
        body: Optional[str] = None,
        labels: Optional[List[str]] = None,
        opened_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        text = body or ""
        if opened_by:
            text = f"{text}\n\n_Opened by @{opened_by}_".lstrip()
        payload: Dict[str, Any] = {"title": title, "body": text}
        if labels:
            payload["labels"] = labels
        issue = self._call("POST", json=payload)
        logger.info("issue created number=%s by=%s", issue.get("number"), opened_by)
        return issue
