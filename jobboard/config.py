"""Load service configuration from the environment (and .env)."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_JOBS_PATH = "data/jobs.json"
DEFAULT_CLIENT_URL = "http://localhost:3000"
GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


def _get(env: Mapping[str, str], key: str, default: str = "") -> str:
    return (env.get(key) or default).strip()


def _get_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = _get(env, key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from None


def _get_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = _get(env, key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    # GitHub OAuth app
    github_client_id: str = ""
    github_client_secret: str = ""
    github_callback_url: str = ""

    # Repository that holds the jobs file (and receives issues)
    github_access_token: str = ""
    github_repo_owner: str = ""
    github_repo_name: str = ""
    github_branch: str = ""
    github_api_url: str = "https://api.github.com"

    jobs_backend: str = "github"
    jobs_file_path: str = DEFAULT_JOBS_PATH
    jobs_max_attempts: int = 3
    http_timeout: float = 20.0

    jwt_secret: str = "change-me"
    jwt_ttl_hours: int = 24

    client_url: str = DEFAULT_CLIENT_URL

    llm_api_key: str = ""
    llm_base_url: str = GEMINI_OPENAI_BASE_URL
    llm_model: str = "gemini-2.0-flash"

    log_level: str = "INFO"
    environment: str = "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def github_repo_configured(self) -> bool:
        return bool(self.github_repo_owner and self.github_repo_name)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from a mapping (defaults to os.environ after .env is loaded).

        Every knob has a default so the app can boot in development without a
        .env; GitHub-backed storage simply fails on first use if the repo
        variables are missing.
        """
        if env is None:
            load_dotenv()
            env = os.environ

        return cls(
            github_client_id=_get(env, "GITHUB_CLIENT_ID"),
            github_client_secret=_get(env, "GITHUB_CLIENT_SECRET"),
            github_callback_url=_get(env, "GITHUB_CALLBACK_URL"),
            github_access_token=_get(env, "GITHUB_ACCESS_TOKEN"),
            github_repo_owner=_get(env, "GITHUB_REPO_OWNER"),
            github_repo_name=_get(env, "GITHUB_REPO_NAME"),
            github_branch=_get(env, "GITHUB_BRANCH"),
            github_api_url=_get(env, "GITHUB_API_URL", "https://api.github.com").rstrip("/"),
            jobs_backend=_get(env, "JOBS_BACKEND", "github").lower(),
            jobs_file_path=_get(env, "JOBS_FILE_PATH", DEFAULT_JOBS_PATH),
            jobs_max_attempts=max(1, _get_int(env, "JOBS_MAX_ATTEMPTS", 3)),
            http_timeout=_get_float(env, "JOBS_HTTP_TIMEOUT", 20.0),
            jwt_secret=_get(env, "JWT_SECRET", "change-me"),
            jwt_ttl_hours=_get_int(env, "JWT_TTL_HOURS", 24),
            client_url=_get(env, "CLIENT_URL", DEFAULT_CLIENT_URL),
            llm_api_key=_get(env, "LLM_API_KEY") or _get(env, "GOOGLE_API_KEY"),
            llm_base_url=_get(env, "LLM_BASE_URL", GEMINI_OPENAI_BASE_URL),
            llm_model=_get(env, "LLM_MODEL", "gemini-2.0-flash"),
            log_level=_get(env, "LOG_LEVEL", "INFO").upper(),
            environment=_get(env, "ENVIRONMENT", "development").lower(),
        )
