"""
GitHub OAuth login and the service's own session tokens.

Login: the frontend sends GitHub's OAuth `code`; we trade it for a GitHub
access token, read the GitHub user and answer with a signed HS256 JWT that
carries userId/username. The GitHub token itself is not kept.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

import jwt
import requests

from .config import Settings
from .errors import GitHubAuthError, Unauthenticated
from .models import Identity

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
ACCESS_TOKEN_URL = "https://github.com/login/oauth/access_token"
JWT_ALGORITHM = "HS256"


class AuthGateway:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    def authorize_url(self) -> str:
        params = {"client_id": self.settings.github_client_id}
        if self.settings.github_callback_url:
            params["redirect_uri"] = self.settings.github_callback_url
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> str:
        payload = {
            "client_id": self.settings.github_client_id,
            "client_secret": self.settings.github_client_secret,
            "code": code,
        }
        if self.settings.github_callback_url:
            payload["redirect_uri"] = self.settings.github_callback_url
        try:
            resp = self.session.post(
                ACCESS_TOKEN_URL,
                json=payload,
                headers={"Accept": "application/json"},
                timeout=self.settings.http_timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise GitHubAuthError(f"token exchange failed: {e}") from e

        if not isinstance(data, dict):
            raise GitHubAuthError("token exchange failed: unexpected payload")
        # GitHub reports bad/expired codes with 200 and an "error" field.
        token = data.get("access_token")
        if not token:
            error = data.get("error_description") or data.get("error") or "no access_token"
            raise GitHubAuthError(f"token exchange failed: {error}")
        return token

    def fetch_user(self, access_token: str) -> Dict[str, Any]:
        try:
            resp = self.session.get(
                f"{self.settings.github_api_url}/user",
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/vnd.github+json",
                },
                timeout=self.settings.http_timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise GitHubAuthError(f"user lookup failed: {e}") from e
        if not isinstance(data, dict) or "id" not in data or "login" not in data:
            raise GitHubAuthError("user lookup failed: unexpected payload")

        return {
            "id": data["id"],
            "username": data["login"],
            "name": data.get("name") or data["login"],
            "email": data.get("email"),
        }

    def login(self, code: str) -> Tuple[Dict[str, Any], str]:
        """Return (github user, session token) for an OAuth code."""
        user = self.fetch_user(self.exchange_code(code))
        logger.info("login ok username=%s", user["username"])
        return user, self.issue_token(Identity(user_id=user["id"], username=user["username"]))

    def issue_token(self, identity: Identity) -> str:
        now = datetime.now(timezone.utc)
        claims = identity.claims()
        claims.update(iat=now, exp=now + timedelta(hours=self.settings.jwt_ttl_hours))
        return jwt.encode(claims, self.settings.jwt_secret, algorithm=JWT_ALGORITHM)

    def verify(self, token: str) -> Identity:
        try:
            claims = jwt.decode(token, self.settings.jwt_secret, algorithms=[JWT_ALGORITHM])
        except jwt.PyJWTError as e:
            raise Unauthenticated(str(e)) from e
        if "userId" not in claims or "username" not in claims:
            raise Unauthenticated("token is missing userId/username claims")
        return Identity(user_id=claims["userId"], username=claims["username"])
