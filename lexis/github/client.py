"""GitHub REST API client (token or App authentication)."""

import base64
import json
from datetime import UTC, datetime, timedelta
from typing import Any, List, Optional

import httpx
import jwt

from lexis.core.config import Settings
from lexis.core.logging import get_logger

logger = get_logger(__name__)

GITHUB_API_BASE = "https://api.github.com"


class GitHubAPIError(Exception):
    """Raised when the GitHub API returns an error status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GitHubClient:
    """Client for the repository, fork, user and pull request endpoints."""

    def __init__(
        self,
        token: Optional[str] = None,
        app_id: Optional[str] = None,
        private_key: Optional[str] = None,
        installation_id: Optional[str] = None,
        base_url: str = GITHUB_API_BASE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize GitHub client.

        Args:
            token: Personal/OAuth access token (takes precedence over App auth)
            app_id: GitHub App ID
            private_key: GitHub App private key (PEM text)
            installation_id: GitHub App installation ID
            base_url: API base URL
            transport: Optional httpx transport (tests)
        """
        self.token = token
        self.app_id = app_id
        self.private_key = private_key
        self.installation_id = installation_id
        self.use_app_auth = bool(not token and app_id and private_key and installation_id)

        self._installation_token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None

        if self.use_app_auth:
            logger.info(
                "Using GitHub App authentication",
                app_id=self.app_id,
                installation_id=self.installation_id,
            )
        elif not token:
            logger.warning("No GitHub credentials configured, using anonymous API access")

        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=30.0,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, token: Optional[str] = None) -> "GitHubClient":
        """Build a client from an explicit token, the fallback token, or App credentials."""
        token = token or settings.github_token or None
        if token or not settings.has_github_app():
            return cls(token=token)
        return cls(
            app_id=settings.github_app_id,
            private_key=settings.get_github_app_private_key(),
            installation_id=settings.github_app_installation_id,
        )

    def _generate_jwt(self) -> str:
        """Generate JWT for GitHub App authentication."""
        now = int(datetime.now(UTC).timestamp())
        payload = {
            "iat": now - 60,  # Issued at time (60 seconds ago to account for clock skew)
            "exp": now + 600,  # Expires in 10 minutes
            "iss": self.app_id,
        }

        return jwt.encode(payload, self.private_key, algorithm="RS256")

    async def _get_installation_token(self) -> str:
        """Get or refresh installation access token."""
        if self._installation_token and self._token_expires_at:
            now = datetime.now(UTC)
            if now < self._token_expires_at - timedelta(minutes=5):
                return self._installation_token

        jwt_token = self._generate_jwt()
        headers = {
            "Authorization": f"Bearer {jwt_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

        response = await self.client.post(
            f"/app/installations/{self.installation_id}/access_tokens",
            headers=headers,
        )
        response.raise_for_status()

        data = response.json()
        self._installation_token = data["token"]
        expires_at_str = data["expires_at"].replace("Z", "+00:00")
        self._token_expires_at = datetime.fromisoformat(expires_at_str)
        if self._token_expires_at.tzinfo is None:
            self._token_expires_at = self._token_expires_at.replace(tzinfo=UTC)

        logger.info(
            "GitHub installation token refreshed",
            expires_at=self._token_expires_at.isoformat(),
        )

        return self._installation_token

    async def get_access_token(self) -> Optional[str]:
        """Token usable for git over HTTPS, if any."""
        if self.use_app_auth:
            return await self._get_installation_token()
        return self.token

    async def _get_headers(self) -> dict:
        """Get headers with authentication token."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "Lexis-I18n-Agent/1.0",
        }
        token = await self.get_access_token()
        if token:
            headers["Authorization"] = f"token {token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = await self._get_headers()
        try:
            response = await self.client.request(method, path, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            try:
                body = e.response.json()
                detail = body.get("message", "")
                errors = [
                    err["message"]
                    for err in body.get("errors", [])
                    if isinstance(err, dict) and err.get("message")
                ]
                if errors:
                    detail = f"{detail}: {'; '.join(errors)}"
            except (json.JSONDecodeError, ValueError, AttributeError):
                detail = e.response.text[:200]
            logger.error(
                "GitHub API error",
                method=method,
                path=path,
                status_code=status,
                response=detail,
            )
            raise GitHubAPIError(
                f"GitHub API {method} {path} failed ({status}): {detail}",
                status_code=status,
            ) from e
        except httpx.RequestError as e:
            logger.error("GitHub API request error", path=path, error=str(e))
            raise GitHubAPIError(f"GitHub API request to {path} failed: {e}") from e

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def get_repo(self, owner: str, repo: str) -> dict:
        return await self._request("GET", f"/repos/{owner}/{repo}")

    async def repo_exists(self, owner: str, repo: str) -> bool:
        try:
            await self.get_repo(owner, repo)
        except GitHubAPIError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    async def create_fork(self, owner: str, repo: str) -> dict:
        """Request a fork under the authenticated identity (GitHub forks asynchronously)."""
        return await self._request("POST", f"/repos/{owner}/{repo}/forks")

    async def get_current_user(self) -> dict:
        return await self._request("GET", "/user")

    async def get_content(self, owner: str, repo: str, path: str = "") -> Any:
        return await self._request("GET", f"/repos/{owner}/{repo}/contents/{path}")

    async def get_file_text(self, owner: str, repo: str, path: str) -> Optional[str]:
        """Decoded text of a file, or None when the path is not a file."""
        data = await self.get_content(owner, repo, path)
        if not isinstance(data, dict) or not data.get("content"):
            return None
        return base64.b64decode(data["content"]).decode("utf-8")

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        head: str,
        base: str,
        body: str = "",
    ) -> dict:
        payload = {"title": title, "head": head, "base": base, "body": body}
        result = await self._request("POST", f"/repos/{owner}/{repo}/pulls", json=payload)
        logger.info(
            f"Opened pull request on {owner}/{repo}",
            number=result.get("number"),
            head=head,
            base=base,
        )
        return result

    async def list_pull_requests(
        self, owner: str, repo: str, head: Optional[str] = None, state: str = "open"
    ) -> List[dict]:
        params = {"state": state}
        if head:
            params["head"] = head
        return await self._request("GET", f"/repos/{owner}/{repo}/pulls", params=params)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
