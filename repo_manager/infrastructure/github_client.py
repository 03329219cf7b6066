"""GitHub REST API client with rate limiting and retry logic."""

import time
import logging
import os
from typing import Optional, Dict, Any
import requests

from repo_manager.domain.repository import RepositoryCoordinates

logger = logging.getLogger(__name__)


class RateLimitExceeded(Exception):
    """Raised when GitHub API rate limit is exceeded."""
    pass


class MissingCredentialError(Exception):
    """Raised when no GitHub token is configured."""

    def __init__(self):
        super().__init__("GitHub token not configured")


class GitHubApiError(Exception):
    """Raised when GitHub answers with an unexpected status code."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class GitHubAuthenticationError(GitHubApiError):
    """Raised when GitHub rejects the configured token."""
    pass


class GitHubNotFoundError(GitHubApiError):
    """Raised when the repository or ref does not exist (or is not visible)."""
    pass


class GitHubRestClient:
    """Client for the GitHub REST API used by remote git operations."""

    API_BASE_URL = "https://api.github.com"
    MAX_RETRIES = 5
    RETRY_DELAY_SECONDS = 1
    REQUEST_TIMEOUT_SECONDS = 30

    def __init__(self, token: Optional[str] = None):
        """
        Initialize GitHub REST client.

        Args:
            token: GitHub access token. If None, uses GITHUB_ACCESS_TOKEN, then
                GITHUB_TOKEN env vars.

        Raises:
            MissingCredentialError: If no token is available
        """
        if token is None:
            token = os.getenv("GITHUB_ACCESS_TOKEN") or os.getenv("GITHUB_TOKEN")

        if not token:
            logger.error("GitHub token not found")
            raise MissingCredentialError()

        self.token = token
        self.headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.token}",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    @staticmethod
    def _response_body(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Execute a REST call with retry logic.

        Args:
            method: HTTP method
            path: API path starting with a slash
            payload: JSON body

        Returns:
            Decoded JSON body, or None for 204 responses

        Raises:
            RateLimitExceeded: If rate limit is exceeded after retries
            GitHubApiError: If GitHub answers with an error status
            requests.RequestException: If request fails after retries
        """
        url = f"{self.API_BASE_URL}{path}"

        for attempt in range(self.MAX_RETRIES):
            try:
                response = requests.request(
                    method,
                    url,
                    json=payload,
                    headers=self.headers,
                    timeout=self.REQUEST_TIMEOUT_SECONDS
                )
            except requests.exceptions.RequestException as e:
                if attempt < self.MAX_RETRIES - 1:
                    delay = self.RETRY_DELAY_SECONDS * (2 ** attempt)  # Exponential backoff
                    logger.warning(f"Request failed (attempt {attempt + 1}/{self.MAX_RETRIES}): {e}. Retrying in {delay}s...")
                    time.sleep(delay)
                    continue
                raise

            if response.status_code == 204:
                return None
            if 200 <= response.status_code < 300:
                return response.json()

            body = self._response_body(response)

            if response.status_code == 401:
                raise GitHubAuthenticationError(
                    "Authentication failed. Check your GitHub token.", response.status_code, body
                )
            if response.status_code == 404:
                raise GitHubNotFoundError(f"Not found: {method} {path}", response.status_code, body)
            if response.status_code in (403, 429):
                remaining = int(response.headers.get("X-RateLimit-Remaining", 1))
                reset_time = int(response.headers.get("X-RateLimit-Reset", 0))

                if remaining == 0 or response.status_code == 429:
                    wait_time = max(reset_time - int(time.time()), 0) + 10
                    logger.warning(f"Rate limit exceeded. Waiting {wait_time} seconds...")
                    if attempt < self.MAX_RETRIES - 1:
                        time.sleep(wait_time)
                        continue
                    raise RateLimitExceeded("Rate limit exceeded")

            message = body.get("message") if isinstance(body, dict) else None
            raise GitHubApiError(
                f"GitHub API error {response.status_code}: {message or response.reason}",
                response.status_code,
                body,
            )

        raise Exception("Max retries exceeded")

    def get_repository(self, repo: RepositoryCoordinates) -> Dict[str, Any]:
        """Fetch repository metadata."""
        return self._request("GET", f"/repos/{repo.owner}/{repo.name}")

    def get_default_branch(self, repo: RepositoryCoordinates) -> str:
        """Resolve the repository's default branch name."""
        default_branch = self.get_repository(repo)["default_branch"]
        logger.info(f"Default branch of {repo.full_name}: {default_branch}")
        return default_branch

    def get_commit(self, repo: RepositoryCoordinates, ref: str) -> Dict[str, Any]:
        """Fetch the commit a ref points to."""
        return self._request("GET", f"/repos/{repo.owner}/{repo.name}/commits/{ref}")

    def merge(self, repo: RepositoryCoordinates, base: str, head: str, commit_message: str) -> Dict[str, Any]:
        """
        Merge a branch or commit into a branch of the repository.

        Args:
            repo: Repository receiving the merge
            base: Branch the merge is written to
            head: Branch name or commit SHA to merge
            commit_message: Message of the merge commit

        Returns:
            Merge commit data, empty when base already contains head
        """
        result = self._request(
            "POST",
            f"/repos/{repo.owner}/{repo.name}/merges",
            {"base": base, "head": head, "commit_message": commit_message},
        )
        if result is None:
            logger.info(f"Nothing to merge into {repo.full_name}@{base}")
            return {}
        return result
