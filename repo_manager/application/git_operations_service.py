"""Application service for remote git operations against GitHub."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from repo_manager.infrastructure.github_client import GitHubRestClient
from repo_manager.infrastructure.database import DatabaseRepository
from repo_manager.domain.errors import GitOperationError, RepositoryNotFoundError
from repo_manager.domain.github_url import parse_repository_url
from repo_manager.domain.repository import PushType, StoredRepository

logger = logging.getLogger(__name__)


class GitOperationsService:
    """Service resolving shared repository rows and pushing between them on GitHub."""

    OPERATION_TYPES = ("push", "sync", "getLastCommit", "delete")

    def __init__(
        self,
        github_client: GitHubRestClient,
        database_repository: DatabaseRepository,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize git operations service.

        Args:
            github_client: GitHub API client
            database_repository: Shared repository table
            clock: Source of the current time, defaults to UTC now
        """
        self.github_client = github_client
        self.database_repository = database_repository
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def handle(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Dispatch a git operation request.

        Args:
            payload: Request body with ``type``, ``sourceRepoId`` and optionally
                ``targetRepoId`` and ``pushType``

        Returns:
            Response body for a successful operation

        Raises:
            GitOperationError: If the request is malformed
        """
        if not isinstance(payload, dict):
            raise GitOperationError("Request body must be a JSON object")

        operation = payload.get("type")
        source_id = payload.get("sourceRepoId")
        target_id = payload.get("targetRepoId")
        push_type = payload.get("pushType")
        logger.info(
            f"Received operation: type={operation} source={source_id} "
            f"target={target_id} push_type={push_type}"
        )

        if operation not in self.OPERATION_TYPES:
            raise GitOperationError(f"Unsupported operation type: {operation}")
        if not source_id:
            raise GitOperationError("sourceRepoId is required")

        if operation == "getLastCommit":
            return self.get_last_commit(source_id)
        if operation == "push":
            return self.push(source_id, target_id, push_type)
        return self.acknowledge(operation)

    def _resolve_default_tip(self, repo: StoredRepository):
        coordinates = parse_repository_url(repo.url)
        default_branch = self.github_client.get_default_branch(coordinates)
        commit = self.github_client.get_commit(coordinates, default_branch)
        return coordinates, default_branch, commit

    def get_last_commit(self, repo_id: str) -> Dict[str, Any]:
        """Fetch the tip of the repository's default branch and store it."""
        logger.info(f"Getting last commit for repo: {repo_id}")

        repo = self.database_repository.get_repository(repo_id)
        if repo is None:
            logger.error(f"Repository not found: {repo_id}")
            raise RepositoryNotFoundError("Repository not found")

        _, _, commit = self._resolve_default_tip(repo)
        sha = commit["sha"]
        commit_date = ((commit.get("commit") or {}).get("author") or {}).get("date")
        logger.info(f"Got commit: {sha}")

        self.database_repository.update_commit_info(repo_id, sha, commit_date, self.clock())
        return {"success": True, "commit": commit}

    def push(self, source_id: str, target_id: Optional[str], push_type: Optional[str] = None) -> Dict[str, Any]:
        """
        Merge the tip of the source's default branch into the target's default branch.

        The push type is validated and logged but does not change the merge.
        """
        if not target_id:
            raise GitOperationError("targetRepoId is required for push")
        try:
            push_type = PushType(push_type or PushType.REGULAR)
        except ValueError:
            raise GitOperationError(f"Unknown push type: {push_type}")

        logger.info(f"Starting push operation ({push_type.value})")
        repos = {repo.id: repo for repo in self.database_repository.get_repositories([source_id, target_id])}
        source = repos.get(source_id)
        target = repos.get(target_id)
        if source is None or target is None:
            logger.error("Source or target repository not found")
            raise RepositoryNotFoundError("Source or target repository not found")

        logger.info(f"Found repositories: source={source.url} target={target.url}")

        target_coordinates = parse_repository_url(target.url)
        _, source_branch, source_commit = self._resolve_default_tip(source)
        target_branch = self.github_client.get_default_branch(target_coordinates)
        logger.info(f"Default branches: source={source_branch} target={target_branch}")
        logger.info(f"Got source commit: {source_commit['sha']}")

        merge_result = self.github_client.merge(
            target_coordinates,
            base=target_branch,
            head=source_commit["sha"],
            commit_message=f"Merge from {source.display_name}",
        )
        logger.info(f"Merge into {target_coordinates.full_name}@{target_branch} successful")

        self.database_repository.mark_synced([source_id, target_id], self.clock())
        return {
            "success": True,
            "message": "Push operation completed successfully",
            "mergeResult": merge_result,
        }

    def acknowledge(self, operation: str) -> Dict[str, Any]:
        """Acknowledge an operation that needs no remote work."""
        return {
            "success": True,
            "message": f"Git {operation} operation completed successfully",
            "timestamp": self.clock().isoformat(),
        }
