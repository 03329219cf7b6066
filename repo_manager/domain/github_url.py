"""Resolve GitHub repository URLs into owner and repository name."""

import re

from repo_manager.domain.errors import InvalidRepositoryUrlError
from repo_manager.domain.repository import RepositoryCoordinates

# Second segment stops at the first dot, which drops ".git" and similar suffixes
GITHUB_URL_PATTERN = re.compile(r"github\.com/([^/]+)/([^/.]+)")


def parse_repository_url(url: str) -> RepositoryCoordinates:
    """
    Extract owner and repository name from a GitHub URL.

    Args:
        url: Repository URL, e.g. ``https://github.com/acme/widget.git``

    Returns:
        Coordinates of the repository

    Raises:
        InvalidRepositoryUrlError: If the URL does not point at a GitHub repository
    """
    match = GITHUB_URL_PATTERN.search(url or "")
    if not match:
        raise InvalidRepositoryUrlError(url)
    owner, name = match.groups()
    return RepositoryCoordinates(owner=owner, name=name)
