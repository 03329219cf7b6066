"""Exceptions raised by the repository manager."""


class RepoManagerError(Exception):
    """Base class for all repository manager errors."""
    pass


class RegistryValidationError(RepoManagerError):
    """Raised when a registry mutation is rejected before touching state."""
    pass


class PushValidationError(RepoManagerError):
    """Raised when a push is requested without a usable source and target."""
    pass


class PushWorkflowError(RepoManagerError):
    """Raised when a push workflow action is not valid in the current state."""
    pass


class InvalidRepositoryUrlError(RepoManagerError):
    """Raised when a URL cannot be resolved to a GitHub owner and repository."""

    def __init__(self, url: str):
        super().__init__("Invalid repository URL format")
        self.url = url


class RepositoryNotFoundError(RepoManagerError):
    """Raised when a repository id is missing from the shared table."""
    pass


class GitOperationError(RepoManagerError):
    """Raised when a remote git operation request cannot be carried out."""
    pass
