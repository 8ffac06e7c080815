"""
Exception types raised at the edges of repo_context.

The selection and context functions themselves never raise for their documented
inputs; these are used by configuration loading, the local repository
collaborator and the CLI.
"""


class RepoContextError(Exception):
    """Base class for repo_context errors."""


class ConfigurationError(RepoContextError):
    """Settings could not be loaded or failed validation."""


class RepositoryNotFoundError(RepoContextError):
    """The local checkout for a repository does not exist."""

    def __init__(self, root: str):
        self.root = root
        super().__init__(f"Repository not found locally: {root}")
