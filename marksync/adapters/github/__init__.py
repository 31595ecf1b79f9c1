from marksync.adapters.github.client import (
    GitHubClientError,
    GitHubConflictError,
    GitHubContentsClient,
    GitHubFile,
)
from marksync.adapters.github.remote_store import GitHubRemoteStore

__all__ = [
    "GitHubClientError",
    "GitHubConflictError",
    "GitHubContentsClient",
    "GitHubFile",
    "GitHubRemoteStore",
]
