"""GitHub repository host client and models."""

from __future__ import annotations

from .client import GitHubRestClient, GitHubRestConfig, RepositoryHost
from .errors import (
    GitHubAPIError,
    GitHubConfigError,
    GitHubResponseShapeError,
    ManifestNotFoundError,
)
from .models import CommitPage, CommitReference, RepositoryRef

__all__ = [
    "CommitPage",
    "CommitReference",
    "GitHubAPIError",
    "GitHubConfigError",
    "GitHubResponseShapeError",
    "GitHubRestClient",
    "GitHubRestConfig",
    "ManifestNotFoundError",
    "RepositoryHost",
    "RepositoryRef",
]
