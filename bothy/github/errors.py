"""Repository host errors."""

from __future__ import annotations


class GitHubAPIError(RuntimeError):
    """Raised when GitHub returns an error response or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, url: str) -> GitHubAPIError:
        """Return an error for non-2xx HTTP responses."""
        return cls(f"GitHub HTTP {status_code} for {url}", status_code=status_code)

    @classmethod
    def transport_error(cls, exc: BaseException) -> GitHubAPIError:
        """Return an error for network failures before a response arrived."""
        return cls(f"GitHub request failed: {type(exc).__name__}: {exc}")


class GitHubResponseShapeError(RuntimeError):
    """Raised when GitHub responses are missing expected fields."""

    @classmethod
    def missing(cls, field: str) -> GitHubResponseShapeError:
        """Return an error for a missing response field."""
        return cls(f"GitHub response missing expected field: {field}")


class GitHubConfigError(RuntimeError):
    """Raised when GitHub client configuration is invalid."""

    @classmethod
    def missing_token(cls) -> GitHubConfigError:
        """Return an error when no GitHub token is configured."""
        return cls("BOTHY_GITHUB_TOKEN is required for GitHub API")

    @classmethod
    def empty_token(cls) -> GitHubConfigError:
        """Return an error when the provided token is empty."""
        return cls("GitHub token must be non-empty")


class ManifestNotFoundError(LookupError):
    """Raised when a manifest file does not exist at the requested ref."""

    def __init__(self, repo_slug: str, path: str, ref: str | None) -> None:
        """Record where the manifest was looked for."""
        self.repo_slug = repo_slug
        self.path = path
        self.ref = ref
        where = ref or "default branch"
        super().__init__(f"{path} not found in {repo_slug} at {where}")
