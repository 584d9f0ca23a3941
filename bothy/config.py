"""Process configuration for Bothy.

Configuration is read once at start-up from ``BOTHY_*`` environment variables
into a frozen :class:`BothyConfig`, then handed explicitly to the factories
that build the sync engine and the registry façade.

Usage
-----
>>> import os
>>> os.environ["BOTHY_GITHUB_TOKEN"] = "ghp_example"
>>> os.environ["BOTHY_REPOSITORIES"] = "acme/widget, acme/gadget"
>>> config = BothyConfig.from_env()
>>> config.repositories
('acme/widget', 'acme/gadget')

"""

from __future__ import annotations

import dataclasses as dc
import enum
import os
from pathlib import Path

from bothy.common.slug import parse_repo_slug

_DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///.db/bothy.db"


class ConfigError(ValueError):
    """Raised when the process environment is missing or malformed."""

    @classmethod
    def missing(cls, env_var: str) -> ConfigError:
        """Return an error for a required variable that is unset."""
        return cls(f"{env_var} is required")

    @classmethod
    def invalid(cls, env_var: str, reason: str) -> ConfigError:
        """Return an error for a variable with an unusable value."""
        return cls(f"{env_var} {reason}")


class WatermarkPolicy(enum.StrEnum):
    """When a repository's commit watermark may move forward.

    ``EAGER`` advances after each enumerated page of history, before the
    commits on that page are materialised. ``DEFERRED`` waits until every
    commit of the walk was accepted or skipped, so a failed run is retried
    from the previous watermark.
    """

    EAGER = "eager"
    DEFERRED = "deferred"


@dc.dataclass(frozen=True, slots=True)
class BothyConfig:
    """Runtime configuration for the sync engine and façade.

    Attributes
    ----------
    github_token
        Token used for every repository host API call.
    scope
        Optional package scope, without the leading ``@``. Manifests whose
        name does not start with ``@scope`` are skipped.
    repositories
        Optional ``owner/name`` allow-list. Empty means every repository
        visible to the token.
    artifact_root
        Directory holding ``tarball/<name>/<version>.tgz`` artefacts.
    concurrency
        Bounded parallelism for repositories within a run and for commits
        within a repository.

    """

    github_token: str
    github_api_url: str = "https://api.github.com"
    github_timeout_s: float = 5.0
    scope: str | None = None
    repositories: tuple[str, ...] = ()
    manifest_path: str = "package.json"
    artifact_root: Path = Path("public")
    database_url: str = _DEFAULT_DATABASE_URL
    concurrency: int = 5
    watermark_policy: WatermarkPolicy = WatermarkPolicy.EAGER
    upstream_registry: str = "https://registry.npmjs.org"

    @staticmethod
    def _read(env_var: str) -> str | None:
        raw = os.environ.get(env_var, "").strip()
        return raw or None

    @classmethod
    def _parse_positive_int(cls, env_var: str, default: int) -> int:
        """Read a positive integer env var, falling back to a default."""
        raw = cls._read(env_var)
        if raw is None:
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            raise ConfigError.invalid(
                env_var, f"must be an integer, got: {raw!r}"
            ) from exc
        if value < 1:
            raise ConfigError.invalid(env_var, f"must be positive, got: {value}")
        return value

    @classmethod
    def _parse_positive_float(cls, env_var: str, default: float) -> float:
        raw = cls._read(env_var)
        if raw is None:
            return default
        try:
            value = float(raw)
        except ValueError as exc:
            raise ConfigError.invalid(
                env_var, f"must be a number, got: {raw!r}"
            ) from exc
        if value <= 0:
            raise ConfigError.invalid(env_var, f"must be positive, got: {value}")
        return value

    @staticmethod
    def _parse_repositories(raw: str | None) -> tuple[str, ...]:
        """Split the allow-list, dropping spaces and empty entries."""
        if raw is None:
            return ()
        slugs: list[str] = []
        for entry in raw.replace(" ", "").split(","):
            if not entry:
                continue
            try:
                parse_repo_slug(entry)
            except ValueError as exc:
                raise ConfigError.invalid(
                    "BOTHY_REPOSITORIES", f"contains an invalid repository: {entry!r}"
                ) from exc
            slugs.append(entry)
        return tuple(slugs)

    @classmethod
    def _parse_watermark_policy(cls) -> WatermarkPolicy:
        raw = cls._read("BOTHY_WATERMARK_POLICY")
        if raw is None:
            return WatermarkPolicy.EAGER
        try:
            return WatermarkPolicy(raw.lower())
        except ValueError as exc:
            choices = ", ".join(policy.value for policy in WatermarkPolicy)
            raise ConfigError.invalid(
                "BOTHY_WATERMARK_POLICY", f"must be one of {choices}, got: {raw!r}"
            ) from exc

    @classmethod
    def from_env(cls) -> BothyConfig:
        """Create configuration from ``BOTHY_*`` environment variables.

        Raises
        ------
        ConfigError
            If ``BOTHY_GITHUB_TOKEN`` is unset or any value is malformed.

        """
        token = cls._read("BOTHY_GITHUB_TOKEN")
        if token is None:
            raise ConfigError.missing("BOTHY_GITHUB_TOKEN")

        scope = cls._read("BOTHY_SCOPE")
        if scope is not None:
            scope = scope.removeprefix("@")

        artifact_root = cls._read("BOTHY_ARTIFACT_ROOT")

        return cls(
            github_token=token,
            github_api_url=cls._read("BOTHY_GITHUB_API_URL")
            or "https://api.github.com",
            github_timeout_s=cls._parse_positive_float("BOTHY_GITHUB_TIMEOUT_S", 5.0),
            scope=scope or None,
            repositories=cls._parse_repositories(cls._read("BOTHY_REPOSITORIES")),
            manifest_path=cls._read("BOTHY_MANIFEST_PATH") or "package.json",
            artifact_root=Path(artifact_root) if artifact_root else Path("public"),
            database_url=cls._read("BOTHY_DATABASE_URL") or _DEFAULT_DATABASE_URL,
            concurrency=cls._parse_positive_int("BOTHY_SYNC_CONCURRENCY", 5),
            watermark_policy=cls._parse_watermark_policy(),
            upstream_registry=cls._read("BOTHY_UPSTREAM_REGISTRY")
            or "https://registry.npmjs.org",
        )
