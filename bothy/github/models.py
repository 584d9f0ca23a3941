"""Typed domain models for repository host access."""

from __future__ import annotations

import dataclasses
import typing as typ

from bothy.common.slug import parse_repo_slug, repo_slug

if typ.TYPE_CHECKING:
    import datetime as dt


@dataclasses.dataclass(frozen=True, slots=True)
class RepositoryRef:
    """Identity of a repository on the host."""

    owner: str
    name: str

    @property
    def slug(self) -> str:
        """Return ``owner/name``."""
        return repo_slug(self.owner, self.name)

    @classmethod
    def from_slug(cls, slug: str) -> RepositoryRef:
        """Build a reference from ``owner/name``; raises ``ValueError``."""
        owner, name = parse_repo_slug(slug)
        return cls(owner=owner, name=name)


@dataclasses.dataclass(frozen=True, slots=True)
class CommitReference:
    """A commit that touched the manifest path."""

    sha: str
    committed_at: dt.datetime


@dataclasses.dataclass(frozen=True, slots=True)
class CommitPage:
    """One page of commit history as returned by the host."""

    commits: tuple[CommitReference, ...]

    @property
    def newest(self) -> dt.datetime | None:
        """Return the newest committer timestamp on the page."""
        if not self.commits:
            return None
        return max(commit.committed_at for commit in self.commits)
