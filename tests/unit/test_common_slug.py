"""Unit tests for repository slug helpers."""

from __future__ import annotations

import pytest

from bothy.common.slug import parse_repo_slug, repo_slug
from bothy.github.models import RepositoryRef


def test_repo_slug_joins_owner_and_name() -> None:
    """Slugs are owner/name."""
    assert repo_slug("acme", "widget") == "acme/widget"


def test_parse_repo_slug_round_trips() -> None:
    """Parsing a built slug returns its parts."""
    assert parse_repo_slug(repo_slug("acme", "widget")) == ("acme", "widget")


@pytest.mark.parametrize(
    "slug",
    ["widget", "acme/widget/extra", "acme//widget", "/widget", "acme/", " /widget"],
)
def test_parse_repo_slug_rejects_malformed(slug: str) -> None:
    """Anything but exactly one non-empty owner and name is rejected."""
    with pytest.raises(ValueError, match="Invalid repository slug"):
        parse_repo_slug(slug)


def test_repository_ref_from_slug() -> None:
    """RepositoryRef exposes the slug it was built from."""
    ref = RepositoryRef.from_slug("acme/widget")

    assert ref.owner == "acme"
    assert ref.name == "widget"
    assert ref.slug == "acme/widget"
