"""Behavioural tests for mirroring GitHub release history."""

from __future__ import annotations

import typing as typ

import pytest
from falcon import testing
from pytest_bdd import given, parsers, scenario, then, when

from bothy.api.app import AppDependencies, create_app
from bothy.config import BothyConfig
from bothy.factory import build_sync_dependencies
from tests.helpers import run_async
from tests.helpers.api import RecordingTrigger
from tests.helpers.fake_host import FakeRepositoryHost, manifest_bytes

if typ.TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

    from bothy.factory import SyncDependencies
    from bothy.sync import SyncRunResult


class MirrorContext(typ.TypedDict, total=False):
    """Shared state used by BDD steps."""

    host: FakeRepositoryHost
    deps: SyncDependencies
    client: testing.TestClient
    minutes: int
    last_run: SyncRunResult


@scenario(
    "../registry_sync.feature", "Release history becomes installable versions"
)
def test_release_history() -> None:
    """Behavioural test: each manifest commit becomes a served version."""


@scenario("../registry_sync.feature", "Commits without a valid version are skipped")
def test_invalid_versions_skipped() -> None:
    """Behavioural test: unpublishable manifests are skipped."""


@scenario("../registry_sync.feature", "Cached tarballs are not downloaded again")
def test_cached_tarballs() -> None:
    """Behavioural test: an identity is downloaded at most once."""


@scenario(
    "../registry_sync.feature", "A repeated run without new commits does nothing"
)
def test_repeated_run() -> None:
    """Behavioural test: the watermark makes reruns free."""


@pytest.fixture
def mirror_context() -> MirrorContext:
    """Provision a fresh mirror for each scenario."""
    return {"minutes": 0, "host": FakeRepositoryHost()}


def _split(values: str) -> list[str]:
    return [value.strip() for value in values.split(",")]


def _next_minute(ctx: MirrorContext) -> int:
    ctx["minutes"] += 1
    return ctx["minutes"]


def _result_for(ctx: MirrorContext, slug: str) -> typ.Any:  # noqa: ANN401
    (result,) = (r for r in ctx["last_run"].repositories if r.repo_slug == slug)
    return result


@given("an empty registry mirror")
def empty_mirror(
    mirror_context: MirrorContext, tmp_path: Path, nullpool_engine: AsyncEngine
) -> None:
    """Wire the mirror to an in-memory host and a fresh database."""
    config = BothyConfig(github_token="ghp_test", artifact_root=tmp_path / "public")
    deps = build_sync_dependencies(
        config, host=mirror_context["host"], engine=nullpool_engine
    )
    trigger = typ.cast("typ.Any", RecordingTrigger())
    app = create_app(AppDependencies(sync=deps, trigger=trigger, sync_on_startup=False))
    mirror_context["deps"] = deps
    mirror_context["client"] = testing.TestClient(app)


@given(
    parsers.parse('repository "{slug}" published "{name}" versions "{versions}"')
)
def published_versions(
    mirror_context: MirrorContext, slug: str, name: str, versions: str
) -> None:
    """Add one manifest commit per version, oldest first."""
    for version in _split(versions):
        mirror_context["host"].add_commit(
            slug,
            f"{slug}@{version}",
            minutes=_next_minute(mirror_context),
            manifest=manifest_bytes(name, version),
        )


@given(parsers.parse('repository "{slug}" has a commit setting version "{version}"'))
def commit_with_version(mirror_context: MirrorContext, slug: str, version: str) -> None:
    """Add a commit whose manifest carries ``version``."""
    mirror_context["host"].add_commit(
        slug,
        f"{slug}@{version}",
        minutes=_next_minute(mirror_context),
        manifest=manifest_bytes("@acme/widget", version),
    )


@when(
    parsers.parse('repository "{slug}" republishes "{name}" version "{version}"')
)
def republished_version(
    mirror_context: MirrorContext, slug: str, name: str, version: str
) -> None:
    """Add a later commit repeating an already mirrored version."""
    mirror_context["host"].add_commit(
        slug,
        f"{slug}@{version}-again",
        minutes=_next_minute(mirror_context),
        manifest=manifest_bytes(name, version, description="republished"),
    )


@given("the mirror synchronises")
@when("the mirror synchronises")
def mirror_synchronises(mirror_context: MirrorContext) -> None:
    """Run one full synchronisation."""
    orchestrator = mirror_context["deps"].orchestrator
    mirror_context["last_run"] = run_async(orchestrator.sync_all())


@then(parsers.parse('the packument for "{name}" lists versions "{versions}"'))
def packument_lists(mirror_context: MirrorContext, name: str, versions: str) -> None:
    """The packument maps every mirrored version."""
    result = mirror_context["client"].simulate_get(f"/{name}")

    assert result.status_code == 200
    assert sorted(result.json["versions"]) == _split(versions)


@then(parsers.parse('the latest version of "{name}" is "{version}"'))
def latest_version(mirror_context: MirrorContext, name: str, version: str) -> None:
    """The latest tag resolves to the highest version."""
    result = mirror_context["client"].simulate_get(f"/{name}/latest")

    assert result.json["version"] == version
    assert result.json["dist-tags"] == {"latest": version}


@then(parsers.parse('the tarball for "{name}" version "{version}" is served'))
def tarball_served(mirror_context: MirrorContext, name: str, version: str) -> None:
    """The tarball URL in the version document can be fetched."""
    client = mirror_context["client"]
    document = client.simulate_get(f"/{name}/{version}").json
    path = document["dist"]["tarball"].removeprefix("http://falconframework.org")

    result = client.simulate_get(path)

    assert result.status_code == 200
    assert len(result.content) > 0


@then(
    parsers.parse(
        'repository "{slug}" reports {accepted:d} accepted and {skipped:d} '
        "skipped commit"
    )
)
def reports_counts(
    mirror_context: MirrorContext, slug: str, accepted: int, skipped: int
) -> None:
    """The run result counts commit outcomes."""
    result = _result_for(mirror_context, slug)

    assert (result.accepted, result.skipped) == (accepted, skipped)


@then(parsers.parse('no archive was requested for the version "{version}"'))
def no_archive_for(mirror_context: MirrorContext, version: str) -> None:
    """Skipped commits never reach the archive endpoint."""
    requested = [ref for _slug, ref in mirror_context["host"].archive_requests]

    assert all(not ref.endswith(f"@{version}") for ref in requested)


@then(parsers.parse("exactly {count:d} archive was downloaded"))
def archives_downloaded(mirror_context: MirrorContext, count: int) -> None:
    """Archive downloads are counted across every run."""
    assert len(mirror_context["host"].archive_requests) == count


@then(parsers.parse('repository "{slug}" reports {count:d} commits seen'))
def commits_seen(mirror_context: MirrorContext, slug: str, count: int) -> None:
    """The run saw exactly ``count`` new commits."""
    assert _result_for(mirror_context, slug).commits_seen == count


@then(parsers.parse('the watermark of "{slug}" is its newest commit'))
def watermark_is_newest(mirror_context: MirrorContext, slug: str) -> None:
    """The stored watermark equals the newest manifest commit's timestamp."""
    host = mirror_context["host"]
    newest = max(
        commit.reference.committed_at for commit in host.repositories[slug].commits
    )
    state = run_async(mirror_context["deps"].repositories.get(slug))

    assert state is not None
    assert state.watermark == newest
