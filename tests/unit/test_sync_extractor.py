"""Unit tests for turning manifest commits into package versions."""

from __future__ import annotations

import datetime as dt
import hashlib
import typing as typ

import httpx
import pytest

from bothy.github import GitHubRestClient, GitHubRestConfig
from bothy.github.errors import GitHubAPIError
from bothy.github.models import CommitReference, RepositoryRef
from bothy.registry import PackageNotFoundError
from bothy.sync import Accepted, Failed, Skipped, SkipReason, VersionExtractor
from bothy.tarballs import TarballDownloadError
from tests.helpers.engine import build_harness
from tests.helpers.fake_host import archive_bytes, manifest_bytes

if typ.TYPE_CHECKING:
    from bothy.registry import PackageStore, RepositoryStore
    from bothy.tarballs import TarballCache
    from tests.helpers.engine import SyncHarness
    from tests.helpers.fake_host import FakeRepositoryHost

_REPO = RepositoryRef(owner="acme", name="widget")


@pytest.mark.asyncio
async def test_valid_manifest_is_accepted_and_stored(harness: SyncHarness) -> None:
    """A publishable manifest yields a stored record and a cached tarball."""
    commit = harness.host.add_commit(
        "acme/widget",
        "abc123",
        minutes=1,
        manifest=manifest_bytes("widget", "1.0.0", description="A widget"),
    )

    outcome = await harness.extractor.extract(_REPO, commit)

    assert isinstance(outcome, Accepted)
    assert outcome.downloaded is True
    record = outcome.record
    assert record.tarball_path == "tarball/widget/1.0.0.tgz"
    assert record.commit_sha == "abc123"
    assert record.repository_slug == "acme/widget"
    assert record.manifest["description"] == "A widget"
    assert harness.host.manifest_fetches == [("acme/widget", "abc123")]
    assert harness.host.archive_requests == [("acme/widget", "abc123")]
    cached = harness.cache.path_for("widget", "1.0.0")
    assert cached.read_bytes() == archive_bytes("abc123")
    assert record.shasum == hashlib.sha1(cached.read_bytes()).hexdigest()  # noqa: S324
    assert await harness.packages.get("widget", "1.0.0") == record


@pytest.mark.asyncio
async def test_cached_version_is_not_downloaded_again(harness: SyncHarness) -> None:
    """A later commit with the same version reuses the cached tarball."""
    first = harness.host.add_commit(
        "acme/widget", "one", minutes=1, manifest=manifest_bytes("widget", "1.0.0")
    )
    second = harness.host.add_commit(
        "acme/widget",
        "two",
        minutes=2,
        manifest=manifest_bytes("widget", "1.0.0", description="retagged"),
    )

    await harness.extractor.extract(_REPO, first)
    outcome = await harness.extractor.extract(_REPO, second)

    assert isinstance(outcome, Accepted)
    assert outcome.downloaded is False
    assert harness.host.archive_requests == [("acme/widget", "one")]
    expected = hashlib.sha1(archive_bytes("one")).hexdigest()  # noqa: S324
    assert outcome.record.shasum == expected
    stored = await harness.packages.get("widget", "1.0.0")
    assert stored.commit_sha == "two"
    assert stored.manifest["description"] == "retagged"


@pytest.mark.parametrize(
    ("manifest", "reason"),
    [
        (None, SkipReason.MANIFEST_MISSING),
        (b"{not json", SkipReason.MANIFEST_UNPARSEABLE),
        (b'["widget", "1.0.0"]', SkipReason.MANIFEST_UNPARSEABLE),
        (manifest_bytes("widget", "1.0"), SkipReason.INVALID_VERSION),
        (manifest_bytes("widget", "latest"), SkipReason.INVALID_VERSION),
        (manifest_bytes("widget", None), SkipReason.INVALID_VERSION),
        (manifest_bytes("", "1.0.0"), SkipReason.INVALID_NAME),
        (manifest_bytes(42, "1.0.0"), SkipReason.INVALID_NAME),
    ],
)
@pytest.mark.asyncio
async def test_unpublishable_manifests_are_skipped(
    harness: SyncHarness, manifest: bytes | None, reason: SkipReason
) -> None:
    """Skipped commits never touch the archive endpoint or the store."""
    commit = harness.host.add_commit(
        "acme/widget", "abc123", minutes=1, manifest=manifest
    )

    outcome = await harness.extractor.extract(_REPO, commit)

    assert outcome == Skipped(commit, reason)
    assert harness.host.archive_requests == []
    assert await harness.packages.list_names() == []


@pytest.mark.asyncio
async def test_scope_filter_matches_name_prefix(
    fake_host: FakeRepositoryHost,
    package_store: PackageStore,
    repository_store: RepositoryStore,
    tarball_cache: TarballCache,
) -> None:
    """With a scope configured only names starting ``@scope`` are accepted."""
    harness = build_harness(
        fake_host, package_store, repository_store, tarball_cache, scope="acme"
    )
    outcomes = []
    for sha, name in (
        ("a", "@acme/widget"),
        ("b", "@other/widget"),
        ("c", "widget"),
        ("d", "@acme-tools/widget"),
    ):
        commit = fake_host.add_commit(
            "acme/widget", sha, minutes=1, manifest=manifest_bytes(name, "1.0.0")
        )
        outcomes.append(await harness.extractor.extract(_REPO, commit))

    accepted, other, unscoped, tools = outcomes
    assert isinstance(accepted, Accepted)
    assert accepted.record.tarball_path == "tarball/@acme/widget/1.0.0.tgz"
    assert isinstance(tools, Accepted)
    assert tools.record.name == "@acme-tools/widget"
    assert other == Skipped(other.commit, SkipReason.SCOPE_MISMATCH)
    assert unscoped == Skipped(unscoped.commit, SkipReason.SCOPE_MISMATCH)
    assert fake_host.archive_requests == [("acme/widget", "a"), ("acme/widget", "d")]


@pytest.mark.asyncio
async def test_archive_failure_is_reported_without_storing(
    harness: SyncHarness,
) -> None:
    """A broken download fails the commit and leaves nothing behind."""
    commit = harness.host.add_commit(
        "acme/widget", "abc123", minutes=1, manifest=manifest_bytes("widget", "1.0.0")
    )
    harness.host.failing_archives.add("abc123")

    outcome = await harness.extractor.extract(_REPO, commit)

    assert isinstance(outcome, Failed)
    assert isinstance(outcome.error, TarballDownloadError)
    assert not harness.cache.path_for("widget", "1.0.0").exists()
    with pytest.raises(PackageNotFoundError):
        await harness.packages.get("widget", "1.0.0")


@pytest.mark.asyncio
async def test_unsafe_package_name_fails_the_commit(harness: SyncHarness) -> None:
    """Names that cannot map to a cache path are reported as failures."""
    commit = harness.host.add_commit(
        "acme/widget", "abc123", minutes=1, manifest=manifest_bytes("../x", "1.0.0")
    )

    outcome = await harness.extractor.extract(_REPO, commit)

    assert isinstance(outcome, Failed)
    assert harness.host.archive_requests == []


@pytest.mark.asyncio
async def test_host_error_fetching_manifest_propagates(
    harness: SyncHarness,
) -> None:
    """Only an absent manifest is a skip; other host errors escape."""
    commit = harness.host.add_commit(
        "acme/widget", "abc123", minutes=1, manifest=manifest_bytes("widget", "1.0.0")
    )
    harness.host.failing_manifests.add("abc123")

    with pytest.raises(GitHubAPIError):
        await harness.extractor.extract(_REPO, commit)


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "file", "content": "", "encoding": "none", "size": 2_000_000},
        [{"type": "file", "name": "index.js"}],
    ],
    ids=["oversized-file", "directory"],
)
@pytest.mark.asyncio
async def test_manifest_without_inline_content_is_skipped(
    payload: object,
    package_store: PackageStore,
    tarball_cache: TarballCache,
) -> None:
    """Contents the host cannot return inline skip only that commit."""
    archive_requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if "/tarball/" in request.url.path:
            archive_requests.append(request)
        return httpx.Response(200, json=payload)

    client = GitHubRestClient(
        GitHubRestConfig(token="ghp_test", api_url="https://api.github.test"),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        download_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    extractor = VersionExtractor(client, tarball_cache, package_store)
    commit = CommitReference(
        sha="abc123", committed_at=dt.datetime(2024, 1, 1, tzinfo=dt.UTC)
    )

    outcome = await extractor.extract(_REPO, commit)

    assert outcome == Skipped(commit, SkipReason.MANIFEST_UNPARSEABLE)
    assert archive_requests == []
    assert await package_store.list_names() == []
