"""Unit tests for registry document assembly and version helpers."""

from __future__ import annotations

import pytest

from bothy.registry import (
    PackageNotFoundError,
    PackageVersionRecord,
    build_packument,
    is_valid_version,
    package_id,
    version_document,
)

_BASE = "http://registry.test"


def _record(version: str, **manifest: object) -> PackageVersionRecord:
    return PackageVersionRecord(
        name="@acme/widget",
        version=version,
        manifest={"name": "@acme/widget", "version": version, **manifest},
        shasum=f"{version}-sha",
        tarball_path=f"tarball/@acme/widget/{version}.tgz",
    )


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("1.0.0", True),
        ("1.0.0-rc.1+build.5", True),
        ("1.0", False),
        ("v1.0.0", False),
        ("", False),
        (None, False),
        (100, False),
    ],
)
def test_is_valid_version(*, value: object, expected: bool) -> None:
    """Only strict semantic version strings are accepted."""
    assert is_valid_version(value) is expected


def test_package_id_format() -> None:
    """Identities join the name and version with ``#v``."""
    assert package_id("@acme/widget", "1.0.0") == "@acme/widget#v1.0.0"


def test_document_layers_registry_fields_over_manifest() -> None:
    """Manifest fields pass through and registry fields are added."""
    record = _record("1.0.0", description="A widget", main="index.js")

    document = record.to_document()

    assert document["description"] == "A widget"
    assert document["main"] == "index.js"
    assert document["_shasum"] == "1.0.0-sha"
    assert document["dist"] == {
        "shasum": "1.0.0-sha",
        "tarball": "tarball/@acme/widget/1.0.0.tgz",
    }
    assert document["id"] == "@acme/widget#v1.0.0"
    assert document["dist-tags"] == {"latest": "1.0.0"}
    assert "dist" not in record.manifest


def test_version_document_uses_absolute_tarball_url() -> None:
    """The served tarball URL is prefixed with the request base."""
    document = version_document(_record("1.0.0"), tarball_base=f"{_BASE}/")

    assert document["dist"]["tarball"] == (
        f"{_BASE}/tarball/@acme/widget/1.0.0.tgz"
    )


def test_packument_top_level_mirrors_highest_version() -> None:
    """The newest version by precedence supplies the top-level fields."""
    records = [
        _record("1.10.0", description="ten"),
        _record("1.2.0", description="two"),
        _record("2.0.0-beta.1", description="beta"),
    ]

    packument = build_packument("@acme/widget", records, tarball_base=_BASE)

    assert packument["version"] == "2.0.0-beta.1"
    assert packument["description"] == "beta"
    assert packument["dist-tags"] == {"latest": "2.0.0-beta.1"}
    assert list(packument["versions"]) == ["1.2.0", "1.10.0", "2.0.0-beta.1"]
    assert packument["versions"]["1.2.0"]["description"] == "two"
    assert "versions" not in packument["versions"]["2.0.0-beta.1"]


def test_packument_requires_at_least_one_version() -> None:
    """An empty record set is a missing package."""
    with pytest.raises(PackageNotFoundError):
        build_packument("@acme/widget", [], tarball_base=_BASE)
