"""Semantic version helpers for package manifests."""

from __future__ import annotations

import typing as typ

import semver


def is_valid_version(value: object) -> typ.TypeGuard[str]:
    """Return True when ``value`` is a strict semantic version string.

    >>> is_valid_version("1.0.0-beta.1")
    True
    >>> is_valid_version("v1.0")
    False

    """
    return isinstance(value, str) and semver.Version.is_valid(value)


def version_key(value: str) -> semver.Version:
    """Return a sort key ordering versions by semantic version precedence."""
    return semver.Version.parse(value)


def package_id(name: str, version: str) -> str:
    """Return the composite record identity ``name#vversion``."""
    return f"{name}#v{version}"
