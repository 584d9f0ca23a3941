"""``owner/name`` repository slugs.

Bothy keys repository watermarks by slug and accepts slugs from three
places: the ``BOTHY_REPOSITORIES`` allow-list, ``POST /-/reload?repository=``
and the owner and name fields of a GitHub webhook payload. All of them go
through :func:`parse_repo_slug`, so a slug that reaches the sync engine always
has exactly one owner and one name.
"""

from __future__ import annotations

_SEPARATOR = "/"


def repo_slug(owner: str, name: str) -> str:
    """Return the slug stored against a repository's watermark.

    >>> repo_slug("acme", "widget")
    'acme/widget'
    """
    return f"{owner}{_SEPARATOR}{name}"


def parse_repo_slug(slug: str) -> tuple[str, str]:
    """Split ``slug`` into ``(owner, name)``.

    Raises
    ------
    ValueError
        If either half is blank or the slug has more than one separator.

    """
    owner, separator, name = slug.partition(_SEPARATOR)
    if not separator or _SEPARATOR in name or not owner.strip() or not name.strip():
        msg = f"Invalid repository slug: expected 'owner/name', got {slug!r}"
        raise ValueError(msg)
    return owner, name
