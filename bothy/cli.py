"""Run one repository synchronisation in the foreground."""

from __future__ import annotations

import argparse
import asyncio
import os

from bothy.config import BothyConfig, ConfigError
from bothy.factory import run_sync_once
from bothy.github.errors import GitHubAPIError, GitHubResponseShapeError
from bothy.github.models import RepositoryRef
from bothy.logging import configure_logging
from bothy.sync.models import RepositoryStatus


def main(argv: list[str] | None = None) -> int:
    """Synchronise configured repositories and print a per-repository summary.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Exit code: 0 on success, 1 when any repository failed, 2 when the
        environment is misconfigured.

    """
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--repository",
        default=None,
        help="Only synchronise this owner/name repository",
    )
    args = parser.parse_args(argv)

    if args.repository is not None:
        try:
            RepositoryRef.from_slug(args.repository)
        except ValueError as exc:
            parser.error(str(exc))

    configure_logging(os.environ.get("BOTHY_LOG_LEVEL"))
    try:
        config = BothyConfig.from_env()
    except ConfigError as exc:
        print(f"configuration error: {exc}")
        return 2

    try:
        result = asyncio.run(run_sync_once(config, repository=args.repository))
    except (GitHubAPIError, GitHubResponseShapeError) as exc:
        print(f"synchronisation failed: {exc}")
        return 1

    for repo in result.repositories:
        line = (
            f"{repo.repo_slug}: {repo.status} "
            f"({repo.accepted} accepted / {repo.skipped} skipped / "
            f"{repo.failed} failed)"
        )
        if repo.detail:
            line = f"{line} - {repo.detail}"
        print(line)

    print(
        f"synchronised {result.count(RepositoryStatus.SYNCED)} of "
        f"{len(result.repositories)} repositories "
        f"in {result.duration.total_seconds():.1f}s"
    )
    return 0 if result.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
