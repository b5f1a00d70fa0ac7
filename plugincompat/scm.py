"""Resolution of plugin source repositories and minimal git checkouts."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import SourcesUnavailableError
from .extractors import GIT_SCM_PREFIX
from .utils import CommandError, recreate_directory, run_command

logger = logging.getLogger(__name__)

GITHUB_ORGANIZATION_PATTERN = re.compile(r"(.*github\.com[:|/])([^/]*)(.*)")


def get_fallback_connection_urls(url: str, fallback_organization: str) -> List[str]:
    """Rewrite the GitHub organization of ``url``, once in SSH form and once in place.

    URLs that do not point at GitHub have no fallback and yield an empty list.
    """

    match = GITHUB_ORGANIZATION_PATTERN.match(url)
    if match is None:
        logger.debug("%s is not a GitHub URL; no fallback to %s", url, fallback_organization)
        return []
    prefix, _, rest = match.groups()
    return [
        f"{GIT_SCM_PREFIX}git@github.com:{fallback_organization}{rest}",
        f"{prefix}{fallback_organization}{rest}",
    ]


def get_connection_urls(url: str, fallback_organization: Optional[str] = None) -> List[str]:
    candidates = [url]
    if fallback_organization:
        candidates.extend(get_fallback_connection_urls(url, fallback_organization))
    return candidates


def normalize_connection_url(url: str) -> str:
    if url.startswith(GIT_SCM_PREFIX):
        url = url[len(GIT_SCM_PREFIX):]
    # https://github.blog/2021-09-01-improving-git-protocol-security-github/
    return url.replace("git://", "https://")


def get_repo_name_from_git_url(url: str) -> str:
    """Return the last path component of a git URL without its ``.git`` suffix."""

    index = url.rfind("/")
    if index < 0:
        raise SourcesUnavailableError(f"Failed to obtain local directory for {url}")
    name = url[index + 1:]
    if name.endswith(".git"):
        return name[: -len(".git")]
    return name


def _git(arguments: Sequence[str], directory: Path, git: str) -> None:
    command = [git, *arguments]
    try:
        run_command(command, cwd=directory)
    except CommandError as exc:
        raise SourcesUnavailableError(
            f"git {' '.join(arguments[:1])} failed with exit status {exc.returncode}: {exc.output}"
        ) from exc


def clone(url: str, ref: str, directory: str | Path, *, git: str = "git") -> None:
    """Check out ``ref`` of ``url`` into ``directory`` without fetching the whole history.

    Any previous content of ``directory`` is deleted. ``ref`` may be a branch, a
    tag or a commit hash.
    """

    directory = Path(directory)
    logger.info("Checking out from git repository %s at %s", url, ref)
    recreate_directory(directory)
    _git(["init"], directory, git)
    _git(["fetch", url, ref], directory, git)
    _git(["checkout", "FETCH_HEAD"], directory, git)


def clone_from_scm(
    url: str,
    fallback_organization: Optional[str],
    ref: str,
    directory: str | Path,
    *,
    git: str = "git",
) -> None:
    """Clone from the first candidate location that works.

    When every candidate fails, the last failure is raised with the earlier
    ones attached as suppressed exceptions.
    """

    last_exception: Optional[SourcesUnavailableError] = None
    for candidate in get_connection_urls(url, fallback_organization):
        connection_url = normalize_connection_url(candidate)
        try:
            clone(connection_url, ref, directory, git=git)
            return
        except SourcesUnavailableError as exc:
            logger.warning("Checkout of %s failed: %s", connection_url, exc)
            if last_exception is not None:
                exc.add_suppressed(last_exception)
            last_exception = exc
    if last_exception is not None:
        raise last_exception
