"""Git operations — work out which GitHub repository a local checkout points at."""

from __future__ import annotations

import re
from pathlib import Path

from git import InvalidGitRepositoryError, NoSuchPathError, Repo

_REMOTE_PATTERNS = (
    # git@github.com:owner/name.git
    re.compile(r"^[\w.-]+@[\w.-]+:(?P<owner>[\w.-]+)/(?P<name>[\w.-]+?)(?:\.git)?/?$"),
    # https://github.com/owner/name(.git), ssh://git@github.com/owner/name.git
    re.compile(r"^[a-z+]+://[^/]+/(?P<owner>[\w.-]+)/(?P<name>[\w.-]+?)(?:\.git)?/?$"),
)


def parse_remote_url(url: str) -> tuple[str, str]:
    """Split a GitHub remote URL into ``(owner, name)``.

    Raises:
        ValueError: If the URL is not an owner/name style remote.
    """
    for pattern in _REMOTE_PATTERNS:
        match = pattern.match(url.strip())
        if match:
            return match.group("owner"), match.group("name")
    raise ValueError(f"Not a GitHub-style remote URL: {url}")


def remote_full_name(repo_path: str | Path, remote: str = "origin") -> str:
    """Return ``owner/name`` for a local checkout's remote.

    Falls back to the first remote when ``remote`` does not exist.

    Raises:
        ValueError: If the path is not a Git repo or has no usable remote.
    """
    try:
        repo = Repo(repo_path, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError):
        raise ValueError(f"Not a Git repository: {repo_path}")

    if not repo.remotes:
        raise ValueError(f"Git repository at {repo_path} has no remotes")

    names = [r.name for r in repo.remotes]
    chosen = repo.remotes[names.index(remote)] if remote in names else repo.remotes[0]
    owner, name = parse_remote_url(chosen.url)
    return f"{owner}/{name}"


def resolve_full_name(spec: str, default_owner: str | None = None) -> str:
    """Resolve a CLI repository argument to ``owner/name``.

    Accepts ``owner/name``, a bare ``name`` (owned by ``default_owner``), or
    a path to a local checkout written as ``.``, ``./dir``, ``../dir``,
    ``/abs/dir`` or ``~/dir``.
    """
    spec = spec.strip()
    if spec in (".", "..") or spec.startswith(("./", "../", "/", "~")):
        return remote_full_name(Path(spec).expanduser())
    if "/" in spec:
        owner, _, name = spec.partition("/")
        if not owner or not name or "/" in name:
            raise ValueError(f"Invalid repository '{spec}'. Use owner/name")
        return spec
    if not default_owner:
        raise ValueError(f"Repository '{spec}' has no owner and none could be determined")
    return f"{default_owner}/{spec}"
