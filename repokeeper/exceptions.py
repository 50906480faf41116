"""repokeeper exceptions.

All exceptions inherit from RepokeeperError so the CLI can catch them in
one place. The protection errors carry the repository and the remote call
that failed, so they can be logged verbatim.
"""

from __future__ import annotations


class RepokeeperError(Exception):
    """Base exception for all repokeeper errors."""


class ConfigError(RepokeeperError):
    """Raised when settings are missing or the config file is invalid."""


class GitHubAPIError(RepokeeperError):
    """Raised when the GitHub API returns an error response or is unreachable.

    ``status_code`` is 0 for transport failures (DNS, TLS, timeouts).
    """

    def __init__(self, status_code: int, detail: str, *, method: str = "", path: str = "") -> None:
        where = f" ({method} {path})" if method else ""
        super().__init__(f"GitHub API error {status_code}{where}: {detail}")
        self.status_code = status_code
        self.detail = detail
        self.method = method
        self.path = path

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class ProtectionError(RepokeeperError):
    """A failure talking to one repository's protection configuration."""

    def __init__(self, repo: str, operation: str, cause: Exception | str) -> None:
        super().__init__(f"{repo}: {operation} failed: {cause}")
        self.repo = repo
        self.operation = operation
        self.cause = cause


class RemoteStateUnavailable(ProtectionError):
    """The current protection state could not be fetched.

    "No protection configured" is not this error; it is a valid empty state.
    """


class ApplyRejected(ProtectionError):
    """The primary protection update was refused. Nothing is assumed applied."""


class PartialApplyWarning(ProtectionError):
    """The primary update succeeded but the signature sub-resource call failed.

    Returned alongside a successful apply result, never raised by the core.
    """


class ReconcileAborted(RepokeeperError):
    """The caller declined to pick a strategy."""
