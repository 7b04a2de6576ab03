"""Exception hierarchy for pysgit."""

from typing import Iterable, Optional


class SgitError(Exception):
    """Base exception for all pysgit errors."""


class SgitConfigError(SgitError):
    """Raised when required configuration is missing or invalid."""


class SgitFilterError(SgitConfigError):
    """Raised when a filter value cannot be resolved."""

    def __init__(self, message: str, valid_states: Iterable[str] = ()):
        self.valid_states = list(valid_states)
        if self.valid_states:
            message = f"{message}\nvalid states: {', '.join(self.valid_states)}"
        super().__init__(message)


class SgitAPIError(SgitError):
    """Raised when the hosting API returns an error."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SgitAuthenticationError(SgitAPIError):
    """Raised when the access token is rejected (401)."""


class SgitPermissionError(SgitAPIError):
    """Raised when access to a resource is forbidden (403)."""


class SgitNotFoundError(SgitAPIError):
    """Raised when a resource does not exist (404)."""


class SgitRateLimitError(SgitAPIError):
    """Raised when the API rate limit is exceeded (429)."""


class SgitInvalidResponseError(SgitAPIError):
    """Raised when the API returns a payload that cannot be decoded."""


class SgitNetworkError(SgitAPIError):
    """Raised on connection failures and timeouts."""


class SgitGitError(SgitError):
    """Raised when a git command fails."""

    def __init__(
        self,
        message: str,
        command: Optional[list[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        if stderr:
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)
        self.command = command or []
        self.returncode = returncode
        self.stderr = stderr


class SgitCloneError(SgitGitError):
    """Raised when cloning a repository fails."""


class SgitCancelledError(SgitError):
    """Raised when a run is cancelled or its deadline passes."""


class SgitAggregateError(SgitError):
    """Collects item-level errors from a single run."""

    def __init__(self, errors: Iterable[Exception]):
        self.errors = list(errors)
        super().__init__("\n".join(str(e) for e in self.errors))

    def __len__(self) -> int:
        return len(self.errors)
