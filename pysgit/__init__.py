"""pysgit - keep a language-organized project tree in sync with GitHub."""

__version__ = "0.1.0"

from .api import GitHubClient
from .config import Config
from .exceptions import (
    SgitAggregateError,
    SgitAPIError,
    SgitAuthenticationError,
    SgitCancelledError,
    SgitCloneError,
    SgitConfigError,
    SgitError,
    SgitFilterError,
    SgitGitError,
    SgitInvalidResponseError,
    SgitNetworkError,
    SgitNotFoundError,
    SgitPermissionError,
    SgitRateLimitError,
)
from .git import GitClient

__all__ = [
    "__version__",
    "Config",
    "GitClient",
    "GitHubClient",
    "SgitError",
    "SgitAggregateError",
    "SgitAPIError",
    "SgitAuthenticationError",
    "SgitCancelledError",
    "SgitCloneError",
    "SgitConfigError",
    "SgitFilterError",
    "SgitGitError",
    "SgitInvalidResponseError",
    "SgitNetworkError",
    "SgitNotFoundError",
    "SgitPermissionError",
    "SgitRateLimitError",
]
