"""Configuration for pysgit.

All settings are carried in a single :class:`Config` value that is built once
(normally by the CLI) and passed to the clients and sources that need it.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .exceptions import SgitConfigError

ENV_TOKEN = "GITHUB_TOKEN"
ENV_USERNAME = "GITHUB_USERNAME"
ENV_BASE_DIR = "CODE_HOME_DIR"
ENV_API_URL = "SGIT_API_URL"
ENV_TIMEOUT = "SGIT_TIMEOUT"
ENV_MAX_WORKERS = "SGIT_MAX_WORKERS"
ENV_OWNER_DIRECTORIES = "SGIT_OWNER_DIRECTORIES"

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_WORKERS = 8

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class Config:
    """Settings for a single pysgit invocation."""

    token: str
    """Bearer token for the hosting API"""

    username: str
    """Account whose repositories are synchronized"""

    base_dir: Path
    """Root of the ``<language>/<name>`` project tree"""

    api_url: str = DEFAULT_API_URL
    """Base URL of the hosting API"""

    timeout: float = DEFAULT_TIMEOUT
    """Per-request timeout in seconds"""

    max_workers: int = DEFAULT_MAX_WORKERS
    """Upper bound on concurrent network/filesystem tasks"""

    owner_directories: bool = False
    """Use ``<owner>/<language>/<name>`` instead of ``<language>/<name>``"""

    run_timeout: Optional[float] = None
    """Deadline for a whole run in seconds (None for no deadline)"""

    def __post_init__(self) -> None:
        if not isinstance(self.base_dir, Path):
            self.base_dir = Path(self.base_dir).expanduser()

    def validate(self) -> "Config":
        """Check that all required settings are present.

        Returns:
            The config itself, for chaining

        Raises:
            SgitConfigError: If a required value is missing or a number is
                out of range
        """
        missing = []
        if not self.token:
            missing.append(ENV_TOKEN)
        if not self.username:
            missing.append(ENV_USERNAME)
        if not str(self.base_dir) or str(self.base_dir) == ".":
            missing.append(ENV_BASE_DIR)
        if missing:
            raise SgitConfigError(
                f"Unset environment variable(s): {', '.join(missing)}"
            )

        if self.timeout <= 0:
            raise SgitConfigError(f"Timeout must be positive, got {self.timeout}")
        if self.max_workers < 1:
            raise SgitConfigError(
                f"Max workers must be at least 1, got {self.max_workers}"
            )
        if self.run_timeout is not None and self.run_timeout <= 0:
            raise SgitConfigError(
                f"Run timeout must be positive, got {self.run_timeout}"
            )
        return self

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Build a validated config from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            Validated Config

        Raises:
            SgitConfigError: If required variables are unset or values are invalid
        """
        env = os.environ if environ is None else environ

        try:
            timeout = float(env.get(ENV_TIMEOUT, DEFAULT_TIMEOUT))
            max_workers = int(env.get(ENV_MAX_WORKERS, DEFAULT_MAX_WORKERS))
        except ValueError as e:
            raise SgitConfigError(f"Invalid numeric setting: {e}") from e

        base_dir = env.get(ENV_BASE_DIR, "")
        config = cls(
            token=env.get(ENV_TOKEN, ""),
            username=env.get(ENV_USERNAME, ""),
            base_dir=Path(base_dir).expanduser() if base_dir else Path(""),
            api_url=env.get(ENV_API_URL, DEFAULT_API_URL),
            timeout=timeout,
            max_workers=max_workers,
            owner_directories=(
                env.get(ENV_OWNER_DIRECTORIES, "").strip().lower() in _TRUE_VALUES
            ),
        )
        return config.validate()
