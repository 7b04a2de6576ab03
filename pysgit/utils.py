"""Utility functions for pysgit."""

import re
from dataclasses import dataclass
from typing import Optional

# =============================================================================
# Comma-separated option values
# =============================================================================


def parse_comma_separated(value: Optional[str]) -> list[str]:
    """Split a comma-separated option value, dropping empty parts.

    Args:
        value: Raw option value (e.g., "go,,rust")

    Returns:
        List of non-empty, stripped parts (e.g., ["go", "rust"])
    """
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


# =============================================================================
# Repository argument parsing
# =============================================================================

_SCP_LIKE = re.compile(r"^[\w.-]+@[\w.-]+:(?P<path>.+)$")


@dataclass
class RepoReference:
    """A repository named on the command line."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


def parse_repo_argument(argument: str, default_owner: str) -> RepoReference:
    """Parse a repository argument into owner and name.

    Accepted forms: ``name``, ``owner/name``, ``git@host:owner/name.git`` and
    ``https://host/owner/name(.git)``.

    Args:
        argument: Command-line argument
        default_owner: Owner used when the argument names only a repository

    Returns:
        RepoReference

    Raises:
        ValueError: If no repository name can be extracted
    """
    value = argument.strip().rstrip("/")
    match = _SCP_LIKE.match(value)
    if match:
        value = match.group("path")
    elif "://" in value:
        rest = value.split("://", 1)[1]
        value = rest.split("/", 1)[1] if "/" in rest else ""

    if value.endswith(".git"):
        value = value[:-4]

    parts = [p for p in value.split("/") if p]
    if not parts:
        raise ValueError(f"Cannot parse repository from {argument!r}")

    name = parts[-1]
    owner = parts[-2] if len(parts) > 1 else default_owner
    return RepoReference(owner=owner, name=name)
