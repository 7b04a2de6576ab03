"""API client for the GitHub REST API."""

from __future__ import annotations

import logging
import random
import time
from typing import Any

import httpx

from .config import DEFAULT_API_URL, DEFAULT_TIMEOUT
from .exceptions import (
    SgitAPIError,
    SgitAuthenticationError,
    SgitConfigError,
    SgitInvalidResponseError,
    SgitNetworkError,
    SgitNotFoundError,
    SgitPermissionError,
    SgitRateLimitError,
)

logger = logging.getLogger(__name__)

UNKNOWN_LANGUAGE = "unknown"


def _next_link(link_header: str | None) -> str | None:
    """Extract the ``rel="next"`` URL from a Link header."""
    if not link_header:
        return None
    for part in link_header.split(","):
        section = part.split(";")
        if len(section) < 2:
            continue
        url = section[0].strip()
        if any(s.strip() == 'rel="next"' for s in section[1:]):
            return url.strip("<>")
    return None


def select_primary_language(languages: dict[str, int]) -> str:
    """Pick the language with the largest byte count.

    Ties go to the language listed first by the API.

    Args:
        languages: Mapping of language name to byte count

    Returns:
        Lower-cased language name, or ``"unknown"`` when the mapping is empty
    """
    primary = UNKNOWN_LANGUAGE
    max_count = -1
    for name, count in languages.items():
        if count > max_count:
            primary = name
            max_count = count
    return primary.lower()


class GitHubClient:
    """Client for the subset of the GitHub API used by pysgit."""

    def __init__(
        self,
        token: str | None,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        """Initialize GitHub API client.

        Args:
            token: Personal access token sent as a bearer token
            api_url: API base URL (default: https://api.github.com)
            timeout: Per-request timeout in seconds (default: 5.0)
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
        """
        if not token:
            raise SgitConfigError(
                "Access token not configured. "
                "Please set GITHUB_TOKEN environment variable."
            )

        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Accept": "application/vnd.github+json",
                },
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Exponential backoff with +/- 25% jitter."""
        base_delay = self.retry_delay * (2**attempt)
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _handle_http_error(
        self, response: httpx.Response, attempt: int
    ) -> tuple[SgitAPIError, bool]:
        """Map an error response to an exception and decide whether to retry.

        Args:
            response: The non-2xx response
            attempt: Current attempt number (0-based)

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        status_code = response.status_code
        body = response.text
        detail = f"{status_code} {response.reason_phrase}: {body}".strip()

        if status_code == 401:
            return (
                SgitAuthenticationError(
                    f"Invalid token or unauthorized access ({detail})",
                    status_code,
                    body,
                ),
                False,
            )
        if status_code == 403 and response.headers.get("X-RateLimit-Remaining") != "0":
            return (
                SgitPermissionError(
                    f"Access forbidden ({detail})", status_code, body
                ),
                False,
            )
        if status_code == 404:
            return (
                SgitNotFoundError(f"Resource not found ({detail})", status_code, body),
                False,
            )
        if status_code in (403, 429):
            return (
                SgitRateLimitError(
                    f"Rate limit exceeded ({detail})", status_code, body
                ),
                attempt < self.max_retries,
            )

        error = SgitAPIError(
            f"API request failed with status {detail}", status_code, body
        )
        should_retry = 500 <= status_code < 600 and attempt < self.max_retries
        return (error, should_retry)

    def _send(
        self,
        method: str,
        url: str,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request with retry logic and return the successful response.

        Args:
            method: HTTP method
            url: Absolute URL or endpoint path relative to ``api_url``
            timeout: Per-call timeout override in seconds
            **kwargs: Additional arguments passed to httpx

        Raises:
            SgitAPIError: If the request fails after all retries
        """
        if not url.startswith(("http://", "https://")):
            url = f"{self.api_url}/{url.lstrip('/')}"
        if timeout is not None:
            kwargs["timeout"] = httpx.Timeout(min(timeout, self.timeout))

        client = self._get_client()
        last_exception: SgitAPIError | None = None

        for attempt in range(self.max_retries + 1):
            try:
                response = client.request(method, url, **kwargs)
            except httpx.RequestError as e:
                last_exception = SgitNetworkError(f"Network error: {e}")
                if attempt < self.max_retries:
                    delay = self._calculate_retry_delay(attempt)
                    logger.debug(
                        "%s %s failed (%s), retrying in %.2fs", method, url, e, delay
                    )
                    time.sleep(delay)
                    continue
                raise last_exception from e

            if response.is_success:
                return response

            error, should_retry = self._handle_http_error(response, attempt)
            last_exception = error
            if not should_retry:
                raise error

            retry_after = response.headers.get("Retry-After")
            if isinstance(error, SgitRateLimitError) and retry_after and retry_after.isdigit():
                delay = float(retry_after)
            else:
                delay = self._calculate_retry_delay(attempt)
            logger.debug(
                "%s %s returned %d, retrying in %.2fs",
                method,
                url,
                response.status_code,
                delay,
            )
            time.sleep(delay)

        if last_exception:
            raise last_exception
        raise SgitAPIError("Request failed after all retry attempts")

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise SgitInvalidResponseError(
                "Invalid JSON response from server",
                response.status_code,
                response.text,
            ) from e

    def _request(
        self, method: str, endpoint: str, timeout: float | None = None, **kwargs: Any
    ) -> Any:
        """Make an API request and return the decoded JSON body."""
        return self._decode(self._send(method, endpoint, timeout=timeout, **kwargs))

    # =========================
    # Repository Operations
    # =========================

    def list_repos(
        self, per_page: int = 100, timeout: float | None = None
    ) -> list[dict[str, Any]]:
        """List repositories owned by the authenticated account.

        Follows ``Link`` pagination until the last page.

        Args:
            per_page: Page size requested from the API
            timeout: Per-request timeout override in seconds

        Returns:
            List of repository objects as returned by the API

        Raises:
            SgitAPIError: If any page request fails
        """
        repos: list[dict[str, Any]] = []
        url: str | None = "/user/repos"
        params: dict[str, Any] | None = {"affiliation": "owner", "per_page": per_page}

        while url:
            response = self._send("GET", url, timeout=timeout, params=params)
            page = self._decode(response)
            if not isinstance(page, list):
                raise SgitInvalidResponseError(
                    f"Expected a list of repositories, got {type(page).__name__}",
                    response.status_code,
                    response.text,
                )
            repos.extend(page)
            url = _next_link(response.headers.get("Link"))
            # The next link already carries the query string
            params = None

        logger.debug("Listed %d remote repositories", len(repos))
        return repos

    def get_repo(
        self, owner: str, name: str, timeout: float | None = None
    ) -> dict[str, Any]:
        """Get a single repository object."""
        return self._request("GET", f"/repos/{owner}/{name}", timeout=timeout)

    def get_languages(
        self, owner: str, name: str, timeout: float | None = None
    ) -> dict[str, int]:
        """Get the language byte counts for a repository.

        Args:
            owner: Repository owner login
            name: Repository name
            timeout: Per-request timeout override in seconds

        Returns:
            Mapping of language name to number of bytes
        """
        result = self._request(
            "GET", f"/repos/{owner}/{name}/languages", timeout=timeout
        )
        if not isinstance(result, dict):
            raise SgitInvalidResponseError(
                f"Expected a language mapping for {owner}/{name}"
            )
        return result

    def get_primary_language(
        self, owner: str, name: str, timeout: float | None = None
    ) -> str:
        """Get the lower-cased primary language of a repository."""
        return select_primary_language(
            self.get_languages(owner, name, timeout=timeout)
        )

    def create_repo(self, name: str, private: bool = False) -> dict[str, Any]:
        """Create a repository for the authenticated account.

        Args:
            name: Repository name
            private: Whether the repository is private

        Returns:
            Created repository object
        """
        return self._request(
            "POST", "/user/repos", json={"name": name, "private": private}
        )

    def delete_repo(self, owner: str, name: str) -> None:
        """Delete a repository.

        Args:
            owner: Repository owner login
            name: Repository name
        """
        self._request("DELETE", f"/repos/{owner}/{name}")
