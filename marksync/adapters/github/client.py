"""GitHub contents API client."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import quote

import httpx

from marksync.core.backoff import sleep_backoff

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from typing import Self

logger = logging.getLogger(__name__)

T = TypeVar("T")

# HTTP status codes that should trigger a retry
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0  # seconds
DEFAULT_MAX_DELAY = 30.0  # seconds

GITHUB_API_VERSION = "2022-11-28"


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GitHubConflictError(GitHubClientError):
    """The file changed since the sha the write was based on."""


class GitHubDecodeError(GitHubClientError):
    """A response or file body could not be decoded."""


@dataclass(frozen=True)
class GitHubFile:
    path: str
    sha: str
    content: str


def _is_retryable_error(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(
        exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)
    )


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    operation_name: str = "operation",
) -> T:
    """Execute an async function, retrying transient HTTP failures.

    Non-retryable status errors propagate unchanged for the caller to map.

    Raises:
        GitHubClientError: If all retries are exhausted, or on any other
            non-retryable httpx failure
    """
    for attempt in range(max_retries + 1):
        try:
            return await func()
        except httpx.HTTPError as e:
            if not _is_retryable_error(e):
                if isinstance(e, httpx.HTTPStatusError):
                    raise
                msg = f"{operation_name} failed: {e}"
                raise GitHubClientError(msg) from e

            status_code = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
            if attempt == max_retries:
                logger.error(
                    "github_retry_exhausted",
                    extra={
                        "operation": operation_name,
                        "attempts": attempt + 1,
                        "error": str(e),
                    },
                )
                msg = f"{operation_name} failed after {attempt + 1} attempts: {e}"
                raise GitHubClientError(msg, status_code=status_code) from e

            logger.warning(
                "github_retry_attempt",
                extra={
                    "operation": operation_name,
                    "attempt": attempt + 1,
                    "max_retries": max_retries,
                    "status_code": status_code,
                    "error": str(e),
                },
            )
            await sleep_backoff(attempt, backoff_base=base_delay, max_delay=max_delay)

    msg = f"{operation_name} failed"
    raise GitHubClientError(msg)


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict):
        return str(data.get("message") or data)[:200]
    return str(data)[:200]


def _json_body(response: httpx.Response, what: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        msg = f"Malformed GitHub response for {what}: {exc}"
        raise GitHubDecodeError(msg, status_code=response.status_code) from exc


class GitHubContentsClient:
    """Async client for one repository's contents API.

    Use as an async context manager; the underlying ``httpx.AsyncClient`` lives
    for the duration of the block.
    """

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        *,
        branch: str = "main",
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_BASE_DELAY,
        retry_max_delay: float = DEFAULT_MAX_DELAY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token = token
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
            },
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise GitHubClientError("Client not initialized. Use async context manager.")
        return self._client

    def _contents_url(self, path: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{quote(path.strip('/'))}"

    async def _with_retry(self, func: Callable[[], Awaitable[T]], operation_name: str) -> T:
        return await retry_with_backoff(
            func,
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
            operation_name=operation_name,
        )

    async def authenticate(self) -> str:
        """Verify the token and return the authenticated login."""

        async def _fetch() -> httpx.Response:
            response = await self.client.get("/user")
            response.raise_for_status()
            return response

        try:
            response = await self._with_retry(_fetch, "authenticate")
        except httpx.HTTPStatusError as exc:
            msg = f"GitHub authentication failed: {_error_message(exc.response)}"
            raise GitHubClientError(msg, status_code=exc.response.status_code) from exc
        data = _json_body(response, "/user")
        login = str(data.get("login", "")) if isinstance(data, dict) else ""
        logger.info("github_authenticated", extra={"login": login})
        return login

    async def get_file(self, path: str) -> GitHubFile | None:
        """Fetch and decode a file; ``None`` when it does not exist."""

        async def _fetch() -> httpx.Response:
            response = await self.client.get(self._contents_url(path), params={"ref": self.branch})
            if response.status_code == 404:
                return response
            response.raise_for_status()
            return response

        try:
            response = await self._with_retry(_fetch, "get_file")
        except httpx.HTTPStatusError as exc:
            msg = f"Failed to read {path}: {_error_message(exc.response)}"
            raise GitHubClientError(msg, status_code=exc.response.status_code) from exc

        if response.status_code == 404:
            logger.debug("github_file_missing", extra={"path": path})
            return None

        data = _json_body(response, path)
        if not isinstance(data, dict) or data.get("type", "file") != "file":
            msg = f"{path} is not a file"
            raise GitHubClientError(msg, status_code=response.status_code)
        if not data.get("sha"):
            msg = f"GitHub returned no sha for {path}"
            raise GitHubDecodeError(msg, status_code=response.status_code)

        sha = str(data["sha"])
        encoded = data.get("content") or ""
        if data.get("encoding") != "base64" or (not encoded and data.get("size", 0)):
            # Files above 1 MB come back without inline content.
            encoded = await self._get_blob(sha)
        try:
            content = base64.b64decode(encoded).decode("utf-8")
        except ValueError as exc:
            msg = f"{path} is not base64-encoded UTF-8 text: {exc}"
            raise GitHubDecodeError(msg, status_code=response.status_code) from exc
        return GitHubFile(path=path, sha=sha, content=content)

    async def _get_blob(self, sha: str) -> str:
        async def _fetch() -> httpx.Response:
            response = await self.client.get(f"/repos/{self.owner}/{self.repo}/git/blobs/{sha}")
            response.raise_for_status()
            return response

        try:
            response = await self._with_retry(_fetch, "get_blob")
        except httpx.HTTPStatusError as exc:
            msg = f"Failed to read blob {sha}: {_error_message(exc.response)}"
            raise GitHubClientError(msg, status_code=exc.response.status_code) from exc
        data = _json_body(response, f"blob {sha}")
        return str(data.get("content", "")) if isinstance(data, dict) else ""

    async def put_file(
        self,
        path: str,
        content: str,
        message: str,
        *,
        sha: str | None = None,
    ) -> str:
        """Create or replace a file and return the new blob sha.

        ``sha`` must be the blob sha the change is based on (omit to create).

        Raises:
            GitHubConflictError: If the file changed since ``sha`` (409, or 422 on sha mismatch)
            GitHubClientError: On any other failure
        """
        body: dict[str, str] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": self.branch,
        }
        if sha:
            body["sha"] = sha

        async def _put() -> httpx.Response:
            response = await self.client.put(self._contents_url(path), json=body)
            response.raise_for_status()
            return response

        try:
            response = await self._with_retry(_put, "put_file")
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            detail = _error_message(exc.response)
            if status == 409 or (status == 422 and "sha" in detail.lower()):
                logger.info(
                    "github_put_conflict",
                    extra={"path": path, "status_code": status, "expected_sha": sha},
                )
                msg = f"{path} changed since sha {sha}: {detail}"
                raise GitHubConflictError(msg, status_code=status) from exc
            msg = f"Failed to write {path}: {detail}"
            raise GitHubClientError(msg, status_code=status) from exc

        data = _json_body(response, path)
        try:
            new_sha = str(data["content"]["sha"])
        except (KeyError, TypeError) as exc:
            msg = f"GitHub returned no sha after writing {path}"
            raise GitHubDecodeError(msg, status_code=response.status_code) from exc
        logger.info("github_file_written", extra={"path": path, "sha": new_sha})
        return new_sha
