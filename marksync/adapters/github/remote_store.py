"""``RemoteStore`` backed by a JSON file in a GitHub repository.

The blob sha of the data file is the version token: GitHub rejects a
contents write whose base sha is stale, which gives optimistic concurrency
for free.
"""

from __future__ import annotations

import json
import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from marksync.adapters.github.client import (
    GitHubClientError,
    GitHubConflictError,
    GitHubDecodeError,
)
from marksync.domain.exceptions import AdapterError, ValidationError, VersionConflictError
from marksync.presentation.markdown import render_markdown
from marksync.sync.protocols import RemoteSnapshot

if TYPE_CHECKING:
    from marksync.adapters.github.client import GitHubContentsClient
    from marksync.config import GitHubConfig
    from marksync.domain.models.record import Document

logger = logging.getLogger(__name__)


def serialize_document(document: Document) -> str:
    return json.dumps(document.to_wire(), indent=2, ensure_ascii=False) + "\n"


class GitHubRemoteStore:
    def __init__(
        self,
        client: GitHubContentsClient,
        *,
        data_path: str = "bookmarks/data.json",
        readme_path: str | None = "bookmarks/README.md",
    ) -> None:
        self._client = client
        self.data_path = data_path
        self.readme_path = readme_path

    @classmethod
    def from_config(cls, client: GitHubContentsClient, config: GitHubConfig) -> GitHubRemoteStore:
        return cls(
            client,
            data_path=config.data_path,
            readme_path=config.readme_path if config.render_readme else None,
        )

    async def read(self) -> RemoteSnapshot:
        try:
            file = await self._client.get_file(self.data_path)
        except GitHubDecodeError as exc:
            msg = f"Remote document {self.data_path} could not be decoded: {exc}"
            raise ValidationError(msg, errors=[f"root: {exc}"]) from exc
        except GitHubClientError as exc:
            raise AdapterError(
                f"Failed to read remote document: {exc}",
                adapter="github",
                operation="read",
                details={"path": self.data_path, "status_code": exc.status_code},
            ) from exc

        if file is None:
            return RemoteSnapshot(payload=None, version_token=None)

        try:
            payload = json.loads(file.content)
        except json.JSONDecodeError as exc:
            msg = f"Remote document {self.data_path} is not valid JSON: {exc.msg}"
            raise ValidationError(msg, errors=[f"root: {exc.msg}"]) from exc

        return RemoteSnapshot(payload=payload, version_token=file.sha)

    async def write(self, document: Document, expected_version_token: str | None) -> str:
        count = len(document.records)
        message = f"sync: update {count} bookmark{'s' if count != 1 else ''}"
        try:
            new_sha = await self._client.put_file(
                self.data_path,
                serialize_document(document),
                message,
                sha=expected_version_token,
            )
        except GitHubConflictError as exc:
            raise VersionConflictError(
                f"Remote document {self.data_path} changed since it was read",
                expected_token=expected_version_token,
            ) from exc
        except GitHubClientError as exc:
            raise AdapterError(
                f"Failed to write remote document: {exc}",
                adapter="github",
                operation="write",
                details={"path": self.data_path, "status_code": exc.status_code},
            ) from exc

        await self._refresh_readme(document)
        return new_sha

    async def _refresh_readme(self, document: Document) -> bool:
        """Re-render the README; failures are logged and never fail the write."""
        if not self.readme_path:
            return False
        data_file = PurePosixPath(self.data_path).name
        try:
            content = render_markdown(document, data_file=data_file)
            existing = await self._client.get_file(self.readme_path)
            if existing is not None and existing.content == content:
                return False
            await self._client.put_file(
                self.readme_path,
                content,
                "docs: update README from bookmark data",
                sha=existing.sha if existing else None,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "github_readme_refresh_failed",
                extra={
                    "path": self.readme_path,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            return False
        return True
