from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ._validators import (
    _ensure_token,
    _parse_bounded_int,
    validate_repo_part,
    validate_repo_path,
)


class GitHubConfig(BaseModel):
    """GitHub repository holding the shared bookmark document."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    token: str = Field(default="", validation_alias="GITHUB_TOKEN")
    repo_owner: str = Field(default="", validation_alias="GITHUB_REPO_OWNER")
    repo_name: str = Field(default="", validation_alias="GITHUB_REPO_NAME")
    branch: str = Field(default="main", validation_alias="GITHUB_BRANCH")
    api_url: str = Field(default="https://api.github.com", validation_alias="GITHUB_API_URL")
    data_path: str = Field(default="bookmarks/data.json", validation_alias="GITHUB_DATA_PATH")
    readme_path: str = Field(default="bookmarks/README.md", validation_alias="GITHUB_README_PATH")
    render_readme: bool = Field(default=True, validation_alias="GITHUB_RENDER_README")
    timeout_sec: int = Field(default=30, validation_alias="GITHUB_TIMEOUT_SEC")
    max_retries: int = Field(default=3, validation_alias="GITHUB_MAX_RETRIES")

    @field_validator("token", mode="before")
    @classmethod
    def _validate_token(cls, value: Any) -> str:
        return _ensure_token(value, name="GitHub")

    @field_validator("repo_owner", mode="before")
    @classmethod
    def _validate_owner(cls, value: Any) -> str:
        return validate_repo_part(value, name="GitHub repository owner")

    @field_validator("repo_name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        return validate_repo_part(value, name="GitHub repository name")

    @field_validator("branch", mode="before")
    @classmethod
    def _validate_branch(cls, value: Any) -> str:
        branch = str(value or "main").strip()
        if not branch or any(ch.isspace() for ch in branch) or ".." in branch:
            msg = f"Invalid GitHub branch name: {value!r}"
            raise ValueError(msg)
        return branch

    @field_validator("api_url", mode="before")
    @classmethod
    def _validate_api_url(cls, value: Any) -> str:
        url = str(value or "https://api.github.com").strip()
        if not url.startswith(("http://", "https://")):
            msg = "GitHub API URL must start with http:// or https://"
            raise ValueError(msg)
        return url.rstrip("/")

    @field_validator("data_path", mode="before")
    @classmethod
    def _validate_data_path(cls, value: Any) -> str:
        return validate_repo_path(value, default="bookmarks/data.json", name="GitHub data path")

    @field_validator("readme_path", mode="before")
    @classmethod
    def _validate_readme_path(cls, value: Any) -> str:
        return validate_repo_path(value, default="bookmarks/README.md", name="GitHub README path")

    @field_validator("timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> int:
        return _parse_bounded_int(value, default=30, low=1, high=300, label="GitHub timeout")

    @field_validator("max_retries", mode="before")
    @classmethod
    def _validate_retries(cls, value: Any) -> int:
        return _parse_bounded_int(value, default=3, low=0, high=10, label="GitHub max retries")

    @property
    def is_configured(self) -> bool:
        return bool(self.token and self.repo_owner and self.repo_name)

    @property
    def snapshot_key(self) -> str:
        """Identifies the remote document; one base snapshot is kept per key."""
        return f"github:{self.repo_owner}/{self.repo_name}@{self.branch}:{self.data_path}"
