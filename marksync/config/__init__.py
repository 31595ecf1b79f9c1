from __future__ import annotations

from .github import GitHubConfig
from .identity import IdentityConfig
from .settings import AppConfig, RuntimeConfig, Settings, load_config
from .sync import SyncConfig

__all__ = [
    "AppConfig",
    "GitHubConfig",
    "IdentityConfig",
    "RuntimeConfig",
    "Settings",
    "SyncConfig",
    "load_config",
]
