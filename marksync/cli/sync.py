"""Command line entry point: ``python -m marksync.cli.sync``.

``run`` performs one sync cycle against the configured GitHub repository,
using the JSON file local store and the SQLite snapshot store. ``render``
prints the markdown projection of a document file.

Exit codes: 0 success, 2 conflicts pending, 1 error.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from marksync.adapters.github.client import GitHubContentsClient
from marksync.adapters.github.remote_store import GitHubRemoteStore
from marksync.adapters.json_file import JsonFileLocalStore
from marksync.config import AppConfig, load_config
from marksync.core.logging_utils import setup_json_logging
from marksync.db.session import DatabaseSessionManager
from marksync.domain.exceptions import ValidationError
from marksync.domain.models.sync_state import SyncDirection, SyncState
from marksync.domain.services.identity import IdentityResolver
from marksync.domain.services.merge import ConflictStrategy
from marksync.domain.services.schema import parse_document
from marksync.infrastructure.persistence.sqlite.snapshot_repository import SqliteSnapshotStore
from marksync.presentation.markdown import render_markdown
from marksync.sync.context import build_sync_context
from marksync.sync.results import SyncResult

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFLICTS = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        prog="marksync",
        description="Synchronize bookmarks with a shared JSON document on GitHub",
        allow_abbrev=False,
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level for this session.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run one sync cycle")
    run.add_argument(
        "--direction",
        choices=[d.value for d in SyncDirection],
        help="Override SYNC_DIRECTION for this run.",
    )
    run.add_argument(
        "--strategy",
        choices=[s.value for s in ConflictStrategy],
        help="Override SYNC_STRATEGY for this run.",
    )
    run.add_argument(
        "--local",
        type=Path,
        help="Local bookmarks JSON file (defaults to LOCAL_BOOKMARKS_PATH).",
    )
    run.add_argument(
        "--db-path",
        type=Path,
        help="State database path (defaults to STATE_DB_PATH).",
    )

    render = sub.add_parser("render", help="Print a document as markdown")
    render.add_argument("document", type=Path, help="Path to a bookmarks document JSON file")
    render.add_argument("--group-by", choices=["folder", "tag"], default="folder")
    return parser.parse_args(argv)


def exit_code_for(result: SyncResult) -> int:
    if result.success:
        return EXIT_OK
    if result.final_state == SyncState.CONFLICT:
        return EXIT_CONFLICTS
    return EXIT_ERROR


async def run_sync(args: argparse.Namespace, cfg: AppConfig) -> SyncResult:
    github = cfg.github
    identity = IdentityResolver.from_config(cfg.identity)
    session = DatabaseSessionManager(str(args.db_path or cfg.runtime.state_db_path))
    session.migrate()
    try:
        async with GitHubContentsClient(
            github.token,
            github.repo_owner,
            github.repo_name,
            branch=github.branch,
            api_url=github.api_url,
            timeout=github.timeout_sec,
            max_retries=github.max_retries,
        ) as client:
            context = build_sync_context(
                cfg,
                remote_store=GitHubRemoteStore.from_config(client, github),
                local_store=JsonFileLocalStore(
                    args.local or cfg.runtime.local_bookmarks_path, identity
                ),
                snapshot_store=SqliteSnapshotStore(session, key=github.snapshot_key),
                auto_start=False,
            )
            return await context.orchestrator.trigger(args.direction, args.strategy)
    finally:
        session.close()


def render_document(path: Path, *, id_prefix: str, group_by: str) -> str:
    payload = json.loads(path.read_text(encoding="utf-8"))
    document = parse_document(payload, id_prefix=id_prefix)
    return render_markdown(document, group_by="tag" if group_by == "tag" else "folder")


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``python -m marksync.cli.sync``."""
    args = parse_args(argv)
    try:
        cfg = load_config()
    except RuntimeError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_ERROR

    setup_json_logging(
        args.log_level or cfg.runtime.log_level,
        log_file=cfg.runtime.log_file,
        stream=sys.stderr,
    )

    if args.command == "render":
        try:
            markdown = render_document(
                args.document, id_prefix=cfg.identity.id_prefix, group_by=args.group_by
            )
            print(markdown)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            logger.error(
                "cli_render_failed", extra={"path": str(args.document), "error": str(exc)}
            )
            print(f"Cannot render {args.document}: {exc}", file=sys.stderr)
            return EXIT_ERROR
        return EXIT_OK

    if not cfg.github.is_configured:
        print(
            "GITHUB_TOKEN, GITHUB_REPO_OWNER and GITHUB_REPO_NAME must be set",
            file=sys.stderr,
        )
        return EXIT_ERROR

    try:
        result = asyncio.run(run_sync(args, cfg))
    except KeyboardInterrupt:  # pragma: no cover - user cancelled
        return EXIT_ERROR
    except Exception as exc:
        logger.exception("cli_sync_failed", exc_info=exc)
        return EXIT_ERROR

    print(result.model_dump_json(indent=2, by_alias=True))
    return exit_code_for(result)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
