"""Command-line entry point for an engagement scoring run.

Target selection comes from ``TRIAGE_ASSISTANT_*`` environment variables and
may be overridden with flags; weights come from the workspace's
``.triagerc.yml``.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses as dc
import os
from pathlib import Path

import httpx

from triage_assistant.github.client import GitHubGraphQLClient, GitHubGraphQLConfig
from triage_assistant.github.errors import (
    GitHubAPIError,
    GitHubConfigError,
    GitHubResponseShapeError,
    NotFoundError,
)
from triage_assistant.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

from .config import EngagementConfig, load_engagement_settings, normalize_weights
from .errors import EngagementConfigError
from .service import EngagementService
from .sink import write_engagement_response
from .updater import update_project_with_scores

logger = get_logger(__name__)

_RUN_ERRORS = (
    EngagementConfigError,
    GitHubConfigError,
    GitHubAPIError,
    GitHubResponseShapeError,
    NotFoundError,
    TimeoutError,
    httpx.HTTPError,
)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="triage-engagement", description="Score GitHub issue engagement."
    )
    parser.add_argument("--project-number", type=int, default=None)
    parser.add_argument("--issue-number", type=int, default=None)
    parser.add_argument(
        "--workspace",
        type=Path,
        default=Path(),
        help="Directory containing .triagerc.yml",
    )
    parser.add_argument("--temp-dir", type=Path, default=None)
    parser.add_argument(
        "--apply-scores",
        action="store_true",
        default=None,
        help="Write scores to the project field",
    )
    parser.add_argument("--dry-run", action="store_true", default=None)
    parser.add_argument(
        "--log-level",
        default=os.environ.get("TRIAGE_ASSISTANT_LOG_LEVEL", "INFO"),
    )
    return parser


def _apply_overrides(
    config: EngagementConfig, args: argparse.Namespace
) -> EngagementConfig:
    overrides = {
        "project_number": args.project_number,
        "issue_number": args.issue_number,
        "temp_dir": args.temp_dir,
        "apply_scores": args.apply_scores,
        "dry_run": args.dry_run,
    }
    return dc.replace(
        config, **{key: value for key, value in overrides.items() if value is not None}
    )


async def run_engagement(config: EngagementConfig, workspace: Path) -> int:
    """Score, persist and optionally apply engagement for one run.

    Returns the number of project items updated.
    """
    settings = load_engagement_settings(workspace)
    weights = normalize_weights(settings.weights, settings.groups)
    client = GitHubGraphQLClient(GitHubGraphQLConfig.from_env())
    try:
        service = EngagementService(client, weights)
        response = await service.calculate_engagement_scores(config)
        if config.temp_dir is not None:
            await write_engagement_response(response, config.temp_dir)
        return await update_project_with_scores(config, client, response)
    finally:
        await client.aclose()


def main(argv: list[str] | None = None) -> int:
    """Run engagement scoring from the command line.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Exit code: 0 on success, 1 when the run fails.

    """
    args = _parser().parse_args(argv)
    level, invalid = configure_logging(args.log_level)
    if invalid:
        log_warning(logger, "Invalid log level %r; using %s", args.log_level, level)

    try:
        config = _apply_overrides(EngagementConfig.from_env(), args)
        updated = asyncio.run(run_engagement(config, args.workspace))
    except _RUN_ERRORS as exc:
        log_error(logger, "Engagement scoring failed: %s", exc)
        return 1

    log_info(logger, "Engagement scoring finished; %d items updated", updated)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
