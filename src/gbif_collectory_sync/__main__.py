from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console

from .catalog import CollectoryClient
from .config import Settings
from .keys import read_dataset_keys
from .logging_utils import setup_logging
from .models import Outcome, SyncReport
from .outcome_log import OutcomeLog, default_log_path
from .registry import GbifRegistryClient
from .sync import run_sync

console = Console()
LOGGER = logging.getLogger("gbif_collectory_sync")


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"{value} must be at least 1")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gbif-collectory-sync",
        description="Create or update collectory data resources from GBIF dataset metadata.",
    )
    parser.add_argument(
        "--key-file",
        type=Path,
        help="Colon-delimited dataset key file (defaults to DATASET_KEY_FILE)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Map datasets and log the result without writing to the collectory",
    )
    parser.add_argument(
        "--limit",
        type=positive_int,
        help="Only process the first N keys (dry runs default to DRY_RUN_LIMIT)",
    )
    parser.add_argument("--log-level", help="Console log level (defaults to LOG_LEVEL)")
    return parser


def apply_arguments(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {}
    if args.key_file is not None:
        overrides["key_file"] = args.key_file
    if args.dry_run is not None:
        overrides["dry_run"] = args.dry_run
    if args.log_level:
        overrides["log_level"] = args.log_level.upper()
    return replace(settings, **overrides) if overrides else settings


async def run(settings: Settings, limit: Optional[int] = None) -> SyncReport:
    if limit is None and settings.dry_run:
        limit = settings.dry_run_limit

    log_path = default_log_path(settings.split_dir)
    with OutcomeLog.open(log_path) as outcome_log:
        outcome_log.write(
            f"config: gbif={settings.gbif_api_base} collectory={settings.collectory_base} "
            f"primary={settings.primary_base} split_dir={settings.split_dir}"
        )
        keys = read_dataset_keys(settings.key_file, outcome_log)

        async with GbifRegistryClient(
            settings.gbif_api_base, settings.http_timeout
        ) as registry, CollectoryClient(
            settings.collectory_base,
            settings.http_timeout,
            api_key=settings.collectory_api_key,
        ) as catalog:
            with console.status(f"Syncing {len(keys)} datasets..."):
                return await run_sync(
                    keys,
                    registry,
                    catalog,
                    outcome_log,
                    options=settings.mapping_options(),
                    not_found_is_error=settings.not_found_is_error,
                    dry_run=settings.dry_run,
                    limit=limit,
                )


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        settings = apply_arguments(Settings.from_env(), args)
    except Exception as exc:  # pragma: no cover - guard for CLI usage
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings.log_level, console=console)

    if not settings.key_file.is_file():
        LOGGER.error("Dataset key file %s does not exist", settings.key_file)
        sys.exit(1)

    try:
        report = asyncio.run(run(settings, limit=args.limit))
    except Exception:
        LOGGER.exception("Sync aborted")
        sys.exit(3)

    counts = report.counts()
    LOGGER.info(
        "Sync finished: %s created, %s updated, %s skipped, %s failed",
        counts[Outcome.CREATED],
        counts[Outcome.UPDATED],
        counts[Outcome.SKIPPED_NOT_FOUND],
        counts[Outcome.ERROR_AMBIGUOUS]
        + counts[Outcome.ERROR_UPSTREAM]
        + counts[Outcome.ERROR_MALFORMED],
    )


if __name__ == "__main__":
    main()
