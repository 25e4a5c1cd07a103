"""CLI entry point: python -m processing {aggregate,quota}

  aggregate  Build the canonical process aggregate, either from PostgreSQL
             (``--process-id``) or from a JSON bundle (``--input``), and
             print it as JSON.
  quota      Evaluate whether a company may trigger another external
             synchronization.  Exit status: 0 allowed, 1 blocked,
             2 plan missing or misconfigured.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

from models.plan import PlanLimits, SyncUsage

from processing.transformers.process import ProcessBundle
from processing.validators.sync_quota import (
    PLAN_COLUMNS,
    PlanMisconfiguredError,
    evaluate_sync_availability,
    plan_limits_from_row,
)

logger = logging.getLogger("processing")

EXIT_ALLOWED = 0
EXIT_BLOCKED = 1
EXIT_MISCONFIGURED = 2


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def _add_pg_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--pg-dsn",
        default=os.environ.get("JURISFLOW_PG_URI", ""),
        help="PostgreSQL DSN. Falls back to $JURISFLOW_PG_URI env var.",
    )
    parser.add_argument(
        "--pool-size",
        type=int,
        default=os.environ.get("JURISFLOW_PG_POOL_SIZE", "4"),
        help="Max PostgreSQL pool size. Falls back to $JURISFLOW_PG_POOL_SIZE (default: 4).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m processing",
        description="jurisflow process engine: aggregate processes, evaluate sync quotas.",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    commands = parser.add_subparsers(dest="command", required=True)

    aggregate = commands.add_parser("aggregate", help="Build and print a process aggregate.")
    aggregate.add_argument("--process-id", type=int, help="processos.id to load from PostgreSQL.")
    aggregate.add_argument(
        "--company-id",
        type=int,
        help="Restrict the lookup to this company (tenant).",
    )
    aggregate.add_argument(
        "--input",
        type=Path,
        help="JSON bundle with base_row, trigger_blob, movements, attachments, "
        "crawler_participants and opportunity_participants.",
    )
    _add_pg_arguments(aggregate)

    quota = commands.add_parser("quota", help="Evaluate sync availability for a company.")
    quota.add_argument("--company-id", type=int, help="Company whose plan and usage are read.")
    quota.add_argument(
        "--plan",
        type=Path,
        help="JSON file with plan limits (field names or planos columns).",
    )
    quota.add_argument(
        "--usage",
        type=int,
        default=0,
        help="Usage in the current period when --plan is given (default: 0).",
    )
    _add_pg_arguments(quota)

    return parser


def _read_json(path: Path) -> Any:
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


def _print_json(payload: str) -> None:
    sys.stdout.write(payload + "\n")


# ------------------------------------------------------------------
# aggregate
# ------------------------------------------------------------------


def _load_bundle(args: argparse.Namespace) -> Optional[ProcessBundle]:
    if args.input is not None:
        data = _read_json(args.input)
        if not isinstance(data, dict):
            raise ValueError(f"{args.input}: expected a JSON object")
        return ProcessBundle.from_dict(data)

    from processing.loaders import PostgresProcessReader

    with PostgresProcessReader(args.pg_dsn, max_size=args.pool_size) as reader:
        return reader.load_process_bundle(args.process_id, args.company_id)


def _run_aggregate(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    if args.input is None and (args.process_id is None or not args.pg_dsn):
        parser.error("aggregate requires --input, or --process-id with a PostgreSQL DSN")

    try:
        bundle = _load_bundle(args)
    except (OSError, ValueError) as exc:
        logger.error("Could not read bundle: %s", exc)
        return EXIT_BLOCKED

    if bundle is None:
        logger.error("Process %s not found", args.process_id)
        return EXIT_BLOCKED

    aggregate = bundle.to_aggregate()
    _print_json(aggregate.model_dump_json(indent=2))
    return EXIT_ALLOWED


# ------------------------------------------------------------------
# quota
# ------------------------------------------------------------------


def _plan_from_file(path: Path) -> PlanLimits:
    data = _read_json(path)
    if not isinstance(data, dict):
        raise PlanMisconfiguredError(f"{path}: expected a JSON object")
    if any(column in data for column in PLAN_COLUMNS):
        return plan_limits_from_row(data)
    try:
        return PlanLimits.model_validate(data)
    except ValueError as exc:
        raise PlanMisconfiguredError(f"{path}: {exc}") from exc


def _load_plan_and_usage(
    args: argparse.Namespace,
) -> tuple[Optional[PlanLimits], int | SyncUsage]:
    if args.plan is not None:
        return _plan_from_file(args.plan), args.usage

    from processing.loaders import PostgresProcessReader

    with PostgresProcessReader(args.pg_dsn, max_size=args.pool_size) as reader:
        limits = reader.fetch_plan_limits(args.company_id)
        if limits is None:
            return None, 0
        return limits, reader.count_sync_usage(args.company_id)


def _run_quota(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    if args.plan is None and (args.company_id is None or not args.pg_dsn):
        parser.error("quota requires --plan, or --company-id with a PostgreSQL DSN")
    if args.usage < 0:
        parser.error("--usage must be >= 0")

    try:
        limits, usage = _load_plan_and_usage(args)
    except (OSError, json.JSONDecodeError, PlanMisconfiguredError) as exc:
        logger.error("Plan misconfigured: %s", exc)
        return EXIT_MISCONFIGURED

    if limits is None:
        logger.error("No plan found for company %s", args.company_id)
        return EXIT_MISCONFIGURED

    quota = evaluate_sync_availability(limits, usage)
    _print_json(quota.model_dump_json(indent=2))
    return EXIT_ALLOWED if quota.allowed else EXIT_BLOCKED


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "aggregate":
        return _run_aggregate(args, parser)
    return _run_quota(args, parser)


if __name__ == "__main__":
    sys.exit(main())
