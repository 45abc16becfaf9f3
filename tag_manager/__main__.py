# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""
Command line entry point.

Usage:
    python -m tag_manager compliance [--subscription-id ID] [--policy-id ID]
    python -m tag_manager check-alerts [--frequency daily|weekly|monthly]
    python -m tag_manager report coverage|inventory|tags [--subscription-id ID]
    python -m tag_manager scheduler

The bearer token is read from --token or the AZURE_ACCESS_TOKEN
environment variable. Results are printed as JSON.
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from .clients.arm_client import NotFoundError, UpstreamError
from .clients.repository import RepositoryError
from .config import settings
from .container import ServiceContainer
from .models.enums import AlertFrequency
from .utils.logging_config import configure_logging

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "AZURE_ACCESS_TOKEN"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tag_manager",
        description="Azure tag governance: compliance checks, alerts and reports",
    )
    parser.add_argument(
        "--token",
        help=f"Azure Resource Manager bearer token (default: ${TOKEN_ENV_VAR})",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level (default: LOG_LEVEL setting)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    compliance = commands.add_parser("compliance", help="Check tag compliance")
    compliance.add_argument("--subscription-id", help="Only check this subscription")
    compliance.add_argument("--policy-id", help="Only check this policy")

    alerts = commands.add_parser("check-alerts", help="Run enabled alert rules now")
    alerts.add_argument(
        "--frequency",
        choices=[f.value for f in AlertFrequency],
        help="Only run alerts of this frequency",
    )

    report = commands.add_parser("report", help="Generate a tag report")
    report.add_argument("kind", choices=["coverage", "inventory", "tags"])
    report.add_argument("--subscription-id", help="Only report on this subscription")
    report.add_argument(
        "--details", action="store_true", help="Include per-resource rows (coverage)"
    )

    commands.add_parser("scheduler", help="Run scheduled alert checks until interrupted")

    return parser


def resolve_token(args: argparse.Namespace) -> str | None:
    return args.token or os.environ.get(TOKEN_ENV_VAR)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


async def _run_scheduler(container: ServiceContainer) -> None:
    if container.scheduler_service is None or not container.scheduler_service.is_running:
        raise RuntimeError("Alert scheduler is not running; check SCHEDULER_ENABLED")

    logger.info(f"Scheduler status: {container.scheduler_service.get_status()}")
    await asyncio.Event().wait()


async def run_command(args: argparse.Namespace, token: str) -> None:
    async def token_provider() -> str:
        # Re-read on every run so a refreshed token is picked up
        return os.environ.get(TOKEN_ENV_VAR) or token

    container = ServiceContainer(token_provider=token_provider)
    await container.initialize(start_scheduler=args.command == "scheduler")
    try:
        if args.command == "compliance":
            report = await container.compliance_service.check_compliance(
                token, subscription_id=args.subscription_id, policy_id=args.policy_id
            )
            _print_json(report.model_dump(mode="json"))

        elif args.command == "check-alerts":
            outcomes = await container.alert_service.run_all_enabled(token, args.frequency)
            _print_json([o.model_dump(mode="json") for o in outcomes])

        elif args.command == "report":
            reports = container.report_service
            if args.kind == "coverage":
                result = await reports.generate_tag_coverage_report(
                    token, args.subscription_id, include_details=args.details
                )
            elif args.kind == "inventory":
                result = await reports.generate_inventory_report(token, args.subscription_id)
            else:
                result = await reports.get_tag_inventory(token, args.subscription_id)
            _print_json(result.model_dump(mode="json"))

        elif args.command == "scheduler":
            await _run_scheduler(container)
    finally:
        await container.shutdown()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level or settings().log_level)

    token = resolve_token(args)
    if not token:
        parser.error(f"a bearer token is required (--token or ${TOKEN_ENV_VAR})")

    try:
        asyncio.run(run_command(args, token))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except (UpstreamError, NotFoundError, RepositoryError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
