"""Command line entry point: ``cyverify verify``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import ValidationError

from cyverify import __version__
from cyverify.config.settings import VerifySettings
from cyverify.errors import VerificationError
from cyverify.logging_config import setup_logging
from cyverify.verify import OutcomeStatus, VerificationOutcome, VerifyOptions, start

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cyverify",
        description="Verify that the installed Cypress binary can run on this machine.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    verify_parser = subparsers.add_parser("verify", help="Smoke test the installed binary")
    verify_parser.add_argument("--force", action="store_true", help="Run the smoke test even if already verified")
    verify_parser.add_argument("--path", dest="cypress_path", help="Binary directory to verify instead of the cache")
    verify_parser.add_argument(
        "--no-welcome",
        dest="welcome_message",
        action="store_false",
        help="Do not print the 'Opening Cypress...' line",
    )
    verify_parser.add_argument("--timeout", type=float, help="Smoke test timeout in seconds")
    verify_parser.add_argument("--config", type=Path, help="YAML settings file")
    verify_parser.add_argument("--log-level", help="Console log level")
    verify_parser.add_argument("--log-dir", help="Also write log files to this directory")
    return parser


def _load_settings(args: argparse.Namespace) -> VerifySettings:
    settings = VerifySettings.load(config_path=args.config)
    updates = {}
    if args.timeout is not None:
        updates["smoke_test_timeout"] = args.timeout
    if args.log_level:
        updates["log_level"] = args.log_level
    if args.log_dir:
        updates["log_dir"] = args.log_dir
    if updates:
        settings = VerifySettings.model_validate({**settings.model_dump(), **updates})
    return settings


def handle_verify(args: argparse.Namespace) -> int:
    """Run verification and map the outcome to an exit status."""
    try:
        settings = _load_settings(args)
    except (ValueError, ValidationError, yaml.YAMLError) as exc:
        setup_logging()
        logger.error("Invalid configuration: %s", exc)
        return 1
    setup_logging(settings.log_level, log_dir=str(settings.log_dir) if settings.log_dir else None)

    options = VerifyOptions(
        force=args.force,
        cypress_path=args.cypress_path,
        welcome_message=args.welcome_message,
    )

    try:
        outcome = asyncio.run(start(options, settings=settings))
    except VerificationError as err:
        outcome = VerificationOutcome.failed(err)
        logger.error(str(err))

    if outcome.status is OutcomeStatus.VERIFIED:
        logger.info("Verified Cypress! %s", outcome.executable)
    return 0 if outcome.ok else 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "verify":
        return handle_verify(args)
    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
