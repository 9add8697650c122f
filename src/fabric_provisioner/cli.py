#!/usr/bin/env python3
"""fabric-provision: validate a provisioning document and apply it.

Usage:
    fabric-provision PATH [--validate-only] [--log-file FILE] [--yes] [-v]
    python -m fabric_provisioner PATH ...

Exit codes:
    0  every group applied (or document valid with --validate-only)
    1  one or more causal groups failed
    2  document could not be loaded
    3  validation failed
    4  operator declined to continue with undefined sections
    5  endpoint settings or authentication failed

Environment variables:
    FABRIC_URL, FABRIC_USERNAME, FABRIC_PASSWORD, FABRIC_CLIENT
    FABRIC_PROVISIONER_LOG_LEVEL=DEBUG
"""
import argparse
import getpass
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config.endpoint import load_endpoint
from .config_engine import ProvisioningEngine
from .errors import DocumentError, EndpointError, FabricError
from .fabric import create_client
from .utils.audit_log import ChangeTracker, setup_audit_logging
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED_GROUPS = 1
EXIT_LOAD_ERROR = 2
EXIT_VALIDATION_ERROR = 3
EXIT_DECLINED = 4
EXIT_ENDPOINT_ERROR = 5


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fabric-provision",
        description="Validate a fabric provisioning document and apply it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Check a site document without touching the fabric
    fabric-provision sites/lab --validate-only

    # Apply, keeping a log and an audit trail next to it
    fabric-provision sites/lab --log-file logs/lab.log

Environment:
    FABRIC_PASSWORD    Endpoint password (prompted for when unset)
""",
    )
    parser.add_argument(
        "path",
        type=Path,
        help="Directory holding fabric.yaml (or the document file itself)",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Stop after validation; never contact the fabric",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Write output to this rotating log file instead of the console",
    )
    parser.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Continue without asking when sections are undefined",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def ask_to_continue(undefined: Sequence[str]) -> bool:
    """Ask the operator whether to continue with undefined sections."""
    print(f"Undefined sections will be skipped: {', '.join(undefined)}")
    try:
        answer = input("Continue? [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the provisioning CLI."""
    args = build_parser().parse_args(argv)

    setup_logging(args.log_file, level=logging.DEBUG if args.verbose else None)
    if args.log_file is not None:
        audit_file = setup_audit_logging(args.log_file.parent)
        logger.debug(f"Audit trail: {audit_file}")

    engine = ProvisioningEngine()

    # Load
    try:
        document = engine.load(args.path)
    except DocumentError as e:
        logger.error(f"Cannot load document: {e}")
        return EXIT_LOAD_ERROR
    logger.info(f"Loaded {document.path}")

    # Validate
    report = engine.validate()
    if not report.passed:
        logger.error(report.summary())
        return EXIT_VALIDATION_ERROR
    logger.info(report.summary())

    if args.validate_only:
        logger.info("Validate-only run: nothing was applied")
        return EXIT_OK

    try:
        settings = load_endpoint(document)
    except EndpointError as e:
        logger.error(str(e))
        return EXIT_ENDPOINT_ERROR

    # Confirm
    approve = args.yes
    if report.needs_confirmation and not approve:
        approve = ask_to_continue(report.undefined)
    if not engine.confirm(approve):
        logger.error("Run declined by operator")
        return EXIT_DECLINED

    # Apply
    password = None
    if settings.client == "http" and not settings.get_password():
        password = getpass.getpass(f"Password for {settings.username}@{settings.label}: ")

    client = create_client(settings, password=password)
    tracker = ChangeTracker(settings.label)
    logger.debug(f"Audit run id: {tracker.run_id}")
    try:
        result = engine.apply(client, tracker)
    except FabricError as e:
        logger.error(f"Cannot open a session with {settings.label}: {e}")
        return EXIT_ENDPOINT_ERROR

    if result.success:
        logger.info("PROVISIONING COMPLETE")
        return EXIT_OK

    logger.error(f"PROVISIONING FINISHED WITH {len(result.failed_groups)} FAILED GROUP(S)")
    return EXIT_FAILED_GROUPS


if __name__ == "__main__":
    sys.exit(main())
