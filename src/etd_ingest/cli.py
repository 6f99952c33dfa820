"""Command-line interface for etd-ingest."""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from etd_ingest.clients import FedoraClient, FTPTransport
from etd_ingest.compilers.datastream_compiler import EMBARGO_TEMPLATE, PERMANENT_TEMPLATE
from etd_ingest.config import Settings, load_settings
from etd_ingest.exceptions import ConfigurationError
from etd_ingest.notifier import send_report
from etd_ingest.pipeline import Orchestrator
from etd_ingest.transformers import MetadataTransformer

LOG_FORMAT = "%(levelname)s: %(message)s"
FILE_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(verbose: bool = False, log_dir: Path | None = None) -> Path | None:
    """Configure logging for the CLI.

    Logs to the console, and to a timestamped file under *log_dir* when one
    is given.

    Returns:
        Path of the log file, or None when logging to the console only
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
    )
    if log_dir is None:
        return None

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"ingest-{datetime.now():%Y%m%d-%H%M%S}.txt"
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
    logging.getLogger().addHandler(handler)
    return log_file


def _load(args: argparse.Namespace) -> Settings | None:
    logger = logging.getLogger(__name__)
    try:
        return load_settings(args.config)
    except ConfigurationError as e:
        logger.error(e.message)
        return None


def run_batch(args: argparse.Namespace) -> int:
    """Execute the run-batch command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 when every record was handled, 1 otherwise)
    """
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    settings = _load(args)
    if settings is None:
        return 1
    if args.debug:
        settings = settings.with_debug(True)

    log_file = None
    if settings.log.location is not None:
        try:
            log_file = setup_logging(args.verbose, settings.log.location)
        except OSError as e:
            logger.error(f"Could not open log file under {settings.log.location}: {e}")
            return 1
        logger.info(f"Logging to {log_file}")

    if settings.debug:
        logger.info("Running in DEBUG mode: nothing will be ingested or moved")

    fedora_config = {
        "base_url": settings.fedora.url,
        "username": settings.fedora.username,
        "password": settings.fedora.password,
        "timeout": settings.fedora.timeout,
        "retry_attempts": settings.fedora.retry_attempts,
        "headers": {"User-Agent": "etd-ingest/1.0"},
    }
    ftp = settings.ftp

    try:
        with FTPTransport(ftp.server, ftp.port, ftp.timeout) as transport:
            with FedoraClient(fedora_config) as repository:
                orchestrator = Orchestrator(
                    settings, transport, repository, log_file=log_file
                )
                report = orchestrator.run(custom_regex=args.regex)
    except Exception as e:
        logger.error(f"Batch failed: {e}")
        return 1

    print(report)

    if args.report is not None:
        args.report.parent.mkdir(parents=True, exist_ok=True)
        args.report.write_text(report, encoding="utf-8")
        logger.info(f"Wrote status report to {args.report}")

    if not args.no_email and settings.notify.email:
        send_report(settings.notify, report, debug=settings.debug)

    return 0 if orchestrator.succeeded else 1


def check_config(args: argparse.Namespace) -> int:
    """Execute the check-config command.

    Validates the settings file and compiles both metadata stylesheets.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for valid settings, 1 otherwise)
    """
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    settings = _load(args)
    if settings is None:
        return 1

    transformer = MetadataTransformer(
        settings.xslt,
        repository=None,
        namespace=settings.fedora.namespace,
    )
    try:
        transformer.load_stylesheets()
    except ConfigurationError as e:
        logger.error(e.message)
        return 1

    for name in (PERMANENT_TEMPLATE, EMBARGO_TEMPLATE):
        template = settings.script.templates_dir / name
        if not template.is_file():
            logger.error(f"RELS-INT template not found: {template}")
            return 1

    if not settings.xslt.splash.is_file():
        logger.error(f"Splash stylesheet not found: {settings.xslt.splash}")
        return 1

    logger.info(f"Settings in {args.config} are valid")
    logger.info(f"  FTP server: {settings.ftp.server}")
    logger.info(f"  Fedora: {settings.fedora.url}")
    logger.info(f"  Debug: {settings.debug}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        prog="etd-ingest",
        description="Ingest ProQuest ETD submissions into a Fedora repository",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
    )

    batch_parser = subparsers.add_parser(
        "run-batch",
        help="Ingest every ETD waiting on the FTP server",
        description="Fetch ETD zip files from the ProQuest FTP drop, ingest them into Fedora and report the outcome.",
    )
    batch_parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to the YAML settings file",
    )
    batch_parser.add_argument(
        "--debug",
        action="store_true",
        help="Process records without ingesting, moving files or sending email",
    )
    batch_parser.add_argument(
        "--regex",
        type=str,
        default=None,
        help="File pattern to list on the FTP server instead of ftp.file_regex",
    )
    batch_parser.add_argument(
        "--no-email",
        action="store_true",
        help="Do not email the status report",
    )
    batch_parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Also write the status report to this file",
    )
    batch_parser.set_defaults(func=run_batch)

    check_parser = subparsers.add_parser(
        "check-config",
        help="Validate a settings file",
        description="Validate the settings file and compile the metadata stylesheets it names.",
    )
    check_parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to the YAML settings file",
    )
    check_parser.set_defaults(func=check_config)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
