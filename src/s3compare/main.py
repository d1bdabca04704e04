from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .config import apply_overrides, default_config, load_config
from .credentials import CredentialsError, build_client, resolve_credentials
from .journal import open_journal
from .logging_ import setup_logging
from .observability import Observability
from .reconcile import Reconciler
from .remote import IncompleteInventory, S3Inventory
from .report import log_details, log_summary, result_json, write_report

logger = logging.getLogger(__name__)

__version__ = "0.1.0"

EXIT_OK = 0
EXIT_INCOMPLETE = 1
EXIT_CONFIG = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="s3-checksum-compare",
        description=(
            "Compares the checksums of an S3 bucket with the files in a local "
            "dir to make sure they are the same."
        ),
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("bucket", help="bucket name")
    parser.add_argument("dir", help="local directory mirroring the bucket")
    parser.add_argument(
        "-p",
        "--prefix",
        default="",
        help="only check items in this prefix of the S3 bucket and directory",
    )
    parser.add_argument("-E", "--endpoint", default="", help="S3 endpoint URL")
    parser.add_argument("-R", "--region", default="", help="region the bucket is in")
    parser.add_argument("--profile", default="", help="shared credentials profile")
    parser.add_argument(
        "-c",
        "--concurrency",
        type=int,
        default=None,
        help="concurrent fetch/compare workers",
    )
    parser.add_argument(
        "--journal",
        choices=["file", "memory"],
        default=None,
        help="where checksum records are spilled between phases",
    )
    parser.add_argument("--config", default="", help="path to YAML config file")
    parser.add_argument(
        "-j", "--json", action="store_true", help="print the JSON report to stdout"
    )
    parser.add_argument("-o", "--output", default="", help="write the JSON report here")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="log matches and debug detail"
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config) if args.config else default_config()
        apply_overrides(
            config,
            region=args.region,
            endpoint=args.endpoint,
            profile=args.profile,
            concurrency=args.concurrency,
            journal_backend=args.journal,
            verbose=args.verbose,
        )
    except (FileNotFoundError, ValueError) as exc:
        print(f"config error: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    try:
        setup_logging(
            config.log_level,
            log_dir=config.logging.dir,
            log_file=config.logging.file_name,
            max_mb=config.logging.max_mb,
            backup_count=config.logging.backup_count,
            use_json=config.logging.json,
            to_console=config.logging.to_console,
            timezone_name=config.logging.timezone,
        )
    except OSError as exc:
        print(f"config error: cannot open log file: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    try:
        credentials = resolve_credentials(config.s3.profile)
    except CredentialsError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG
    client = build_client(
        config.s3, credentials, max_pool_connections=config.compare.concurrency
    )

    metrics = Observability(log_interval_sec=config.observability.log_interval_sec)
    inventory = S3Inventory(
        client,
        args.bucket,
        page_size=config.s3.page_size,
        max_parts=config.s3.max_parts,
        metrics=metrics,
    )
    reconciler = Reconciler(
        inventory,
        args.dir,
        args.prefix,
        concurrency=config.compare.concurrency,
        chunk_size=config.compare.chunk_size,
        metrics=metrics,
    )

    try:
        journal = open_journal(config.journal)
    except (OSError, ValueError) as exc:
        logger.error("config error: %s", exc)
        return EXIT_CONFIG

    try:
        with journal:
            result = reconciler.run(journal)
    except IncompleteInventory as exc:
        logger.error("aborting, remote inventory is incomplete: %s", exc)
        return EXIT_INCOMPLETE

    log_details(result, verbose=args.verbose)
    log_summary(result)
    if args.output:
        write_report(result, args.output)
    if args.json:
        sys.stdout.write(result_json(result) + "\n")
        sys.stdout.flush()
    return EXIT_OK


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run()
