"""
Command Line Interface for the attachment thumbnail job.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional, Tuple

import urllib3

from .config import JobConfig
from .deriver import ImageDeriver
from .fetcher import HttpFetcher
from .job import ThumbnailJob
from .local_client import LocalClient, LocalConfig
from .publisher import StoragePublisher
from .resolver import SourceResolver
from .s3_client import S3Client
from .s3_config import S3Config
from .signing import PresignedUrlSigner


def setup_logging(verbose: bool) -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('PIL').setLevel(logging.WARNING)

    return logging.getLogger('thumbnailer')


def get_s3_config(args: argparse.Namespace) -> S3Config:
    """Get S3 configuration from environment and CLI overrides."""
    config = S3Config.from_env()

    if getattr(args, 's3_endpoint', None):
        config.endpoint = args.s3_endpoint
    if getattr(args, 's3_bucket', None):
        config.bucket = args.s3_bucket
    if getattr(args, 's3_prefix', None):
        config.prefix = args.s3_prefix
    if getattr(args, 's3_access_key', None):
        config.access_key = args.s3_access_key
    if getattr(args, 's3_secret_key', None):
        config.secret_key = args.s3_secret_key

    return config


def get_local_config(args: argparse.Namespace) -> LocalConfig:
    """Get local configuration from CLI arguments."""
    return LocalConfig(
        root_path=args.local_root,
        prefix=getattr(args, 'local_prefix', None) or ''
    )


def get_job_config(args: argparse.Namespace) -> JobConfig:
    """Get job configuration from environment and CLI overrides."""
    config = JobConfig.from_env()

    if getattr(args, 'signing_key', None):
        config.signing_key = args.signing_key
    if getattr(args, 'base_url', None):
        config.base_url = args.base_url
    if getattr(args, 'quality', None) is not None:
        config.quality = args.quality
    if getattr(args, 'fetch_timeout', None) is not None:
        config.fetch_timeout = args.fetch_timeout

    return config


def get_storage_client(
    args: argparse.Namespace,
    logger: logging.Logger
) -> Tuple[object, Optional[S3Client]]:
    """
    Get the storage client based on arguments.

    Returns:
        Tuple of (storage_client, s3_client)
        - storage_client: LocalClient or S3Client; stores uploads and receives thumbnails
        - s3_client: S3Client for presigning object-storage URLs, or None if S3 is not configured
    """
    s3_config = get_s3_config(args)

    if getattr(args, 'local_root', None):
        config = get_local_config(args)
        errors = config.validate()
        if errors:
            for error in errors:
                logger.error(error)
            raise ValueError("Local configuration invalid")

        s3_client = S3Client(s3_config, logger) if s3_config.enabled else None
        return LocalClient(config, logger), s3_client

    errors = s3_config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        raise ValueError("S3 configuration invalid")

    client = S3Client(s3_config, logger)
    return client, client


def create_job(
    config: JobConfig,
    storage,
    s3_client: Optional[S3Client] = None,
    logger: Optional[logging.Logger] = None
) -> ThumbnailJob:
    """Wire a ThumbnailJob whose uploads and thumbnails both live in storage."""
    signer = PresignedUrlSigner(
        base_url=config.base_url,
        key=config.signing_key,
        time_tolerance=config.time_tolerance,
        s3_client=s3_client,
        logger=logger,
    )
    resolver = SourceResolver(
        signer=signer,
        materializer=storage,
        fetcher=HttpFetcher(timeout=config.fetch_timeout, logger=logger),
        s3_marker=config.s3_marker,
        logger=logger,
    )
    deriver = ImageDeriver(
        quality=config.quality,
        root=config.thumbnail_root,
        max_workers=config.max_workers,
        timeout=config.variant_timeout,
        logger=logger,
    )
    publisher = StoragePublisher(storage, max_workers=config.max_workers, logger=logger)
    return ThumbnailJob(resolver, deriver, publisher, logger=logger)


def add_storage_arguments(parser: argparse.ArgumentParser) -> None:
    """Add storage configuration arguments to a parser."""
    local_group = parser.add_argument_group('Local Storage')
    local_group.add_argument('--local-root', metavar='PATH',
                             help='Use local filesystem instead of S3 (e.g., /mnt/uploads)')
    local_group.add_argument('--local-prefix', default='',
                             help='Prefix within local root')

    s3_group = parser.add_argument_group('S3 Storage')
    s3_group.add_argument('--s3-endpoint', help='Override S3_ENDPOINT')
    s3_group.add_argument('--s3-bucket', help='Override S3_BUCKET')
    s3_group.add_argument('--s3-prefix', help='Override S3_PREFIX')
    s3_group.add_argument('--s3-access-key', help='Override S3_ACCESS_KEY')
    s3_group.add_argument('--s3-secret-key', help='Override S3_SECRET_KEY')


def add_signing_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group('Signing')
    group.add_argument('--signing-key', help='Override THUMBNAILER_SIGNING_KEY')
    group.add_argument('--base-url', help='Override THUMBNAILER_BASE_URL')


def load_payload(source: str) -> dict:
    """Load a batch payload from a JSON file, or stdin for '-'."""
    if source == '-':
        return json.load(sys.stdin)
    with open(source, 'r') as f:
        return json.load(f)


def cmd_run(args: argparse.Namespace) -> int:
    """Execute run command."""
    logger = setup_logging(args.verbose)
    urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    config = get_job_config(args)
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        return 1

    try:
        storage, s3_client = get_storage_client(args, logger)
    except ValueError:
        return 1

    try:
        payload = load_payload(args.payload)
    except FileNotFoundError:
        logger.error(f"Payload not found: {args.payload}")
        return 1
    except ValueError as e:
        logger.error(f"Failed to parse payload: {e}")
        return 1

    job = create_job(config, storage, s3_client, logger)

    try:
        stats = job.run(payload)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    finally:
        job.close()

    if args.show_results:
        print(json.dumps(stats.to_dict(), indent=2))

    return 0 if stats.succeeded else 1


def cmd_sign(args: argparse.Namespace) -> int:
    """Execute sign command."""
    logger = setup_logging(args.verbose)
    config = get_job_config(args)

    s3_client = None
    if args.s3:
        s3_config = get_s3_config(args)
        errors = s3_config.validate()
        if errors:
            for error in errors:
                logger.error(error)
            return 1
        s3_client = S3Client(s3_config, logger)

    signer = PresignedUrlSigner(
        base_url=config.base_url,
        key=config.signing_key,
        time_tolerance=config.time_tolerance,
        s3_client=s3_client,
        logger=logger,
    )
    print(signer.get_signed_url(args.path, s3=args.s3))
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='thumbnailer',
        description='Generate card_cover, small and tiny thumbnails for uploaded attachments',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m thumbnailer run --payload batch.json --local-root /mnt/uploads
  cat batch.json | python -m thumbnailer run --payload -
  python -m thumbnailer sign a/b.png

Storage options:
  Use --local-root for local filesystem, or S3 environment variables for S3.
"""
    )

    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    run_parser = subparsers.add_parser('run', help='Generate thumbnails for a batch payload')
    run_parser.add_argument('-p', '--payload', required=True,
                            help='JSON file with {"attachments": [...]}, or - for stdin')
    run_parser.add_argument('-q', '--quality', type=int, help='Override THUMBNAILER_QUALITY')
    run_parser.add_argument('--fetch-timeout', type=float, help='Override THUMBNAILER_FETCH_TIMEOUT')
    run_parser.add_argument('--show-results', action='store_true',
                            help='Print job statistics and thumbnail paths as JSON')
    run_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_storage_arguments(run_parser)
    add_signing_arguments(run_parser)

    sign_parser = subparsers.add_parser('sign', help='Print a signed download URL for a path')
    sign_parser.add_argument('path', help='Relative upload path')
    sign_parser.add_argument('--s3', action='store_true', help='Presign for object storage')
    sign_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_storage_arguments(sign_parser)
    add_signing_arguments(sign_parser)

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'run':
        return cmd_run(parsed_args)
    elif parsed_args.command == 'sign':
        return cmd_sign(parsed_args)

    return 1
