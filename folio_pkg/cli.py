#!/usr/bin/env python3
"""
Command-line interface for Folio.
"""

import os
import sys
import logging
import argparse
from datetime import datetime

from . import __version__
from .atproto import AtProtoClient
from .builder import StaticBuilder
from .content import ContentRepository
from .errors import format_error
from .handlers import create_route_handlers
from .ports import LocalFileSystem, LocalFileWriter
from .settings import FolioSettings
from .sync import SyncService


class InfoFilter(logging.Filter):
    """Let warnings through and only the summary INFO lines."""
    allowed_messages = [
        "Build complete:",
        "Publish complete:",
        "Pull complete:",
        "Authenticated as",
        "Rendering",
        "Minified",
    ]

    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        return any(msg in record.getMessage() for msg in self.allowed_messages)


def setup_logging(verbose=False, logs_dir=None):
    """Console output for the user, everything else into logs/folio_<timestamp>.log."""
    logger = logging.getLogger('Folio')
    logger.setLevel(logging.DEBUG)

    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not verbose:
        console_handler.addFilter(InfoFilter())
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    logger.addHandler(console_handler)

    logs_dir = logs_dir or os.path.join(os.getcwd(), 'logs')
    os.makedirs(logs_dir, exist_ok=True)
    log_filename = datetime.now().strftime('folio_%Y-%m-%d_%H-%M-%S.log')
    file_handler = logging.FileHandler(os.path.join(logs_dir, log_filename))
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    logger.addHandler(file_handler)

    return logger


def create_parser():
    parser = argparse.ArgumentParser(prog='folio', description='Folio - publish Markdown posts to AT Protocol and static HTML')
    parser.add_argument('--config-dir', type=str, help='Directory containing folio.yml / folio.json')
    parser.add_argument('--posts-dir', dest='posts_dir', type=str, help='Directory of Markdown posts')
    parser.add_argument('--verbose', action='store_true', help='Show every log line on the console')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', required=True)

    build = subparsers.add_parser('build', help='Build the static site')
    build.add_argument('output_dir', nargs='?', help='Output directory for the generated site')
    build.add_argument('--base-url', type=str, help='Origin the synthesized requests are made against')
    build.add_argument('--minify', action='store_true', default=None, help='Write minified CSS and JS alongside the assets')

    subparsers.add_parser('publish', help='Publish every post as a site.standard.document record')

    pull = subparsers.add_parser('pull', help='Pull remote documents into the posts directory')
    pull.add_argument('--force', action='store_true', help='Overwrite posts that already exist locally')

    init = subparsers.add_parser('init', help='Create a sample configuration file')
    init.add_argument('--format', dest='file_format', choices=['yml', 'yaml', 'json'], default='yml')

    return parser


def create_repository(config, file_system):
    return ContentRepository(
        file_system,
        config.posts_dir,
        canonical_tags=config.canonical_tags,
        enable_validation=config.enable_validation,
    )


def run_build(config, args, logger):
    file_system = LocalFileSystem()
    repository = create_repository(config, file_system)
    builder = StaticBuilder(
        repository,
        create_route_handlers(repository, config),
        LocalFileWriter(),
        config.public_dir,
        file_system=file_system,
        minify=config.minify,
    )

    output_dir = os.path.expanduser(config.output_dir)
    success, report = builder.build(output_dir, args.base_url or config.site_url)
    if not success:
        logger.error(format_error(report))
        return 1
    for error in report.errors:
        logger.error(error)
    return 1 if report.errors else 0


def create_sync_service(config, logger):
    if config.atproto is None:
        logger.error("ATPROTO_DID, ATPROTO_HANDLE and ATPROTO_APP_PASSWORD must all be set")
        return None, None

    success, client = AtProtoClient.login(config.atproto)
    if not success:
        logger.error(format_error(client))
        return None, None

    service = SyncService(client, LocalFileSystem(), LocalFileWriter(), config)
    return service, client


def report_sync(report, logger):
    for error in report.errors:
        logger.error(error)
    return 1 if report.errors else 0


def run_publish(config, args, logger):
    service, client = create_sync_service(config, logger)
    if service is None:
        return 1
    try:
        success, result = service.ensure_publication()
        if not success:
            logger.error(format_error(result))
            return 1
        success, report = service.publish_all()
        if not success:
            logger.error(format_error(report))
            return 1
        return report_sync(report, logger)
    finally:
        client.close()


def run_pull(config, args, logger):
    service, client = create_sync_service(config, logger)
    if service is None:
        return 1
    try:
        success, report = service.pull_all(force=args.force)
        if not success:
            logger.error(format_error(report))
            return 1
        return report_sync(report, logger)
    finally:
        client.close()


COMMANDS = {
    'build': run_build,
    'publish': run_publish,
    'pull': run_pull,
}


def main(argv=None) -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    settings_loader = FolioSettings(config_dir=args.config_dir)

    if args.command == 'init':
        try:
            config_path = settings_loader.create_sample_config(args.file_format)
        except (ValueError, IOError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Created sample configuration file: {config_path}")
        return

    logger = setup_logging(args.verbose)

    try:
        settings_loader.load_settings()
    except (ValueError, IOError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    # Command line arguments take precedence
    args_dict = {k: v for k, v in vars(args).items() if v is not None}
    settings_loader.merge_with_args(args_dict)
    config = settings_loader.to_config()

    exit_code = COMMANDS[args.command](config, args, logger)
    if exit_code:
        sys.exit(exit_code)


if __name__ == '__main__':
    main()
