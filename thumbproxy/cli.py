"""
Command Line Interface for the thumbnail proxy.
"""

import argparse
import logging
import os
from typing import List, Optional
from urllib.parse import unquote, urlsplit

import urllib3

from .config import LocalConfig, ProxyConfig, S3Config, split_formats
from .errors import RequestError, ThumbError, UploadError, response_class_for
from .local_client import LocalClient
from .media import MediaClassifier, validate
from .orchestrator import ThumbnailOrchestrator
from .s3_client import S3Client
from .thumb_request import parse_thumb_path
from .tools import FILE, SourceInput


def setup_logging(verbose: bool, level_name: str = 'INFO') -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('sh').setLevel(logging.WARNING)

    return logging.getLogger('thumbproxy')


def request_path(raw_uri: str) -> str:
    """Decoded path of a request URI as typed on the command line."""
    return unquote(urlsplit(raw_uri).path)


def get_proxy_config(args: argparse.Namespace) -> ProxyConfig:
    """Get proxy configuration from environment and CLI overrides."""
    config = ProxyConfig.from_env()

    if getattr(args, 'host', None):
        config.host = args.host
    if getattr(args, 'port', None):
        config.port = args.port
        config.env_errors.pop('PORT', None)
    if getattr(args, 'server', None):
        config.server = args.server
    if getattr(args, 'local_root', None):
        config.local_root = args.local_root
    if getattr(args, 'tmp_dir', None):
        config.tmp_dir = args.tmp_dir
    if getattr(args, 'file_formats', None):
        config.file_formats = split_formats(args.file_formats)
    if getattr(args, 'image_only', False):
        config.video_enabled = False

    return config


def get_s3_config(args: argparse.Namespace) -> S3Config:
    """Get S3 configuration from environment and CLI overrides."""
    config = S3Config.from_env()

    if getattr(args, 's3_endpoint', None):
        config.endpoint = args.s3_endpoint
    if getattr(args, 's3_region', None):
        config.region = args.s3_region
    if getattr(args, 's3_access_key', None):
        config.access_key = args.s3_access_key
    if getattr(args, 's3_secret_key', None):
        config.secret_key = args.s3_secret_key

    return config


def get_storage_client(args: argparse.Namespace, config: ProxyConfig, logger: logging.Logger):
    """
    Get the blob store selected by the configuration.

    Raises:
        ValueError: the storage configuration is invalid
    """
    if config.local_root:
        local_config = LocalConfig(root_path=config.local_root)
        errors = local_config.validate()
        if errors:
            for error in errors:
                logger.error(error)
            raise ValueError("Local configuration invalid")
        logger.info(f"Storage: Local filesystem ({local_config.root_path})")
        return LocalClient(local_config, logger)

    s3_config = get_s3_config(args)
    errors = s3_config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        raise ValueError("S3 configuration invalid")
    if not s3_config.verify_ssl:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
    logger.info(f"Storage: S3 ({s3_config.endpoint or 'AWS'})")
    return S3Client(s3_config, logger)


def add_storage_arguments(parser: argparse.ArgumentParser) -> None:
    """Add storage configuration arguments to a parser."""
    local_group = parser.add_argument_group('Local Storage')
    local_group.add_argument('--local-root', metavar='PATH',
                             help='Use a local directory instead of S3 (containers are subdirectories)')

    s3_group = parser.add_argument_group('S3 Storage')
    s3_group.add_argument('--s3-endpoint', help='Override S3_ENDPOINT')
    s3_group.add_argument('--s3-region', help='Override S3_REGION')
    s3_group.add_argument('--s3-access-key', help='Override S3_ACCESS_KEY')
    s3_group.add_argument('--s3-secret-key', help='Override S3_SECRET_KEY')


def add_generation_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--tmp-dir', help='Directory for temporary source files')
    parser.add_argument('--file-formats', metavar='EXTS',
                        help='Comma-separated source formats read from a file (default: mp4)')
    parser.add_argument('--image-only', action='store_true',
                        help='Disable video sources and accept SVG')


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP server."""
    from bottle import run
    from .server import create_app

    config = get_proxy_config(args)
    logger = setup_logging(args.verbose, config.log_level)

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        return 1

    try:
        store = get_storage_client(args, config, logger)
    except ValueError:
        return 1

    app = create_app(ThumbnailOrchestrator(store, config, logger=logger))
    logger.info(f"Listening on {config.host}:{config.port}")
    run(app=app, host=config.host, port=config.port, server=config.server, quiet=not args.verbose)
    logger.info("Exiting.")
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    """Show how a thumbnail path would be handled, without touching storage."""
    config = get_proxy_config(args)
    logger = setup_logging(args.verbose, config.log_level)
    classifier = MediaClassifier(video_enabled=config.video_enabled)

    try:
        req = parse_thumb_path(request_path(args.path), classifier)
    except RequestError as e:
        logger.error(str(e))
        return 1

    for name, value in req.to_dict().items():
        print(f"{name:12} {value}")

    try:
        validate(req)
    except RequestError as e:
        print(f"{'status':12} rejected ({type(e).__name__}: {e.args[0]})")
        return 1

    orchestrator = ThumbnailOrchestrator(store=None, config=config, logger=logger)
    try:
        strategy = orchestrator.strategy_for(req)
    except ThumbError as e:
        print(f"{'status':12} no handler ({e.args[0]})")
        return 1

    if strategy.materialization == FILE:
        source = SourceInput(path=os.path.join(config.tmp_dir, f"<source>.{req.source_ext}"))
    else:
        source = SourceInput(data=b'')
    print(f"{'status':12} ok")
    print(f"{'input':12} {strategy.materialization}")
    print(f"{'command':12} {' '.join(orchestrator.build_command(req, source))}")
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    """Generate one thumbnail through the full pipeline and write it to a file."""
    config = get_proxy_config(args)
    logger = setup_logging(args.verbose, config.log_level)
    classifier = MediaClassifier(video_enabled=config.video_enabled)

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        return 1

    try:
        req = parse_thumb_path(request_path(args.path), classifier)
        validate(req)
    except RequestError as e:
        logger.error(f"{response_class_for(e).name}: {e}")
        return 1

    try:
        store = get_storage_client(args, config, logger)
    except ValueError:
        return 1

    output = args.output or req.thumb_name
    orchestrator = ThumbnailOrchestrator(store, config, logger=logger)
    status = 0
    try:
        thumbnail = orchestrator.generate(req)
    except UploadError as e:
        logger.error(f"{response_class_for(e).name}: {e}")
        thumbnail = e.thumbnail
        status = 1
    except ThumbError as e:
        logger.error(f"{response_class_for(e).name}: {e}")
        return 1

    with open(output, 'wb') as f:
        f.write(thumbnail)
    logger.info(f"Wrote {output} ({len(thumbnail)} bytes)")
    return status


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='thumbproxy',
        description='On-demand thumbnail proxy for blob-stored media',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Thumbnail paths look like:
  /<container>/<subpath>/thumb/[archive/|temp/]<filename>/<width>px-<thumbname>

Examples:
  python -m thumbproxy serve --port 8080
  python -m thumbproxy inspect /mywiki/en/thumb/Cat.jpg/100px-Cat.jpg
  python -m thumbproxy render /mywiki/en/thumb/Cat.jpg/100px-Cat.jpg --local-root ./store
"""
    )

    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    serve_parser = subparsers.add_parser('serve', help='Run the HTTP server')
    serve_parser.add_argument('--host', help='Interface to listen on (default: HOST or 0.0.0.0)')
    serve_parser.add_argument('-p', '--port', type=int, help='Port to listen on (default: PORT or 8080)')
    serve_parser.add_argument('--server', help='Bottle server adapter (default: BOTTLE_SERVER or wsgiref)')
    serve_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_generation_arguments(serve_parser)
    add_storage_arguments(serve_parser)

    inspect_parser = subparsers.add_parser('inspect', help='Show how a thumbnail path would be handled')
    inspect_parser.add_argument('path', help='Thumbnail request path')
    inspect_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_generation_arguments(inspect_parser)

    render_parser = subparsers.add_parser('render', help='Generate and store one thumbnail')
    render_parser.add_argument('path', help='Thumbnail request path')
    render_parser.add_argument('-o', '--output', help='Output file (default: thumbnail name)')
    render_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_generation_arguments(render_parser)
    add_storage_arguments(render_parser)

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'serve':
        return cmd_serve(parsed_args)
    elif parsed_args.command == 'inspect':
        return cmd_inspect(parsed_args)
    elif parsed_args.command == 'render':
        return cmd_render(parsed_args)

    return 1
