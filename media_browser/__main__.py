from __future__ import annotations

import argparse
import logging
import sys

import uvicorn

from .config import Settings, settings
from .main import create_app

logger = logging.getLogger('media_browser')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='media-browser', description='Browse and stream a folder of videos over HTTP.')
    parser.add_argument('root', nargs='?', default=None, help='media directory (default: MEDIA_ROOT or the current directory)')
    parser.add_argument('--host', default=None, help=f'listen address (default: {settings.app_host})')
    parser.add_argument('--port', type=int, default=None, help=f'listen port (default: {settings.app_port})')
    return parser


def load_settings(argv: list[str] | None = None) -> Settings:
    args = build_parser().parse_args(argv)
    overrides = {}
    if args.root is not None:
        overrides['media_root'] = args.root
    if args.host is not None:
        overrides['app_host'] = args.host
    if args.port is not None:
        overrides['app_port'] = args.port
    return settings.model_copy(update=overrides)


def main(argv: list[str] | None = None) -> int:
    config = load_settings(argv)
    try:
        app = create_app(config)
    except RuntimeError as exc:
        logger.critical('%s', exc)
        return 1

    logger.info('Starting server on http://%s:%s', config.app_host, config.app_port)
    uvicorn.run(app, host=config.app_host, port=config.app_port, log_level=config.log_level.lower(), access_log=False)
    return 0


if __name__ == '__main__':
    sys.exit(main())
