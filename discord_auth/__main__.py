"""Run the whitelist gateway under uvicorn."""

import argparse
import logging
import sys
from typing import List, Optional

import uvicorn
from pydantic import ValidationError
from pydantic_settings import SettingsError

from .app_logging import setup_logger
from .config import ConfigurationError, load_settings
from .factory import create_app
from .services.whitelist import StoreUnavailable

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog='discord-auth',
        description='Whitelist client addresses of vetted Discord members.')
    parser.add_argument('--config', '-c', default=None,
                        help='JSON config file (default: $DISCORD_AUTH_CONFIG '
                             'or ./config.json)')
    parser.add_argument('--port', '-p', type=int, default=None,
                        help='Override the configured listen port')
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigurationError as e:
        print(f'{e}. Copy config.example.json and fill out all fields.',
              file=sys.stderr)
        return 1
    except (ValidationError, SettingsError) as e:
        print(f'Invalid configuration:\n{e}', file=sys.stderr)
        return 1

    setup_logger(settings.log_level, settings.json_logs)

    try:
        app = create_app(settings)
    except StoreUnavailable:
        logger.error('Could not connect to the database', exc_info=True)
        return 1

    port = args.port or settings.listen_port
    logger.info('Starting webserver on port %s', port)
    uvicorn.run(app, host=settings.listen_host, port=port, log_config=None)
    return 0


if __name__ == '__main__':
    sys.exit(main())
