"""Command line entry point for the hashing service.

Usage:
    python -m scrypt_offload -c ./config.json
    scrypt-offload-server --config ./config.json

The configuration file is a JSON object merged over the defaults, e.g.::

    {"minWorkers": 1, "maxWorkers": 4, "logPath": "/var/log/scrypt",
     "ip": "0.0.0.0", "port": 8001,
     "certificatePath": "cert.pem", "certificateKeyPath": "key.pem"}
"""

import argparse
import logging

from scrypt_offload.infrastructure.config.settings import ConfigurationError, load_settings
from scrypt_offload.infrastructure.server.scrypt_server import ScryptServer

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="scrypt-offload-server",
        description="Serve scrypt hash and compare requests over HTTP(S).",
    )
    p.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to a JSON configuration file merged over the defaults",
    )
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
        server = ScryptServer(settings)
    except ConfigurationError as exc:
        logger.critical("exception while starting the server: %s", exc)
        return 1

    try:
        server.run()
    except KeyboardInterrupt:
        # uvicorn re-raises the captured SIGINT once shutdown has completed
        pass
    except OSError as exc:
        logger.critical("exception while starting the server: %s", exc)
        return 1
    return 0
