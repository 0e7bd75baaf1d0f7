"""Command line entry point: `python -m imgapi --config imgapi.json`."""

import argparse
import logging
from pathlib import Path

import uvicorn

from .core.config import Configuration, load_configuration
from .main import create_app

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Public images repository server")
    parser.add_argument("--config", "-c", type=Path, default=None,
                        help="JSON configuration file (datadir, port, userdb, ...)")
    parser.add_argument("--datadir", type=Path, default=None, help="Override the data directory")
    parser.add_argument("--host", type=str, default=None, help="Override the listen address")
    parser.add_argument("--port", "-p", type=int, default=None, help="Override the listen port")
    return parser


def resolve_configuration(args: argparse.Namespace) -> Configuration:
    config = load_configuration(args.config) if args.config else Configuration()
    overrides = {
        key: value
        for key, value in (("datadir", args.datadir), ("host", args.host), ("port", args.port))
        if value is not None
    }
    if overrides:
        config = config.model_copy(update=overrides)
    return config


def main() -> None:
    args = build_parser().parse_args()
    config = resolve_configuration(args)

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Serving images from %s on %s:%d", config.datadir, config.host, config.port)
    if not config.userdb:
        logger.warning("No users configured; every modifying request will be rejected")

    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
