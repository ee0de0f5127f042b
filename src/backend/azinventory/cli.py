"""Command-line entry point.

    azinventory [-c CONFIG] [-d DATA_DIR] fetch-inventory REGION
    azinventory [-c CONFIG] [-d DATA_DIR] generate REGION [-o OUTPUT]
"""

import argparse
import asyncio
import getpass
import logging
import sys

from azinventory.config import settings
from azinventory.errors import ConfigurationError, InventoryError
from azinventory.schemas.config import InventoryConfig, load_config
from azinventory.services.region_service import (
    fetch_region_inventory,
    generate_region_descriptor,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="azinventory",
        description="generate a region deployment descriptor from asset and fleet inventory",
    )
    parser.add_argument(
        "-c", "--config-file", default=settings.CONFIG_FILE, help="region configuration file"
    )
    parser.add_argument(
        "-d", "--data-dir", default=settings.DATA_DIR, help="inventory snapshot directory"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING"],
        help="log level",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    fetch = commands.add_parser(
        "fetch-inventory", help="fetch asset and fleet inventory into a new snapshot"
    )
    fetch.add_argument("region")

    generate = commands.add_parser(
        "generate", help="reconcile the newest snapshot into a descriptor"
    )
    generate.add_argument("region")
    generate.add_argument(
        "-o", "--output", help="descriptor path (default: REGION.json); must not exist"
    )
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level), format="%(levelname)s %(message)s")


def asset_password(config: InventoryConfig) -> str:
    """Return the asset system password from the environment or a prompt.

    The password is never written anywhere.
    """
    if settings.ASSET_PASSWORD:
        return settings.ASSET_PASSWORD
    if not sys.stdin.isatty():
        raise ConfigurationError("cannot prompt for password without a tty (set ASSET_PASSWORD)")
    asset = config.asset_system
    return getpass.getpass(f"password for {asset.username}@{asset.url}: ")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = load_config(args.config_file)
        if args.command == "fetch-inventory":
            config.region(args.region)
            password = asset_password(config)
            snapshot_dir = asyncio.run(
                fetch_region_inventory(config, args.region, args.data_dir, password)
            )
            logger.info("inventory saved to %s", snapshot_dir)
        else:
            output = args.output or f"{args.region}.json"
            generate_region_descriptor(config, args.region, args.data_dir, output)
    except InventoryError as exc:
        logger.error("%s", exc.message)
        return exc.exit_code

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
