"""Command line entry point: ``wg-routes apply`` and ``wg-routes teardown``."""

import argparse
import asyncio
import os
import sys
import time
from pathlib import Path

from pydantic import ValidationError

from .common.exceptions import WGRoutesError
from .common.logging import get_logger, setup_logging
from .config import ApplyConfig, TeardownConfig, default_state_file
from .orchestrator import Orchestrator
from .teardown import Teardown

logger = get_logger(__name__)

ENV_PREFIX = "WG_ROUTES_"


def _env(name: str, default: str | None = None) -> str | None:
    return os.environ.get(ENV_PREFIX + name, default)


def _env_flag(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--state-file",
        type=Path,
        default=None,
        help="Where apply records what teardown must undo",
    )
    parser.add_argument(
        "--no-sudo",
        dest="use_sudo",
        action="store_false",
        default=_env_flag("USE_SUDO", True),
        help="Run privileged commands directly (when already root)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for both subcommands."""
    parser = argparse.ArgumentParser(
        prog="wg-routes",
        description="Bring up a WireGuard tunnel and route selected hosts through it",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    apply_parser = subparsers.add_parser("apply", help="Set up the tunnel or add routes to it")
    apply_parser.add_argument(
        "--iface", default=_env("IFACE", "wg0"), help="WireGuard interface name"
    )
    apply_parser.add_argument(
        "--config",
        default=_env("CONFIG"),
        help="Base64 encoded WireGuard config (required when the interface is absent)",
    )
    apply_parser.add_argument(
        "--domains", default=_env("DOMAINS", ""), help="Comma-separated domains to route"
    )
    apply_parser.add_argument(
        "--ips", default=_env("IPS", ""), help="Comma-separated IP addresses to route"
    )
    apply_parser.add_argument(
        "--no-preserve-connectivity",
        dest="preserve_connectivity",
        action="store_false",
        default=_env_flag("PRESERVE_CONNECTIVITY", True),
        help="Do not keep control-plane hosts outside the tunnel",
    )
    apply_parser.add_argument(
        "--skip-install",
        dest="install_package",
        action="store_false",
        default=_env_flag("INSTALL_PACKAGE", True),
        help="Assume wireguard is already installed",
    )
    apply_parser.add_argument(
        "--no-apt-update",
        dest="update_package_list",
        action="store_false",
        default=_env_flag("UPDATE_PACKAGE_LIST", True),
        help="Skip apt-get update before installing",
    )
    _add_common_arguments(apply_parser)

    teardown_parser = subparsers.add_parser("teardown", help="Undo a previous apply")
    _add_common_arguments(teardown_parser)

    return parser


async def _apply(args: argparse.Namespace) -> None:
    config = ApplyConfig(
        interface=args.iface,
        config=args.config,
        domains=args.domains,
        ips=args.ips,
        preserve_connectivity=args.preserve_connectivity,
        install_package=args.install_package,
        update_package_list=args.update_package_list,
        use_sudo=args.use_sudo,
        state_file=args.state_file or default_state_file(),
    )
    logger.info(
        "WireGuard routes starting",
        interface=config.interface,
        domains=", ".join(config.domains) or "none",
        ips=", ".join(config.ips) or "none",
    )
    await Orchestrator(config).apply()


async def _teardown(args: argparse.Namespace) -> None:
    config = TeardownConfig(
        use_sudo=args.use_sudo,
        state_file=args.state_file or default_state_file(),
    )
    await Teardown(config).run()


def main(argv: list[str] | None = None) -> int:
    """Run a subcommand and return the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(
        level="DEBUG" if args.verbose else "INFO",
        json_format=args.json_logs,
        log_file=args.log_file,
    )

    start_time = time.monotonic()
    if args.command == "teardown":
        asyncio.run(_teardown(args))
        logger.info("Teardown finished", duration=f"{time.monotonic() - start_time:.2f}s")
        return 0

    try:
        asyncio.run(_apply(args))
    except (WGRoutesError, ValidationError) as e:
        logger.error(
            "WireGuard routes failed",
            duration=f"{time.monotonic() - start_time:.2f}s",
            error=str(e),
        )
        return 1

    logger.info(
        "WireGuard routes completed successfully",
        duration=f"{time.monotonic() - start_time:.2f}s",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
