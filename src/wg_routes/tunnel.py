"""WireGuard package, configuration and interface lifecycle."""

import base64
import binascii
import shutil
import tempfile
from pathlib import Path

from .common.exceptions import (
    CommandError,
    ConfigurationError,
    OperationTimeoutError,
    TunnelError,
)
from .common.logging import get_logger
from .common.process import CommandResult, CommandRunner
from .common.timeout import with_timeout

logger = get_logger(__name__)

DEFAULT_CONFIG_DIR = Path("/etc/wireguard")


def decode_config(encoded: str) -> bytes:
    """Decode a base64 WireGuard configuration.

    Raises:
        ConfigurationError: If the input is not valid base64 or is empty
    """
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigurationError(f"WireGuard config is not valid base64: {e}") from e
    if not decoded.strip():
        raise ConfigurationError("WireGuard config is empty")
    return decoded


class WireGuardTunnel:
    """Drives wg-quick and friends for one host."""

    def __init__(
        self,
        runner: CommandRunner,
        bring_up_timeout: float = 60.0,
        config_dir: Path = DEFAULT_CONFIG_DIR,
    ):
        self.runner = runner
        self.bring_up_timeout = bring_up_timeout
        self.config_dir = config_dir

    def config_path(self, interface: str) -> Path:
        """Location wg-quick reads the interface config from."""
        return self.config_dir / f"{interface}.conf"

    async def install_package(self, update_package_list: bool = True) -> None:
        """Install the wireguard package with apt.

        Raises:
            TunnelError: If apt fails
        """
        logger.info("Installing WireGuard")
        try:
            if update_package_list:
                logger.info("Updating package list")
                await self.runner.run(["apt-get", "update", "-qq"], privileged=True, check=True)
            await self.runner.run(
                ["apt-get", "install", "-y", "wireguard"], privileged=True, check=True
            )
        except CommandError as e:
            raise TunnelError(f"Failed to install WireGuard: {e}") from e
        logger.info("WireGuard installed")

    async def write_config(self, interface: str, encoded_config: str) -> Path:
        """Decode the config and install it with mode 600.

        Returns:
            Path of the installed config file

        Raises:
            ConfigurationError: If the config cannot be decoded
            TunnelError: If the file cannot be installed
        """
        decoded = decode_config(encoded_config)
        target = self.config_path(interface)

        temp_dir = Path(tempfile.mkdtemp(prefix="wg-"))
        try:
            temp_conf = temp_dir / f"{interface}.conf"
            temp_conf.touch(mode=0o600)
            temp_conf.write_bytes(decoded)
            logger.debug("Config written to temp file", path=str(temp_conf))

            await self.runner.run(["mkdir", "-p", str(self.config_dir)], privileged=True, check=True)
            await self.runner.run(["cp", str(temp_conf), str(target)], privileged=True, check=True)
            await self.runner.run(["chmod", "600", str(target)], privileged=True, check=True)
        except (CommandError, OSError) as e:
            raise TunnelError(f"Failed to install WireGuard config: {e}") from e
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)

        logger.info("Configuration saved", path=str(target))
        return target

    async def bring_up(self, interface: str) -> None:
        """Start the interface and verify it with ``wg show``.

        Raises:
            TunnelError: If wg-quick fails, times out or verification fails
        """
        logger.info("Starting WireGuard interface", interface=interface, timeout=self.bring_up_timeout)
        try:
            result = await with_timeout(
                self.runner.run(["wg-quick", "up", interface], privileged=True),
                self.bring_up_timeout,
                f"start WireGuard interface {interface}",
            )
            if not result.ok:
                raise TunnelError(
                    f"wg-quick up {interface} exited with status {result.returncode}: "
                    f"{result.stderr.strip()}"
                )

            verify = await self.runner.run(["wg", "show", interface], privileged=True)
            if not verify.ok:
                raise TunnelError(f"Interface {interface} started but verification failed")
        except (TunnelError, CommandError, OperationTimeoutError) as e:
            logger.error("Failed to start WireGuard interface", interface=interface, error=str(e))
            await self._dump_diagnostics(interface)
            if isinstance(e, TunnelError):
                raise
            raise TunnelError(str(e)) from e

        logger.info("WireGuard interface is up", interface=interface)

    async def _dump_diagnostics(self, interface: str) -> None:
        logger.info("Gathering diagnostic information", interface=interface)
        try:
            result = await self.runner.run(
                ["systemctl", "status", f"wg-quick@{interface}"], privileged=True
            )
        except CommandError as e:
            logger.debug("Diagnostics unavailable", error=str(e))
            return
        logger.info("wg-quick service status", output=(result.stdout or result.stderr).strip())

    async def bring_down(self, interface: str) -> CommandResult:
        """Stop the interface with ``wg-quick down``.

        Raises:
            CommandError: If wg-quick cannot be run
        """
        logger.info("Tearing down WireGuard interface", interface=interface)
        return await self.runner.run(["wg-quick", "down", interface], privileged=True)
