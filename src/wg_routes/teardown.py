"""Best-effort reversal of an apply invocation's footprint."""

from dataclasses import dataclass, field

from .common.exceptions import RouteError, StateError, WGRoutesError
from .common.logging import get_logger
from .common.process import CommandRunner
from .config import TeardownConfig
from .models import BypassRoute
from .network.interface import InterfaceProbe
from .network.routes import RouteInstaller
from .state import StateStore
from .tunnel import WireGuardTunnel

logger = get_logger(__name__)


@dataclass
class TeardownResult:
    """What teardown managed to undo."""

    interface: str | None = None
    removed: list[BypassRoute] = field(default_factory=list)
    failed: list[BypassRoute] = field(default_factory=list)
    interface_down: bool = False


class Teardown:
    """Deletes recorded bypass routes and brings the tunnel down.

    Never raises: every failure is logged as a warning.
    """

    def __init__(
        self,
        config: TeardownConfig,
        runner: CommandRunner | None = None,
        tunnel: WireGuardTunnel | None = None,
        store: StateStore | None = None,
    ):
        self.config = config
        self.runner = runner or CommandRunner(use_sudo=config.use_sudo)
        self.probe = InterfaceProbe(self.runner, timeout=config.timeouts.probe_timeout)
        self.installer = RouteInstaller(self.runner, timeout=config.timeouts.route_add_timeout)
        self.tunnel = tunnel or WireGuardTunnel(self.runner)
        self.store = store or StateStore(config.state_file)

    async def run(self) -> TeardownResult:
        """Undo what the recorded state describes."""
        result = TeardownResult()
        try:
            await self._run(result)
        except Exception as e:
            logger.warning("Teardown had issues", error=str(e))
        return result

    async def _run(self, result: TeardownResult) -> None:
        try:
            state = self.store.load()
        except StateError as e:
            logger.warning("Cannot read state, nothing to tear down", error=str(e))
            return

        if state is None:
            logger.info("No state recorded, nothing to tear down", path=str(self.store.path))
            return

        result.interface = state.interface
        for route in state.bypass_routes:
            if await self._remove_route(route):
                result.removed.append(route)
            else:
                result.failed.append(route)
        if state.bypass_routes:
            logger.info(
                "Bypass routes removed",
                removed=len(result.removed),
                failed=len(result.failed),
            )

        result.interface_down = await self._bring_down(state.interface)

        try:
            self.store.clear()
        except OSError as e:
            logger.warning("Failed to clear state", error=str(e))

    async def _remove_route(self, route: BypassRoute) -> bool:
        try:
            await self.installer.delete_host_route(route.ip, route.family)
        except RouteError as e:
            if e.not_found:
                logger.debug("Bypass route already gone", destination=route.destination)
            else:
                logger.warning("Failed to delete bypass route", destination=route.destination, error=str(e))
            return False
        except WGRoutesError as e:
            logger.warning("Failed to delete bypass route", destination=route.destination, error=str(e))
            return False
        logger.debug("Bypass route deleted", destination=route.destination)
        return True

    async def _bring_down(self, interface: str) -> bool:
        if not await self.probe.exists(interface):
            logger.info("Interface not present, nothing to bring down", interface=interface)
            return False

        try:
            result = await self.tunnel.bring_down(interface)
        except WGRoutesError as e:
            logger.warning("WireGuard teardown had issues", interface=interface, error=str(e))
            return False

        if not result.ok:
            logger.warning(
                "WireGuard teardown had issues",
                interface=interface,
                error=result.stderr.strip(),
            )
            return False
        logger.info("WireGuard interface is down", interface=interface)
        return True
