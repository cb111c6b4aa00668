"""Apply invocation: mode selection, bypass routes and tunnel routes.

Each apply invocation evaluates a single guard, whether the tunnel interface
already exists, and runs in one of two modes:

* ``SETUP`` - the interface is absent. A config is required; the tunnel is
  installed and brought up, then routes for every requested domain and
  address are added.
* ``ADD_ROUTE`` - the interface exists. Only routes requested by this
  invocation are added; the tunnel itself is left alone.

In both modes the default routes are captured and bypass routes installed
before anything else touches the routing table. The state record for the
later teardown is written once, after every route has been attempted.
"""

import platform
from dataclasses import dataclass, field
from enum import Enum

from .common.exceptions import (
    ConfigurationError,
    RouteError,
    StateError,
    UnsupportedPlatformError,
    WGRoutesError,
)
from .common.logging import get_logger
from .common.process import CommandRunner
from .common.utils import address_family
from .config import ApplyConfig
from .models import AddressFamily, PersistedState, Route
from .network.bypass import BypassRouteManager
from .network.interface import InterfaceProbe
from .network.resolver import DNSBackend, NameResolver
from .network.routes import DefaultRouteReader, RouteInstaller
from .state import StateStore
from .tunnel import WireGuardTunnel, decode_config

logger = get_logger(__name__)


class Mode(str, Enum):
    """Operating mode of an apply invocation."""

    SETUP = "setup"
    ADD_ROUTE = "add_route"


@dataclass
class RouteSummary:
    """Outcome of adding tunnel routes."""

    added: list[Route] = field(default_factory=list)
    existing: int = 0
    failed: int = 0
    unresolved: list[str] = field(default_factory=list)


@dataclass
class ApplyResult:
    """Outcome of one apply invocation."""

    mode: Mode
    tunnel_routes: RouteSummary = field(default_factory=RouteSummary)
    bypass_routes: list[Route] = field(default_factory=list)


def ensure_supported_platform() -> None:
    """Raise unless running on Linux."""
    system = platform.system()
    if system != "Linux":
        raise UnsupportedPlatformError(f"Only Linux hosts are supported, not {system}")


class Orchestrator:
    """Runs one apply invocation against the live system."""

    def __init__(
        self,
        config: ApplyConfig,
        runner: CommandRunner | None = None,
        dns_backend: DNSBackend | None = None,
        tunnel: WireGuardTunnel | None = None,
        store: StateStore | None = None,
    ):
        self.config = config
        policy = config.timeouts
        self.runner = runner or CommandRunner(use_sudo=config.use_sudo)
        self.probe = InterfaceProbe(self.runner, timeout=policy.probe_timeout)
        self.resolver = NameResolver(dns_backend, policy)
        self.installer = RouteInstaller(self.runner, timeout=policy.route_add_timeout)
        self.default_routes = DefaultRouteReader(self.runner, timeout=policy.probe_timeout)
        self.bypass = BypassRouteManager(self.resolver, self.installer)
        self.tunnel = tunnel or WireGuardTunnel(self.runner, bring_up_timeout=policy.bring_up_timeout)
        self.store = store or StateStore(config.state_file)

    async def select_mode(self) -> Mode:
        """Evaluate the mode guard."""
        logger.info("Checking if WireGuard interface exists", interface=self.config.interface)
        if await self.probe.exists(self.config.interface):
            return Mode.ADD_ROUTE
        return Mode.SETUP

    async def apply(self) -> ApplyResult:
        """Run the invocation.

        Raises:
            UnsupportedPlatformError: If not running on Linux
            ConfigurationError: If setup is needed but no usable config was given
            TunnelError: If the tunnel cannot be installed or brought up
        """
        ensure_supported_platform()

        mode = await self.select_mode()
        logger.info("Mode selected", mode=mode.value, interface=self.config.interface)
        if mode is Mode.SETUP:
            if not self.config.config:
                raise ConfigurationError(
                    f"Interface {self.config.interface} does not exist and no config was supplied"
                )
            decode_config(self.config.config)

        result = ApplyResult(mode=mode)
        snapshot = await self.default_routes.capture()

        try:
            if self.config.preserve_connectivity:
                result.bypass_routes = await self.bypass.install_bypass_routes(
                    snapshot, self.config.bypass_hosts
                )
            else:
                logger.info("Control-plane bypass disabled")

            if mode is Mode.SETUP:
                result.tunnel_routes = await self._setup(self.config.config)
            else:
                result.tunnel_routes = await self._add_routes()
        finally:
            self._persist(result.bypass_routes)

        return result

    async def _setup(self, encoded_config: str) -> RouteSummary:
        config = self.config
        logger.info("Setting up WireGuard interface", interface=config.interface, has_config=True)

        if config.install_package:
            await self.tunnel.install_package(config.update_package_list)
        await self.tunnel.write_config(config.interface, encoded_config)
        await self.tunnel.bring_up(config.interface)

        summary = await self.install_tunnel_routes(config.domains, config.ips)
        logger.info("WireGuard setup complete", interface=config.interface)
        return summary

    async def _add_routes(self) -> RouteSummary:
        logger.info("WireGuard interface already exists, adding routes", interface=self.config.interface)
        if not self.config.has_routes:
            logger.warning("Interface exists but no domains or IPs specified, nothing to do")
            return RouteSummary()

        summary = await self.install_tunnel_routes(self.config.domains, self.config.ips)
        logger.info("Route addition complete")
        return summary

    async def install_tunnel_routes(self, domains: list[str], ips: list[str]) -> RouteSummary:
        """Route every address of ``domains`` and every literal ``ips`` via the tunnel.

        A failure for one domain or address never stops the rest.
        """
        summary = RouteSummary()

        if domains:
            logger.info("Adding routes for domains", count=len(domains))
        for index, domain in enumerate(domains, start=1):
            logger.info(f"[{index}/{len(domains)}] Resolving {domain}")
            addresses = await self.resolver.resolve_with_retry(domain)
            if not addresses:
                logger.warning("Skipping domain, no IP addresses resolved", domain=domain)
                summary.unresolved.append(domain)
                continue
            for address in addresses:
                await self._add_tunnel_route(summary, address.ip, address.family, domain)

        if ips:
            logger.info("Adding routes for IP addresses", count=len(ips))
        for index, ip in enumerate(ips, start=1):
            logger.info(f"[{index}/{len(ips)}] Adding route for {ip}")
            try:
                family = address_family(ip)
            except ValueError:
                logger.warning("Skipping invalid IP address", ip=ip)
                summary.failed += 1
                continue
            await self._add_tunnel_route(summary, ip, family, ip)

        if domains or ips:
            logger.info(
                "Tunnel routes processed",
                added=len(summary.added),
                existing=summary.existing,
                failed=summary.failed,
                unresolved=len(summary.unresolved),
            )
        return summary

    async def _add_tunnel_route(
        self, summary: RouteSummary, ip: str, family: AddressFamily, host: str
    ) -> None:
        interface = self.config.interface
        try:
            route = await self.installer.add_host_route(ip, family, device=interface)
        except RouteError as e:
            if e.already_exists:
                logger.info("Route already present", host=host, ip=ip, interface=interface)
                summary.existing += 1
            else:
                logger.warning("Failed to add route", host=host, ip=ip, error=str(e))
                summary.failed += 1
            return
        except WGRoutesError as e:
            logger.warning("Failed to add route", host=host, ip=ip, error=str(e))
            summary.failed += 1
            return

        summary.added.append(route)
        logger.info("Route added", host=host, destination=route.destination, interface=interface)

    def _persist(self, bypass_routes: list[Route]) -> None:
        records = [route.to_bypass_record() for route in bypass_routes]
        interface = self.config.interface

        try:
            previous = self.store.load()
        except StateError as e:
            logger.warning("Discarding unreadable state", error=str(e))
            previous = None

        if previous is not None and previous.interface == interface:
            state = previous.merged_with(records)
        else:
            state = PersistedState(interface=interface, bypass_routes=records)

        try:
            self.store.save(state)
        except OSError as e:
            logger.error("Failed to persist state for teardown", path=str(self.store.path), error=str(e))
            return
        logger.info(
            "State recorded for teardown",
            interface=interface,
            bypass_routes=len(state.bypass_routes),
        )
