"""Bypass routes that keep control-plane hosts outside the tunnel.

A full-tunnel WireGuard config captures all traffic. Host routes to the
control-plane endpoints through the pre-tunnel default gateway win over any
default route by longest-prefix match, so those hosts stay reachable no
matter when the tunnel comes up.
"""

from collections.abc import Iterable

from ..common.exceptions import RouteError, WGRoutesError
from ..common.logging import get_logger
from ..models import DefaultRouteSnapshot, Route, RouteKind
from .resolver import NameResolver
from .routes import RouteInstaller

logger = get_logger(__name__)


class BypassRouteManager:
    """Installs host routes via the captured default gateway."""

    def __init__(self, resolver: NameResolver, installer: RouteInstaller):
        self.resolver = resolver
        self.installer = installer

    async def install_bypass_routes(
        self, snapshot: DefaultRouteSnapshot, allow_list: Iterable[str]
    ) -> list[Route]:
        """Route every address of every allow-listed host around the tunnel.

        Addresses of a family without a complete default route in
        ``snapshot`` are skipped.

        Returns:
            Routes installed by this call
        """
        installed: list[Route] = []
        seen: set[str] = set()

        for host in allow_list:
            addresses = await self.resolver.resolve_with_retry(host)
            if not addresses:
                logger.warning("No addresses for bypass host", host=host)
                continue

            for address in addresses:
                if address.ip in seen:
                    continue
                seen.add(address.ip)

                default = snapshot.for_family(address.family)
                if default is None or not default.gateway or not default.device:
                    logger.debug(
                        "No default route to preserve",
                        host=host,
                        ip=address.ip,
                        family=address.family.value,
                    )
                    continue

                try:
                    route = await self.installer.add_host_route(
                        address.ip,
                        address.family,
                        device=default.device,
                        gateway=default.gateway,
                        kind=RouteKind.BYPASS,
                    )
                except RouteError as e:
                    if e.already_exists:
                        logger.debug("Bypass route already present", host=host, ip=address.ip)
                    else:
                        logger.warning("Failed to add bypass route", host=host, ip=address.ip, error=str(e))
                    continue
                except WGRoutesError as e:
                    logger.warning("Failed to add bypass route", host=host, ip=address.ip, error=str(e))
                    continue

                installed.append(route)
                logger.info(
                    "Bypass route added",
                    host=host,
                    destination=route.destination,
                    gateway=route.gateway,
                    device=route.device,
                )

        logger.info("Bypass routes installed", count=len(installed))
        return installed
