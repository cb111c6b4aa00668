"""Host route installation and default route discovery via iproute2."""

import re

from ..common.exceptions import CommandError, OperationTimeoutError, RouteError
from ..common.logging import get_logger
from ..common.process import CommandRunner
from ..common.timeout import with_timeout
from ..models import AddressFamily, DefaultRoute, DefaultRouteSnapshot, Route, RouteKind

logger = get_logger(__name__)

# "default via 192.168.1.1 dev eth0 proto dhcp metric 100"
_VIA_RE = re.compile(r"\bvia\s+(\S+)")
_DEV_RE = re.compile(r"\bdev\s+(\S+)")


class RouteInstaller:
    """Adds and deletes single host routes.

    Failures are reported as raised errors; deciding which of them are
    harmless (an existing route, a route already gone) is up to the caller.
    """

    def __init__(self, runner: CommandRunner, timeout: float = 10.0):
        self.runner = runner
        self.timeout = timeout

    async def add_host_route(
        self,
        ip: str,
        family: AddressFamily,
        device: str,
        gateway: str | None = None,
        kind: RouteKind = RouteKind.TUNNEL,
    ) -> Route:
        """Install a host route to ``ip``.

        Args:
            ip: Destination address
            family: Address family of ``ip``
            device: Egress interface
            gateway: Next hop; omitted for routes bound to the tunnel device
            kind: Route flavor recorded on the result

        Returns:
            The installed route

        Raises:
            RouteError: If ``ip route add`` exited non-zero
            CommandError: If the route tool could not be run
            OperationTimeoutError: If the command did not finish in time
        """
        route = Route(ip=ip, family=family, kind=kind, device=device, gateway=gateway)
        args = [*family.ip_command, "route", "add", route.destination]
        if gateway:
            args += ["via", gateway]
        args += ["dev", device]

        result = await with_timeout(
            self.runner.run(args, privileged=True),
            self.timeout,
            f"add route {route.destination}",
        )
        if not result.ok:
            raise RouteError(
                f"Failed to add route {route.destination}: {result.stderr.strip()}", result
            )

        logger.debug("Route added", destination=route.destination, device=device, gateway=gateway)
        return route

    async def delete_host_route(self, ip: str, family: AddressFamily) -> None:
        """Delete the host route to ``ip``.

        Raises:
            RouteError: If ``ip route del`` exited non-zero
            CommandError: If the route tool could not be run
            OperationTimeoutError: If the command did not finish in time
        """
        destination = f"{ip}/{family.prefix_length}"
        result = await with_timeout(
            self.runner.run([*family.ip_command, "route", "del", destination], privileged=True),
            self.timeout,
            f"delete route {destination}",
        )
        if not result.ok:
            raise RouteError(f"Failed to delete route {destination}: {result.stderr.strip()}", result)
        logger.debug("Route deleted", destination=destination)


def parse_default_route(output: str) -> DefaultRoute | None:
    """Parse ``ip route show default`` output.

    The first listed default route wins. A multipath route carries its
    gateways on indented ``nexthop`` lines; the first one is used. Returns
    None when there is no default route.
    """
    lines = [line.strip() for line in output.splitlines()]
    for index, line in enumerate(lines):
        if not line.startswith("default"):
            continue
        if not _VIA_RE.search(line):
            for nexthop in lines[index + 1 :]:
                if not nexthop.startswith("nexthop"):
                    break
                if _VIA_RE.search(nexthop):
                    line = nexthop
                    break
        via = _VIA_RE.search(line)
        dev = _DEV_RE.search(line)
        return DefaultRoute(
            gateway=via.group(1) if via else None,
            device=dev.group(1) if dev else None,
        )
    return None


class DefaultRouteReader:
    """Captures the host's default routes for both address families."""

    def __init__(self, runner: CommandRunner, timeout: float = 10.0):
        self.runner = runner
        self.timeout = timeout

    async def _read(self, family: AddressFamily) -> DefaultRoute | None:
        try:
            result = await with_timeout(
                self.runner.run([*family.ip_command, "route", "show", "default"]),
                self.timeout,
                f"show {family.value} default route",
            )
        except (CommandError, OperationTimeoutError) as e:
            logger.warning("Failed to read default route", family=family.value, error=str(e))
            return None

        if not result.ok:
            logger.warning(
                "Failed to read default route",
                family=family.value,
                error=result.stderr.strip(),
            )
            return None
        return parse_default_route(result.stdout)

    async def capture(self) -> DefaultRouteSnapshot:
        """Read the current default route of each family.

        A family without a default route is left empty in the snapshot.
        """
        snapshot = DefaultRouteSnapshot(
            v4=await self._read(AddressFamily.V4),
            v6=await self._read(AddressFamily.V6),
        )
        logger.info(
            "Captured default routes",
            v4=snapshot.v4.model_dump() if snapshot.v4 else None,
            v6=snapshot.v6.model_dump() if snapshot.v6 else None,
        )
        return snapshot
