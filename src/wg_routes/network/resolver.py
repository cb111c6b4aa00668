"""Domain name resolution with per-family timeouts and bounded retries.

A domain resolves to the union of its A and AAAA records. The two families
are looked up independently: a missing family is normal (most hosts have no
AAAA records) and is only logged at debug level, while any other failure is
reported as a warning and the other family's answer is still used.
"""

import asyncio
from typing import Protocol

import dns.asyncresolver
import dns.exception
import dns.resolver

from ..common.exceptions import NameNotFoundError, WGRoutesError
from ..common.logging import get_logger
from ..common.timeout import with_timeout
from ..config import TimeoutPolicy
from ..models import AddressFamily, ResolvedAddress

logger = get_logger(__name__)

_RDTYPES = {AddressFamily.V4: "A", AddressFamily.V6: "AAAA"}


class DNSBackend(Protocol):
    """Per-family lookup primitive."""

    async def lookup(self, domain: str, family: AddressFamily) -> list[str]:
        """Return the addresses of ``domain`` in ``family``.

        Raises:
            NameNotFoundError: If the name or the record type does not exist
        """
        ...


class DnsPythonBackend:
    """DNS lookups through dnspython's asyncio resolver."""

    def __init__(self, resolver: dns.asyncresolver.Resolver | None = None):
        self._resolver = resolver

    @property
    def resolver(self) -> dns.asyncresolver.Resolver:
        """System resolver, created on first use."""
        if self._resolver is None:
            self._resolver = dns.asyncresolver.Resolver()
        return self._resolver

    async def lookup(self, domain: str, family: AddressFamily) -> list[str]:
        try:
            answer = await self.resolver.resolve(domain, _RDTYPES[family])
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer) as e:
            raise NameNotFoundError(f"No {_RDTYPES[family]} records for {domain}") from e
        except dns.exception.DNSException as e:
            raise WGRoutesError(f"{_RDTYPES[family]} lookup failed for {domain}: {e}") from e
        return [rdata.address for rdata in answer]


class NameResolver:
    """Resolves domains to their IPv4 and IPv6 addresses."""

    def __init__(self, backend: DNSBackend | None = None, policy: TimeoutPolicy | None = None):
        self.backend = backend or DnsPythonBackend()
        self.policy = policy or TimeoutPolicy()

    async def _lookup_family(self, domain: str, family: AddressFamily) -> list[ResolvedAddress]:
        try:
            ips = await with_timeout(
                self.backend.lookup(domain, family),
                self.policy.dns_timeout,
                f"resolve {family.value} for {domain}",
            )
        except NameNotFoundError as e:
            logger.debug("No records", domain=domain, family=family.value, reason=str(e))
            return []
        except WGRoutesError as e:
            logger.warning("Resolution failed", domain=domain, family=family.value, error=str(e))
            return []

        addresses = []
        for ip in ips:
            try:
                addresses.append(ResolvedAddress(host=domain, ip=ip, family=family))
            except ValueError:
                logger.warning("Ignoring malformed address", domain=domain, ip=ip)
        if addresses:
            logger.info(
                "Resolved addresses", domain=domain, family=family.value, count=len(addresses)
            )
        return addresses

    async def resolve(self, domain: str) -> set[ResolvedAddress]:
        """Resolve ``domain`` in both families and return the union.

        Never raises for DNS failures.
        """
        addresses: set[ResolvedAddress] = set()
        for family in (AddressFamily.V4, AddressFamily.V6):
            addresses.update(await self._lookup_family(domain, family))
        return addresses

    async def resolve_with_retry(
        self,
        domain: str,
        attempts: int | None = None,
        delay: float | None = None,
    ) -> list[ResolvedAddress]:
        """Resolve ``domain``, retrying while the answer is empty.

        Args:
            domain: Name to resolve
            attempts: Total attempts (default from policy)
            delay: Seconds to sleep between attempts (default from policy)

        Returns:
            Addresses sorted v4 first, or an empty list when every attempt
            came back empty
        """
        attempts = attempts if attempts is not None else self.policy.dns_retry_attempts
        delay = delay if delay is not None else self.policy.dns_retry_delay

        for attempt in range(1, attempts + 1):
            addresses = await self.resolve(domain)
            if addresses:
                return sorted(addresses, key=lambda a: (a.family != AddressFamily.V4, a.ip))

            if attempt < attempts:
                logger.warning(
                    "DNS resolution attempt failed, retrying",
                    domain=domain,
                    attempt=attempt,
                    delay=delay,
                )
                await asyncio.sleep(delay)

        logger.warning("Failed to resolve domain", domain=domain, attempts=attempts)
        return []
