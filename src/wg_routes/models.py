"""Route and state models for wg-routes.

This module defines the address-family aware route models shared by the
resolver, the route installer, the bypass manager and the persisted state
record consumed by teardown.
"""

import ipaddress
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

STATE_VERSION = 1


class AddressFamily(str, Enum):
    """IP address family."""

    V4 = "v4"
    V6 = "v6"

    @property
    def prefix_length(self) -> int:
        """Host route prefix length for this family."""
        return 128 if self is AddressFamily.V6 else 32

    @property
    def ip_command(self) -> list[str]:
        """Base ``ip`` invocation for this family."""
        return ["ip", "-6"] if self is AddressFamily.V6 else ["ip"]


class RouteKind(str, Enum):
    """Where a host route sends its traffic."""

    TUNNEL = "tunnel"
    BYPASS = "bypass"


class ResolvedAddress(BaseModel):
    """A single DNS answer for a host."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(min_length=1)
    ip: str
    family: AddressFamily

    @field_validator("ip")
    @classmethod
    def validate_ip(cls, v: str) -> str:
        """Normalize the address text."""
        return str(ipaddress.ip_address(v))


class Route(BaseModel):
    """A host route that has been, or is to be, installed."""

    model_config = ConfigDict(frozen=True)

    ip: str
    family: AddressFamily
    kind: RouteKind = RouteKind.TUNNEL
    device: str = Field(min_length=1, description="Egress interface")
    gateway: str | None = Field(default=None, description="Next hop, bypass routes only")

    @field_validator("ip")
    @classmethod
    def validate_ip(cls, v: str) -> str:
        """Normalize the address text."""
        return str(ipaddress.ip_address(v))

    @property
    def destination(self) -> str:
        """Destination in CIDR notation."""
        return f"{self.ip}/{self.family.prefix_length}"

    def to_bypass_record(self) -> "BypassRoute":
        """Reduce to the fields teardown needs."""
        return BypassRoute(ip=self.ip, family=self.family)


class DefaultRoute(BaseModel):
    """Gateway and device of a default route."""

    model_config = ConfigDict(frozen=True)

    gateway: str | None = None
    device: str | None = None


class DefaultRouteSnapshot(BaseModel):
    """Default routes per family, captured before the tunnel touches anything."""

    model_config = ConfigDict(frozen=True)

    v4: DefaultRoute | None = None
    v6: DefaultRoute | None = None

    def for_family(self, family: AddressFamily) -> DefaultRoute | None:
        """Return the default route of ``family``, if one was captured."""
        return self.v6 if family is AddressFamily.V6 else self.v4


class BypassRoute(BaseModel):
    """Persisted record of an installed bypass route."""

    model_config = ConfigDict(frozen=True)

    ip: str
    family: AddressFamily

    @property
    def destination(self) -> str:
        """Destination in CIDR notation."""
        return f"{self.ip}/{self.family.prefix_length}"


class PersistedState(BaseModel):
    """State handed from an apply invocation to the later teardown."""

    model_config = ConfigDict(extra="forbid")

    version: int = Field(default=STATE_VERSION)
    interface: str = Field(min_length=1)
    bypass_routes: list[BypassRoute] = Field(default_factory=list)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: int) -> int:
        """Reject records written by an incompatible release."""
        if v != STATE_VERSION:
            raise ValueError(f"Unsupported state version: {v}")
        return v

    def merged_with(self, routes: list[BypassRoute]) -> "PersistedState":
        """Return a copy that also records ``routes``, without duplicates."""
        merged = list(self.bypass_routes)
        for route in routes:
            if route not in merged:
                merged.append(route)
        return self.model_copy(update={"bypass_routes": merged})
