"""Configuration models for wg-routes."""

import ipaddress
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common.utils import parse_input_list, validate_interface_name

STATE_FILE_ENV = "WG_ROUTES_STATE_FILE"
STATE_FILE_NAME = "wg-routes-state.json"

# Hosts the CI runner must keep reaching after a full-tunnel config takes the
# default route.
CONTROL_PLANE_HOSTS: tuple[str, ...] = (
    "github.com",
    "api.github.com",
    "codeload.github.com",
    "objects.githubusercontent.com",
    "pipelines.actions.githubusercontent.com",
    "results-receiver.actions.githubusercontent.com",
    "broker.actions.githubusercontent.com",
    "vstoken.actions.githubusercontent.com",
)


def default_state_file() -> Path:
    """Resolve the state file location from the environment."""
    override = os.environ.get(STATE_FILE_ENV)
    if override:
        return Path(override)
    base = os.environ.get("RUNNER_TEMP") or tempfile.gettempdir()
    return Path(base) / STATE_FILE_NAME


def _split_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return parse_input_list(value)
    return value


class TimeoutPolicy(BaseModel):
    """Deadlines and retry policy for external operations, in seconds."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    dns_timeout: float = Field(default=10.0, gt=0, description="Per-family DNS lookup timeout")
    dns_retry_attempts: int = Field(default=3, ge=1, le=10, description="DNS attempts per host")
    dns_retry_delay: float = Field(default=2.0, ge=0, description="Delay between DNS attempts")
    bring_up_timeout: float = Field(default=60.0, gt=0, description="wg-quick up timeout")
    route_add_timeout: float = Field(default=10.0, gt=0, description="Per-route add timeout")
    probe_timeout: float = Field(default=5.0, gt=0, description="Interface probe timeout")


class ApplyConfig(BaseModel):
    """Inputs of one apply invocation."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )

    interface: str = Field(default="wg0", description="Tunnel interface name")
    config: str | None = Field(default=None, description="Base64 encoded WireGuard config")
    domains: list[str] = Field(default_factory=list, description="Domains to route via the tunnel")
    ips: list[str] = Field(default_factory=list, description="Addresses to route via the tunnel")
    preserve_connectivity: bool = Field(
        default=True, description="Keep control-plane hosts outside the tunnel"
    )
    bypass_hosts: list[str] = Field(default_factory=lambda: list(CONTROL_PLANE_HOSTS))
    install_package: bool = Field(default=True, description="Install wireguard before setup")
    update_package_list: bool = Field(default=True, description="Run apt-get update first")
    use_sudo: bool = Field(default=True, description="Prefix privileged commands with sudo")
    state_file: Path = Field(default_factory=default_state_file)
    timeouts: TimeoutPolicy = Field(default_factory=TimeoutPolicy)

    @field_validator("interface")
    @classmethod
    def validate_interface(cls, v: str) -> str:
        """Validate interface name format."""
        return validate_interface_name(v)

    @field_validator("config")
    @classmethod
    def empty_config_is_none(cls, v: str | None) -> str | None:
        """Treat an empty config input as absent."""
        return v or None

    @field_validator("domains", "bypass_hosts", mode="before")
    @classmethod
    def split_hosts(cls, v: Any) -> Any:
        """Accept comma-delimited strings as well as lists."""
        return _split_list(v)

    @field_validator("ips", mode="before")
    @classmethod
    def split_ips(cls, v: Any) -> Any:
        """Accept comma-delimited strings as well as lists."""
        return _split_list(v)

    @field_validator("ips")
    @classmethod
    def normalize_ips(cls, v: list[str]) -> list[str]:
        """Normalize literal addresses.

        Entries that do not parse are kept as given; the apply invocation
        skips them one by one so the rest of the list is still routed.
        """
        normalized = []
        for item in v:
            try:
                normalized.append(str(ipaddress.ip_address(item.strip())))
            except ValueError:
                normalized.append(item.strip())
        return normalized

    @property
    def has_routes(self) -> bool:
        """At least one domain or address was requested."""
        return bool(self.domains or self.ips)


class TeardownConfig(BaseModel):
    """Inputs of the teardown invocation."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    use_sudo: bool = Field(default=True, description="Prefix privileged commands with sudo")
    state_file: Path = Field(default_factory=default_state_file)
    timeouts: TimeoutPolicy = Field(default_factory=TimeoutPolicy)
