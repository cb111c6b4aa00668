"""Shared pytest fixtures for wg-routes tests."""

import asyncio

import pytest

from wg_routes.common.exceptions import CommandError, NameNotFoundError
from wg_routes.common.process import CommandResult, CommandRunner
from wg_routes.config import ApplyConfig, TimeoutPolicy
from wg_routes.models import AddressFamily

DEFAULT_V4 = "default via 192.168.1.1 dev eth0 proto dhcp src 192.168.1.10 metric 100\n"
DEFAULT_V6 = "default via fe80::1 dev eth0 proto ra metric 1024 expires 1799sec pref medium\n"


class FakeHost(CommandRunner):
    """Command runner that simulates iproute2 and wg-quick on a host.

    Interfaces come into existence with ``wg-quick up`` and the routing
    table rejects duplicate adds and deletes of missing routes the way the
    kernel does. ``override`` replaces the simulated reply for any command
    prefix.
    """

    def __init__(self, interfaces=(), default_v4=DEFAULT_V4, default_v6=""):
        super().__init__(use_sudo=True)
        self.interfaces = set(interfaces)
        self.routes: dict[str, list[str]] = {}
        self.default_v4 = default_v4
        self.default_v6 = default_v6
        self.calls: list[list[str]] = []
        self._overrides: dict[tuple[str, ...], object] = {}
        self._delays: dict[tuple[str, ...], float] = {}

    def override(self, *prefix, returncode=0, stdout="", stderr="", exc=None):
        """Reply to commands starting with ``prefix`` with a fixed result."""
        if exc is not None:
            self._overrides[prefix] = exc
        else:
            self._overrides[prefix] = (returncode, stdout, stderr)

    def delay(self, *prefix, seconds):
        """Make commands starting with ``prefix`` take ``seconds``."""
        self._delays[prefix] = seconds

    def _match(self, table, args):
        best = None
        for prefix in table:
            if tuple(args[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        return best

    def commands(self, *prefix):
        """Recorded commands (without sudo) starting with ``prefix``."""
        stripped = [call[1:] if call[0] == "sudo" else call for call in self.calls]
        return [call for call in stripped if tuple(call[: len(prefix)]) == prefix]

    async def run(self, args, privileged=False, check=False):
        argv = self.build_args(args, privileged)
        self.calls.append(argv)

        delay = self._match(self._delays, args)
        if delay is not None:
            await asyncio.sleep(self._delays[delay])

        override = self._match(self._overrides, args)
        if override is not None:
            reply = self._overrides[override]
            if isinstance(reply, Exception):
                raise reply
            returncode, stdout, stderr = reply
        else:
            returncode, stdout, stderr = self._simulate(list(args))

        result = CommandResult(tuple(argv), returncode, stdout, stderr)
        if check and not result.ok:
            raise CommandError(f"Command '{result.command}' failed", result)
        return result

    def _simulate(self, args):
        if args[:2] == ["ip", "-6"]:
            family, rest = AddressFamily.V6, args[2:]
        elif args[:1] == ["ip"]:
            family, rest = AddressFamily.V4, args[1:]
        else:
            family, rest = None, args

        if family is not None:
            if rest[:2] == ["link", "show"]:
                if rest[2] in self.interfaces:
                    return 0, f"5: {rest[2]}: <POINTOPOINT,NOARP,UP,LOWER_UP> mtu 1420\n", ""
                return 1, "", f'Device "{rest[2]}" does not exist.\n'
            if rest[:3] == ["route", "show", "default"]:
                return 0, self.default_v6 if family is AddressFamily.V6 else self.default_v4, ""
            if rest[:2] == ["route", "add"]:
                if rest[2] in self.routes:
                    return 2, "", "RTNETLINK answers: File exists\n"
                self.routes[rest[2]] = rest[3:]
                return 0, "", ""
            if rest[:2] == ["route", "del"]:
                if rest[2] not in self.routes:
                    return 2, "", "RTNETLINK answers: No such process\n"
                del self.routes[rest[2]]
                return 0, "", ""
            return 0, "", ""

        if args[:2] == ["wg-quick", "up"]:
            self.interfaces.add(args[2])
            return 0, "", f"[#] ip link add {args[2]} type wireguard\n"
        if args[:2] == ["wg-quick", "down"]:
            if args[2] not in self.interfaces:
                return 1, "", f"wg-quick: `{args[2]}' is not a WireGuard interface\n"
            self.interfaces.discard(args[2])
            return 0, "", f"[#] ip link delete dev {args[2]}\n"
        if args[:2] == ["wg", "show"]:
            return (0, f"interface: {args[2]}\n", "") if args[2] in self.interfaces else (1, "", "No such device\n")
        return 0, "", ""


class FakeDNS:
    """DNS backend answering from a static table.

    ``records`` maps a domain to ``{AddressFamily: [ip, ...] | Exception}``;
    a missing entry is reported as not found.
    """

    def __init__(self, records=None):
        self.records = records or {}
        self.calls: list[tuple[str, AddressFamily]] = []

    async def lookup(self, domain, family):
        self.calls.append((domain, family))
        entry = self.records.get(domain, {}).get(family)
        if entry is None:
            raise NameNotFoundError(f"No records for {domain}")
        if isinstance(entry, Exception):
            raise entry
        return list(entry)


@pytest.fixture
def host():
    """Host without a tunnel interface and with an IPv4 default route."""
    return FakeHost()


@pytest.fixture
def dns_backend():
    """DNS with records for the tunnel targets and two control-plane hosts."""
    return FakeDNS(
        {
            "api.example.com": {AddressFamily.V4: ["203.0.113.10", "203.0.113.11"]},
            "db.example.com": {AddressFamily.V4: ["203.0.113.20"]},
            "v6only.example.com": {AddressFamily.V6: ["2001:db8::20"]},
            "github.com": {
                AddressFamily.V4: ["140.82.112.3"],
                AddressFamily.V6: ["2606:50c0:8000::153"],
            },
            "api.github.com": {AddressFamily.V4: ["140.82.112.6"]},
        }
    )


@pytest.fixture
def fast_policy():
    """Timeout policy with no delay between DNS retries."""
    return TimeoutPolicy(dns_timeout=1.0, dns_retry_delay=0, route_add_timeout=1.0, probe_timeout=1.0)


@pytest.fixture
def state_file(tmp_path):
    """Path for the persisted state record."""
    return tmp_path / "state" / "wg-routes-state.json"


@pytest.fixture
def wg_config():
    """Base64 encoded WireGuard config."""
    import base64  # noqa: PLC0415

    return base64.b64encode(
        b"[Interface]\nPrivateKey = aGVsbG8=\nAddress = 10.0.0.2/32\n\n"
        b"[Peer]\nPublicKey = d29ybGQ=\nAllowedIPs = 0.0.0.0/0\nEndpoint = vpn.example.com:51820\n"
    ).decode()


@pytest.fixture
def make_config(state_file, fast_policy):
    """Factory for ApplyConfig with test-friendly defaults."""

    def _make(**overrides):
        values = {
            "bypass_hosts": ["github.com", "api.github.com"],
            "state_file": state_file,
            "timeouts": fast_policy,
        }
        values.update(overrides)
        return ApplyConfig(**values)

    return _make
