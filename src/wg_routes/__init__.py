"""wg-routes - WireGuard tunnel bring-up and split-tunnel route orchestration."""

from .common.exceptions import (
    CommandError,
    ConfigurationError,
    OperationTimeoutError,
    RouteError,
    StateError,
    TunnelError,
    UnsupportedPlatformError,
    WGRoutesError,
)
from .common.logging import get_logger, setup_logging
from .config import CONTROL_PLANE_HOSTS, ApplyConfig, TeardownConfig, TimeoutPolicy
from .models import (
    AddressFamily,
    BypassRoute,
    DefaultRoute,
    DefaultRouteSnapshot,
    PersistedState,
    ResolvedAddress,
    Route,
    RouteKind,
)
from .orchestrator import ApplyResult, Mode, Orchestrator, RouteSummary
from .state import StateStore
from .teardown import Teardown, TeardownResult
from .tunnel import WireGuardTunnel

__version__ = "0.1.0"


__all__ = [
    # Invocations
    "Orchestrator",
    "Mode",
    "ApplyResult",
    "RouteSummary",
    "Teardown",
    "TeardownResult",
    # Configuration
    "ApplyConfig",
    "TeardownConfig",
    "TimeoutPolicy",
    "CONTROL_PLANE_HOSTS",
    # Models
    "AddressFamily",
    "RouteKind",
    "ResolvedAddress",
    "Route",
    "DefaultRoute",
    "DefaultRouteSnapshot",
    "BypassRoute",
    "PersistedState",
    # Collaborators
    "StateStore",
    "WireGuardTunnel",
    # Exceptions
    "WGRoutesError",
    "ConfigurationError",
    "UnsupportedPlatformError",
    "OperationTimeoutError",
    "CommandError",
    "RouteError",
    "TunnelError",
    "StateError",
    # Logging
    "get_logger",
    "setup_logging",
]
