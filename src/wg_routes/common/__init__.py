"""Common utilities and shared functionality."""

from .exceptions import (
    CommandError,
    ConfigurationError,
    NameNotFoundError,
    OperationTimeoutError,
    RouteError,
    StateError,
    TunnelError,
    UnsupportedPlatformError,
    WGRoutesError,
)
from .logging import get_logger, setup_logging
from .process import CommandResult, CommandRunner
from .timeout import with_timeout
from .utils import (
    MAX_INTERFACE_NAME_LENGTH,
    address_family,
    parse_input_list,
    validate_interface_name,
)

__all__ = [
    # Command execution
    "CommandRunner",
    "CommandResult",
    "with_timeout",
    # Exceptions
    "WGRoutesError",
    "ConfigurationError",
    "UnsupportedPlatformError",
    "OperationTimeoutError",
    "CommandError",
    "RouteError",
    "TunnelError",
    "NameNotFoundError",
    "StateError",
    # Logging
    "get_logger",
    "setup_logging",
    # Utils
    "parse_input_list",
    "validate_interface_name",
    "address_family",
    "MAX_INTERFACE_NAME_LENGTH",
]
