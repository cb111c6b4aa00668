"""Custom exceptions for wg-routes."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .process import CommandResult


class WGRoutesError(Exception):
    """Base exception for all wg-routes errors."""
    pass


class ConfigurationError(WGRoutesError):
    """Raised when required input is missing or invalid."""
    pass


class UnsupportedPlatformError(WGRoutesError):
    """Raised when running on a platform other than Linux."""
    pass


class OperationTimeoutError(WGRoutesError):
    """Raised when an operation does not complete within its deadline."""

    def __init__(self, label: str, timeout: float):
        self.label = label
        self.timeout = timeout
        super().__init__(f"Operation '{label}' timed out after {timeout:g}s")


class CommandError(WGRoutesError):
    """Raised when an external command cannot run or exits non-zero."""

    def __init__(self, message: str, result: CommandResult | None = None):
        self.result = result
        super().__init__(message)


class RouteError(CommandError):
    """Raised when the route tool ran but rejected the change."""

    @property
    def already_exists(self) -> bool:
        """Kernel replied that an identical route is already installed."""
        return self.result is not None and "File exists" in self.result.stderr

    @property
    def not_found(self) -> bool:
        """Kernel replied that there is no such route to delete."""
        return self.result is not None and "No such process" in self.result.stderr


class TunnelError(WGRoutesError):
    """Raised when the tunnel interface cannot be brought up."""
    pass


class NameNotFoundError(WGRoutesError):
    """Raised when DNS has no records of the requested family."""
    pass


class StateError(WGRoutesError):
    """Raised when persisted state cannot be read."""
    pass
