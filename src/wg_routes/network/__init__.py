"""Interface probing, DNS resolution and routing table changes."""

from .bypass import BypassRouteManager
from .interface import InterfaceProbe
from .resolver import DNSBackend, DnsPythonBackend, NameResolver
from .routes import DefaultRouteReader, RouteInstaller, parse_default_route

__all__ = [
    "InterfaceProbe",
    "NameResolver",
    "DNSBackend",
    "DnsPythonBackend",
    "RouteInstaller",
    "DefaultRouteReader",
    "parse_default_route",
    "BypassRouteManager",
]
