"""Navigation detection: screens and the edges that navigate to them."""

from .base import (
    NavigationGraph,
    NavigationResult,
    NavigationStrategy,
    detect_navigation,
    discover_navigation_edges,
    normalize_route,
    screen_node,
)
from .nextjs import NEXTJS, derive_route
from .react_router import REACT_ROUTER

BUILTIN_STRATEGIES = (NEXTJS, REACT_ROUTER)

__all__ = [
    "BUILTIN_STRATEGIES",
    "NEXTJS",
    "REACT_ROUTER",
    "NavigationGraph",
    "NavigationResult",
    "NavigationStrategy",
    "derive_route",
    "detect_navigation",
    "discover_navigation_edges",
    "normalize_route",
    "screen_node",
]
