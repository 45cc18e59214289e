"""File-system routing: screens derived from ``pages/`` and ``app/`` paths."""

import re
from pathlib import Path
from typing import Optional, Pattern, Sequence

from ..loader import SourceFile
from .base import NavigationGraph, NavigationResult, NavigationStrategy, discover_navigation_edges, screen_node

APP_ROUTE = re.compile(r"(?:^|/)app/(?:(?P<segments>.*)/)?page\.(?:tsx|jsx|js)$")
PAGES_ROUTE = re.compile(r"(?:^|/)pages/(?P<segments>.+)\.(?:tsx|jsx|js)$")
ROUTE_PATTERNS = (APP_ROUTE, PAGES_ROUTE)

_ROUTE_DIRECTORIES = ("pages", "app")


def derive_route(rel_path: str, patterns: Sequence[Pattern] = ROUTE_PATTERNS) -> Optional[str]:
    """Map a file path to its route, or None if the file is not a page.

        >>> derive_route("pages/login.tsx")
        '/login'
        >>> derive_route("app/(auth)/settings/page.tsx")
        '/settings'
    """
    posix = rel_path.replace("\\", "/")
    for pattern in patterns:
        match = pattern.search(posix)
        if match is None:
            continue
        segments = [s for s in (match.group("segments") or "").split("/") if s]
        # _app, _document and private folders are not routes.
        if any(s.startswith("_") for s in segments):
            return None
        if pattern is PAGES_ROUTE and segments and segments[0] == "api":
            return None
        segments = [s for s in segments if not (s.startswith("(") and s.endswith(")"))]
        if segments and segments[-1] == "index":
            segments = segments[:-1]
        return "/" + "/".join(segments)
    return None


def detect(files: Sequence[SourceFile]) -> bool:
    for source in files:
        parts = source.rel_path.replace("\\", "/").split("/")[:-1]
        if any(part in _ROUTE_DIRECTORIES for part in parts):
            return True
    return False


def analyze(files: Sequence[SourceFile], root_path: Path, graph: NavigationGraph) -> NavigationResult:
    screens = graph.screens()
    added = []
    for source in files:
        route = derive_route(source.rel_path)
        if route is None or route in screens:
            continue
        screen = screen_node(route, source.rel_path)
        screens[route] = screen
        added.append(screen)
    return NavigationResult(screens=tuple(added), edges=discover_navigation_edges(files, graph, screens))


NEXTJS = NavigationStrategy("Next.js", detect, analyze)
