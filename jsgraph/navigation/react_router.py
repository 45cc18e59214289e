"""Declarative routing: screens declared by ``<Route path="..." />`` elements."""

from pathlib import Path
from typing import Sequence

from ..loader import SourceFile
from ..syntax import jsx_attributes, jsx_tag_name, node_text, start_line, string_literal_value, walk
from .base import (
    NavigationGraph,
    NavigationResult,
    NavigationStrategy,
    discover_navigation_edges,
    normalize_route,
    screen_node,
)

ROUTER_PACKAGES = frozenset(["react-router", "react-router-dom"])
ROUTE_TAG = "Route"


def _imports_router(source: SourceFile) -> bool:
    for statement in source.root.named_children:
        if statement.type != "import_statement":
            continue
        if string_literal_value(statement.child_by_field_name("source")) in ROUTER_PACKAGES:
            return True
    return False


def detect(files: Sequence[SourceFile]) -> bool:
    return any(_imports_router(source) for source in files)


def analyze(files: Sequence[SourceFile], root_path: Path, graph: NavigationGraph) -> NavigationResult:
    screens = graph.screens()
    added = []
    for source in files:
        for element in walk(source.root):
            if element.type != "jsx_self_closing_element" or node_text(jsx_tag_name(element)) != ROUTE_TAG:
                continue
            for name, value in jsx_attributes(element):
                path = string_literal_value(value) if name == "path" else None
                if not path:
                    continue
                route = normalize_route(path)
                if route in screens:
                    continue
                screen = screen_node(route, source.rel_path, start_line(element))
                screens[route] = screen
                added.append(screen)
    return NavigationResult(screens=tuple(added), edges=discover_navigation_edges(files, graph, screens, normalize_route))


REACT_ROUTER = NavigationStrategy("React Router", detect, analyze)
