"""Strategy interface and the edge discovery shared by every navigation strategy."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from .. import models
from ..config import DEFAULT_CONFIG, AnalyzerConfig
from ..extractor import DeclarationSite
from ..loader import SourceFile
from ..models import CodeEdge, CodeNode
from ..syntax import (
    JSX_ELEMENTS,
    call_arguments,
    callee_name,
    jsx_attributes,
    string_literal_value,
    walk,
)

logger = logging.getLogger(__name__)

NAVIGATES_TO = "navigates to"

_SOURCE_TYPES = frozenset([models.FUNCTION, models.COMPONENT, models.CLASS])


@dataclass(frozen=True)
class NavigationGraph:
    """The graph as seen by a strategy: every node so far plus declaration sites."""

    nodes: Dict[str, CodeNode]
    edges: Tuple[CodeEdge, ...] = ()
    sites: Dict[str, DeclarationSite] = field(default_factory=dict)
    config: AnalyzerConfig = DEFAULT_CONFIG

    def screens(self) -> Dict[str, CodeNode]:
        """Screen nodes keyed by route label."""
        return {n.label: n for n in self.nodes.values() if n.type == models.SCREEN}

    def extend(self, result: "NavigationResult") -> "NavigationGraph":
        nodes = dict(self.nodes)
        for screen in result.screens:
            nodes.setdefault(screen.id, screen)
        edges = models.unique_edges(self.edges + tuple(result.edges))
        return NavigationGraph(nodes=nodes, edges=edges, sites=self.sites, config=self.config)


@dataclass(frozen=True)
class NavigationResult:
    """What one strategy adds to the graph."""

    screens: Tuple[CodeNode, ...] = ()
    edges: Tuple[CodeEdge, ...] = ()


class NavigationStrategy(NamedTuple):
    """One framework convention: a detection predicate and an analyzer."""

    name: str
    detect: Callable[[Sequence[SourceFile]], bool]
    analyze: Callable[[Sequence[SourceFile], Path, NavigationGraph], NavigationResult]


def normalize_route(route: str) -> str:
    route = route.strip()
    return route if route.startswith("/") else "/" + route


def screen_node(route: str, rel_path: str, line: int = 1) -> CodeNode:
    return CodeNode(id=f"screen:{route}", type=models.SCREEN, label=route, file_path=rel_path, line=line)


def _file_sites(graph: NavigationGraph, rel_path: str) -> List[DeclarationSite]:
    return [
        site
        for node_id, site in graph.sites.items()
        if site.rel_path == rel_path and node_id in graph.nodes and graph.nodes[node_id].type in _SOURCE_TYPES
    ]


def _enclosing(sites: Iterable[DeclarationSite], offset: int) -> Optional[str]:
    """ID of the innermost declaration whose byte range contains ``offset``."""
    best = None
    for site in sites:
        if site.start_byte <= offset < site.end_byte:
            if best is None or site.end_byte - site.start_byte < best.end_byte - best.start_byte:
                best = site
    return best.node_id if best is not None else None


def route_references(source: SourceFile, config: AnalyzerConfig) -> List[Tuple[int, str]]:
    """(byte offset, route) pairs for navigation calls and link attributes."""
    found = []
    for node in walk(source.root):
        if node.type == "call_expression":
            if callee_name(node) not in config.navigation_functions:
                continue
            args = call_arguments(node)
            route = string_literal_value(args[0]) if args else None
            if route is not None:
                found.append((node.start_byte, route))
        elif node.type in JSX_ELEMENTS:
            for name, value in jsx_attributes(node):
                if name not in config.navigation_attributes:
                    continue
                route = string_literal_value(value)
                if route is not None:
                    found.append((node.start_byte, route))
    return found


def discover_navigation_edges(
    files: Sequence[SourceFile],
    graph: NavigationGraph,
    screens: Dict[str, CodeNode],
    normalize: Optional[Callable[[str], str]] = None,
) -> Tuple[CodeEdge, ...]:
    """Edges from navigating declarations to the screens their routes name.

    ``normalize`` rewrites each route before lookup. Routes with no matching
    screen are dropped; no screen is created here.
    """
    edges = []
    for source in files:
        sites = _file_sites(graph, source.rel_path)
        for offset, route in route_references(source, graph.config):
            if normalize is not None:
                route = normalize(route)
            screen = screens.get(route)
            if screen is None:
                logger.debug("No screen for route %s in %s", route, source.rel_path)
                continue
            source_id = _enclosing(sites, offset) or source.file_id
            edges.append(CodeEdge(
                id=f"nav:{source_id}-{screen.id}",
                source=source_id,
                target=screen.id,
                type=models.NAVIGATION,
                label=NAVIGATES_TO,
            ))
    return models.unique_edges(edges)


def detect_navigation(
    files: Sequence[SourceFile],
    root_path: Path,
    graph: NavigationGraph,
    strategies: Sequence[NavigationStrategy],
) -> Tuple[NavigationGraph, Tuple[str, ...]]:
    """Run every applicable strategy in order, isolating their failures."""
    warnings: List[str] = []
    for strategy in strategies:
        try:
            if not strategy.detect(files):
                continue
            logger.info("Detected %s navigation", strategy.name)
            result = strategy.analyze(files, root_path, graph)
        except Exception as exc:
            logger.exception("Navigation strategy %s failed", strategy.name)
            warnings.append(f"Navigation strategy {strategy.name} failed: {exc}")
            continue
        graph = graph.extend(result)
        logger.info(
            "%s: %d screens, %d navigation edges", strategy.name, len(result.screens), len(result.edges)
        )
    return graph, tuple(warnings)
