"""Run the analysis passes in order and assemble the final graph."""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .callgraph import build_call_graph
from .config import DEFAULT_CONFIG, AnalyzerConfig, ParseOptions
from .extractor import DeclarationSite, extract_structure
from .loader import ProjectSnapshot, load_project
from .models import CodeEdge, CodeNode, GraphData, unique_edges
from .modules import ModuleResolver, build_scopes
from .navigation import BUILTIN_STRATEGIES, NavigationGraph, NavigationStrategy, detect_navigation
from .resolver import SymbolResolver

logger = logging.getLogger(__name__)


def assemble_graph(
    nodes: Iterable[CodeNode], edges: Iterable[CodeEdge], warnings: Sequence[str] = ()
) -> GraphData:
    """Merge nodes and edges into a ``GraphData``, dropping dangling edges."""
    node_list: List[CodeNode] = []
    node_ids = set()
    for node in nodes:
        if node.id in node_ids:
            continue
        node_ids.add(node.id)
        node_list.append(node)

    all_warnings = list(warnings)
    edge_list = []
    for edge in unique_edges(edges):
        if edge.source not in node_ids or edge.target not in node_ids:
            logger.warning("Dropping dangling edge %s", edge.id)
            all_warnings.append(f"Dropped dangling edge {edge.id}")
            continue
        edge_list.append(edge)
    return GraphData(nodes=tuple(node_list), edges=tuple(edge_list), warnings=tuple(all_warnings))


def augment_navigation(
    snapshot: ProjectSnapshot,
    nodes: Dict[str, CodeNode],
    edges: Tuple[CodeEdge, ...],
    sites: Dict[str, DeclarationSite],
    config: AnalyzerConfig = DEFAULT_CONFIG,
    strategies: Sequence[NavigationStrategy] = BUILTIN_STRATEGIES,
) -> Tuple[Dict[str, CodeNode], Tuple[CodeEdge, ...], Tuple[str, ...]]:
    """Add screens and navigation edges; on failure return the input unchanged."""
    graph = NavigationGraph(nodes=nodes, edges=edges, sites=sites, config=config)
    try:
        augmented, warnings = detect_navigation(snapshot.files, snapshot.root, graph, strategies)
    except Exception as exc:
        logger.exception("Navigation analysis failed")
        return nodes, edges, (f"Navigation analysis failed: {exc}",)
    return augmented.nodes, augmented.edges, warnings


def parse(
    root_path,
    options: Optional[ParseOptions] = None,
    config: Optional[AnalyzerConfig] = None,
    strategies: Sequence[NavigationStrategy] = BUILTIN_STRATEGIES,
) -> GraphData:
    """Analyze the JavaScript/TypeScript project under ``root_path``.

    Args:
        root_path: Project root directory.
        options: Entry point, exclude globs and cancellation event.
        config: Analyzer settings; ``DEFAULT_CONFIG`` when omitted.
        strategies: Navigation strategies to try, in order.

    Returns:
        The complete graph. Per-file failures are listed in ``warnings``.

    Raises:
        ProjectLoadError: The root is unusable or holds no source files.
        AnalysisCancelledError: ``options.cancel_event`` was set.
    """
    options = options or ParseOptions()
    config = config or DEFAULT_CONFIG

    snapshot = load_project(root_path, options, config)
    module_resolver = ModuleResolver(snapshot.project_paths, snapshot.module_config, config)
    scopes = build_scopes(snapshot.files, module_resolver)

    logger.info("[Pass 1] Building structure of %d files", len(snapshot.files))
    structure = extract_structure(snapshot, scopes, options, config)

    logger.info("[Pass 2] Building call graph")
    resolver = SymbolResolver(scopes, structure.nodes)
    call_graph = build_call_graph(snapshot, structure, resolver, options)

    logger.info("Starting navigation analysis")
    nodes, edges, nav_warnings = augment_navigation(
        snapshot, call_graph.nodes, structure.edges, structure.sites, config, strategies
    )

    graph = assemble_graph(
        nodes.values(), edges, snapshot.warnings + structure.warnings + nav_warnings
    )
    logger.info("Graph complete: %d nodes, %d edges", len(graph.nodes), len(graph.edges))
    return graph


async def parse_async(
    root_path,
    options: Optional[ParseOptions] = None,
    config: Optional[AnalyzerConfig] = None,
) -> GraphData:
    """Run :func:`parse` in a worker thread."""
    return await asyncio.to_thread(parse, root_path, options, config)
