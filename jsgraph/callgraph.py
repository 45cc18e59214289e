"""Second pass: resolve calls and component usages between declarations."""

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Set, Tuple

import networkx as nx
from tree_sitter import Node

from . import models
from .config import ParseOptions
from .extractor import DeclarationSite, StructureResult
from .loader import ProjectSnapshot, SourceFile, check_cancelled
from .models import CodeNode
from .resolver import SymbolResolver
from .syntax import FUNCTION_LIKE, JSX_ELEMENTS, jsx_tag_name, node_text, walk, walk_scope

logger = logging.getLogger(__name__)

CALLER_TYPES = frozenset([models.FUNCTION, models.COMPONENT, models.CLASS])

_BLOCK_SCOPES = frozenset(["statement_block", "switch_case", "switch_default", "class_static_block"])
_NAMED_DECLARATIONS = frozenset([
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "abstract_class_declaration",
])
_VARIABLE_STATEMENTS = ("lexical_declaration", "variable_declaration")
_PATTERN_CONTAINERS = ("object_pattern", "array_pattern", "pair_pattern", "rest_pattern")


@dataclass(frozen=True)
class CallGraphResult:
    """Nodes with ``calls``, ``uses_components`` and ``called_by`` filled in."""

    nodes: Dict[str, CodeNode]
    calls: Dict[str, Tuple[str, ...]]
    components: Dict[str, Tuple[str, ...]]


def locate(source: SourceFile, site: DeclarationSite) -> Optional[Node]:
    """Find the syntax node a declaration site was recorded from."""
    node = source.root.descendant_for_byte_range(site.start_byte, site.end_byte)
    while node is not None:
        if node.type == site.syntax_type and node.start_byte == site.start_byte and node.end_byte == site.end_byte:
            return node
        node = node.parent
    return None


def _pattern_names(pattern: Optional[Node], names: Set[str]) -> None:
    if pattern is None:
        return
    if pattern.type in ("identifier", "shorthand_property_identifier_pattern"):
        names.add(node_text(pattern))
    elif pattern.type in ("assignment_pattern", "object_assignment_pattern"):
        _pattern_names(pattern.child_by_field_name("left"), names)
    elif pattern.type in ("required_parameter", "optional_parameter"):
        _pattern_names(pattern.child_by_field_name("pattern"), names)
    elif pattern.type == "pair_pattern":
        _pattern_names(pattern.child_by_field_name("value"), names)
    elif pattern.type in _PATTERN_CONTAINERS:
        for child in pattern.named_children:
            _pattern_names(child, names)


def _declarator_names(declaration: Node, names: Set[str]) -> None:
    for declarator in declaration.named_children:
        if declarator.type == "variable_declarator":
            _pattern_names(declarator.child_by_field_name("name"), names)


def _declared_in(block: Node, names: Set[str]) -> None:
    """Names a block declares directly: variables, functions and classes."""
    for statement in block.named_children:
        if statement.type in _VARIABLE_STATEMENTS:
            _declarator_names(statement, names)
        elif statement.type in _NAMED_DECLARATIONS:
            _pattern_names(statement.child_by_field_name("name"), names)


def _scope_names(scope: Node, root: Node) -> Set[str]:
    """Names bound by one scope node for the code nested inside it."""
    names: Set[str] = set()
    kind = scope.type
    if kind in FUNCTION_LIKE:
        params = scope.child_by_field_name("parameters")
        if params is not None:
            for param in params.named_children:
                _pattern_names(param, names)
        _pattern_names(scope.child_by_field_name("parameter"), names)
        if kind in ("function_expression", "generator_function") and scope != root:
            _pattern_names(scope.child_by_field_name("name"), names)
        # var declarations are hoisted to the function scope.
        for node in walk_scope(scope):
            if node.type == "variable_declaration":
                _declarator_names(node, names)
    elif kind in _BLOCK_SCOPES:
        _declared_in(scope, names)
    elif kind == "for_statement":
        initializer = scope.child_by_field_name("initializer")
        if initializer is not None and initializer.type in _VARIABLE_STATEMENTS:
            _declarator_names(initializer, names)
    elif kind == "for_in_statement":
        if any(child.type in ("const", "let", "var") for child in scope.children):
            _pattern_names(scope.child_by_field_name("left"), names)
    elif kind == "catch_clause":
        _pattern_names(scope.child_by_field_name("parameter"), names)
    elif kind == "class" and scope != root:
        _pattern_names(scope.child_by_field_name("name"), names)
    return names


class ScopeChain:
    """Local bindings visible at a reference inside one declaration."""

    def __init__(self, root: Node):
        self.root = root
        self._cache: Dict[Tuple[int, int, str], Set[str]] = {}

    def _names(self, scope: Node) -> Set[str]:
        key = (scope.start_byte, scope.end_byte, scope.type)
        if key not in self._cache:
            self._cache[key] = _scope_names(scope, self.root)
        return self._cache[key]

    def shadowed_at(self, reference: Node) -> Set[str]:
        """Names bound by the scopes enclosing ``reference`` up to the root."""
        names: Set[str] = set()
        node = reference.parent
        while node is not None:
            names |= self._names(node)
            if node == self.root:
                break
            node = node.parent
        return names


def _append(values: List[str], value: Optional[str], owner: str) -> None:
    if value is not None and value != owner and value not in values:
        values.append(value)


def _outgoing(
    node: CodeNode, syntax: Node, source: SourceFile, site: DeclarationSite, resolver: SymbolResolver
) -> Tuple[List[str], List[str]]:
    node_id = node.id
    scopes = ScopeChain(syntax)
    enclosing_class = site.class_id or (node_id if node.type == models.CLASS else None)
    calls: List[str] = []
    components: List[str] = []
    for child in walk(syntax):
        if child.type == "call_expression":
            callee = child.child_by_field_name("function")
            _append(calls, resolver.resolve(source, callee, scopes.shadowed_at(child), enclosing_class), node_id)
        elif child.type in JSX_ELEMENTS:
            tag = jsx_tag_name(child)
            name = node_text(tag)
            if name and name[0].isupper():
                _append(components, resolver.resolve(source, tag, scopes.shadowed_at(child), enclosing_class), node_id)
    return calls, components


def build_call_graph(
    snapshot: ProjectSnapshot,
    structure: StructureResult,
    resolver: SymbolResolver,
    options: Optional[ParseOptions] = None,
) -> CallGraphResult:
    """Fill in ``calls``, ``uses_components`` and the derived ``called_by``."""
    files = snapshot.file_map()
    calls: Dict[str, Tuple[str, ...]] = {}
    components: Dict[str, Tuple[str, ...]] = {}
    current_file = None

    for node_id, node in structure.nodes.items():
        if node.type not in CALLER_TYPES:
            continue
        site = structure.sites.get(node_id)
        if site is None:
            continue
        if site.rel_path != current_file:
            check_cancelled(options)
            current_file = site.rel_path
        source = files[site.rel_path]
        syntax = locate(source, site)
        if syntax is None:
            logger.debug("Could not re-locate %s", node_id)
            continue
        outgoing, used = _outgoing(node, syntax, source, site, resolver)
        if outgoing:
            calls[node_id] = tuple(outgoing)
        if used:
            components[node_id] = tuple(used)

    graph = nx.DiGraph()
    for caller, callees in calls.items():
        graph.add_edges_from((caller, callee) for callee in callees)
    called_by: Dict[str, Tuple[str, ...]] = {}
    for callee in graph.nodes:
        callers = sorted(graph.predecessors(callee))
        if callers:
            called_by[callee] = tuple(callers)

    nodes: Dict[str, CodeNode] = {}
    for node_id, node in structure.nodes.items():
        if node_id in calls or node_id in components or node_id in called_by:
            node = replace(
                node,
                calls=calls.get(node_id, ()),
                uses_components=components.get(node_id, ()),
                called_by=called_by.get(node_id, ()),
            )
        nodes[node_id] = node

    logger.info("[Pass 2] Call graph complete. %d nodes have outgoing calls.", len(calls))
    return CallGraphResult(nodes=nodes, calls=calls, components=components)
