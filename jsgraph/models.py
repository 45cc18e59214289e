"""Graph data model produced by :func:`jsgraph.parse`."""

import json
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Tuple

import networkx as nx
from networkx.readwrite import json_graph

# Node types.
FILE = "file"
FUNCTION = "function"
CLASS = "class"
VARIABLE = "variable"
INTERFACE = "interface"
COMPONENT = "component"
SCREEN = "screen"

# Edge types.
IMPORT = "import"
USAGE = "usage"
INHERITANCE = "inheritance"
NAVIGATION = "navigation"

# Wire names for fields whose Python name differs from the camelCase key.
_WIRE_NAMES = {
    "file_path": "filePath",
    "type_signature": "typeSignature",
    "is_exported": "isExported",
    "provides_context": "providesContext",
    "consumes_context": "consumesContext",
    "uses_components": "usesComponents",
    "called_by": "calledBy",
}


@dataclass(frozen=True)
class CodeNode:
    """One analyzed entity: a file, declaration, external module or route."""

    id: str
    type: str
    label: str
    file_path: str
    line: Optional[int] = None
    loc: Optional[int] = None
    complexity: Optional[int] = None
    code: Optional[str] = None
    type_signature: Optional[str] = None
    is_exported: Optional[bool] = None
    props: Tuple[str, ...] = ()
    state: Tuple[str, ...] = ()
    hooks: Tuple[str, ...] = ()
    provides_context: Tuple[str, ...] = ()
    consumes_context: Tuple[str, ...] = ()
    uses_components: Tuple[str, ...] = ()
    calls: Tuple[str, ...] = ()
    called_by: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Return the camelCase JSON form; unset and empty fields are omitted."""
        data: Dict[str, Any] = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if value is None or value == ():
                continue
            data[_WIRE_NAMES.get(name, name)] = list(value) if isinstance(value, tuple) else value
        return data


@dataclass(frozen=True)
class CodeEdge:
    """A directed relation between two nodes."""

    id: str
    source: str
    target: str
    type: str
    label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id, "source": self.source, "target": self.target, "type": self.type}
        if self.label is not None:
            data["label"] = self.label
        return data


@dataclass(frozen=True)
class GraphData:
    """The complete, immutable result of one analysis run."""

    nodes: Tuple[CodeNode, ...] = ()
    edges: Tuple[CodeEdge, ...] = ()
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    def node(self, node_id: str) -> Optional[CodeNode]:
        for candidate in self.nodes:
            if candidate.id == node_id:
                return candidate
        return None

    def nodes_of_type(self, node_type: str) -> Tuple[CodeNode, ...]:
        return tuple(n for n in self.nodes if n.type == node_type)

    def edges_of_type(self, edge_type: str) -> Tuple[CodeEdge, ...]:
        return tuple(e for e in self.edges if e.type == edge_type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "warnings": list(self.warnings),
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def to_networkx(self) -> nx.MultiDiGraph:
        """Build a ``MultiDiGraph`` whose edge keys are the edge IDs."""
        graph = nx.MultiDiGraph()
        for node in self.nodes:
            attrs = node.to_dict()
            attrs.pop("id")
            graph.add_node(node.id, **attrs)
        for edge in self.edges:
            graph.add_edge(edge.source, edge.target, key=edge.id, type=edge.type, label=edge.label)
        return graph

    def stats(self) -> Dict[str, int]:
        """Count nodes by type and edges by type."""
        node_counts = Counter(n.type for n in self.nodes)
        edge_counts = Counter(e.type for e in self.edges)
        return {
            "total_files": node_counts[FILE],
            "total_classes": node_counts[CLASS],
            "total_functions": node_counts[FUNCTION],
            "total_components": node_counts[COMPONENT],
            "total_interfaces": node_counts[INTERFACE],
            "total_variables": node_counts[VARIABLE],
            "total_screens": node_counts[SCREEN],
            "total_dependencies": sum(1 for n in self.nodes if n.id.startswith("external:")),
            "total_imports": edge_counts[IMPORT],
            "total_inheritance": edge_counts[INHERITANCE],
            "total_navigation": edge_counts[NAVIGATION],
            "total_calls": sum(len(n.calls) for n in self.nodes),
            "total_warnings": len(self.warnings),
        }

    def save(self, output_path: str) -> None:
        """Save the graph in node-link JSON format alongside the flat form."""
        data = json_graph.node_link_data(self.to_networkx(), edges="links")
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump({"graph": data, "data": self.to_dict(), "metadata": {"stats": self.stats()}}, f, indent=2)


def unique_edges(edges: Iterable[CodeEdge]) -> Tuple[CodeEdge, ...]:
    """Drop edges whose ID was already seen, keeping the first occurrence."""
    seen = set()
    result = []
    for edge in edges:
        if edge.id in seen:
            continue
        seen.add(edge.id)
        result.append(edge)
    return tuple(result)
