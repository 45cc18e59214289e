"""Resolve reference expressions to the graph node that declares them."""

import logging
from typing import TYPE_CHECKING, AbstractSet, Dict, Iterable, Optional, Set, Tuple

from tree_sitter import Node

from .modules import DEFAULT, NAMESPACE, ModuleScope
from .syntax import member_parts, node_text

if TYPE_CHECKING:
    from .loader import SourceFile

logger = logging.getLogger(__name__)

_NAME_TYPES = ("identifier", "type_identifier")
_MEMBER_TYPES = ("member_expression", "nested_identifier", "nested_type_identifier")
_WRAPPER_TYPES = ("parenthesized_expression", "non_null_expression")


class SymbolResolver:
    """Map identifiers, member accesses and JSX tag names to node IDs.

    Resolution never raises: anything that is external, dynamic or simply
    unknown resolves to ``None`` and the caller produces no edge.

    Args:
        scopes: Import/export tables keyed by relative file path.
        node_ids: Every node ID created by the structural pass.
    """

    def __init__(self, scopes: Dict[str, ModuleScope], node_ids: Iterable[str]):
        self.scopes = scopes
        self.node_ids = frozenset(node_ids)

    def resolve(
        self,
        source: "SourceFile",
        expression: Optional[Node],
        shadowed: AbstractSet[str] = frozenset(),
        enclosing_class: Optional[str] = None,
    ) -> Optional[str]:
        """Return the ID of the node declaring ``expression``, or None.

        ``shadowed`` holds names bound locally around the expression; they never
        resolve to file-level declarations. ``enclosing_class`` is the class node
        ID used for ``this.member`` lookups.
        """
        while expression is not None and expression.type in _WRAPPER_TYPES:
            named = expression.named_children
            expression = named[0] if named else None
        if expression is None:
            return None

        if expression.type in _NAME_TYPES:
            name = node_text(expression)
            if name in shadowed:
                return None
            return self.resolve_name(source.rel_path, name)

        if expression.type == "generic_type":
            return self.resolve(source, expression.child_by_field_name("name"), shadowed, enclosing_class)

        if expression.type in _MEMBER_TYPES:
            return self._resolve_member(source, expression, shadowed, enclosing_class)

        return None

    def resolve_name(self, rel_path: str, name: str) -> Optional[str]:
        """Resolve a bare name as seen from the top level of ``rel_path``."""
        found = self._known(f"file:{rel_path}:{name}")
        if found is not None:
            return found
        scope = self.scopes.get(rel_path)
        if scope is None:
            return None
        binding = scope.imports.get(name)
        if binding is None or binding.target is None or binding.imported == NAMESPACE:
            return None
        return self.resolve_export(binding.target, binding.imported)

    def resolve_export(self, rel_path: str, exported: str) -> Optional[str]:
        return self._export_id(rel_path, exported, set())

    def _resolve_member(
        self,
        source: "SourceFile",
        expression: Node,
        shadowed: AbstractSet[str],
        enclosing_class: Optional[str],
    ) -> Optional[str]:
        obj, prop = member_parts(expression)
        if obj is None or prop is None:
            return None
        member = node_text(prop)

        if obj.type == "this":
            if enclosing_class is None:
                return None
            return self._known(f"{enclosing_class}:{member}")

        if obj.type not in _NAME_TYPES:
            return None
        name = node_text(obj)
        if name in shadowed:
            return None

        scope = self.scopes.get(source.rel_path)
        binding = scope.imports.get(name) if scope is not None else None
        if binding is not None and binding.imported == NAMESPACE:
            if binding.target is None:
                return None
            return self.resolve_export(binding.target, member)

        # Static member of a known class: Service.create()
        owner = self.resolve_name(source.rel_path, name)
        if owner is None:
            return None
        return self._known(f"{owner}:{member}")

    def _export_id(self, rel_path: str, exported: str, seen: Set[Tuple[str, str]]) -> Optional[str]:
        key = (rel_path, exported)
        if key in seen:
            return None
        seen.add(key)
        scope = self.scopes.get(rel_path)
        if scope is None:
            return None

        local = scope.default_export if exported == DEFAULT else scope.exports.get(exported)
        if local is not None:
            found = self._known(f"file:{rel_path}:{local}")
            if found is not None:
                return found
            binding = scope.imports.get(local)
            if binding is not None and binding.target is not None and binding.imported != NAMESPACE:
                return self._export_id(binding.target, binding.imported, seen)
            return None

        for reexport in scope.reexports:
            if reexport.target is None:
                continue
            if reexport.exported == exported and reexport.imported != NAMESPACE:
                found = self._export_id(reexport.target, reexport.imported, seen)
            elif reexport.exported == NAMESPACE and exported != DEFAULT:
                found = self._export_id(reexport.target, exported, seen)
            else:
                continue
            if found is not None:
                return found

        # CommonJS modules have no export table; fall back to the declaration.
        if exported != DEFAULT:
            return self._known(f"file:{rel_path}:{exported}")
        return None

    def _known(self, node_id: str) -> Optional[str]:
        return node_id if node_id in self.node_ids else None
