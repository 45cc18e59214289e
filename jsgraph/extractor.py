"""First pass: files, declarations, containment, imports and inheritance."""

import logging
import re
import time
from dataclasses import dataclass
from typing import AbstractSet, Callable, Dict, List, Optional, Tuple, Union

from tree_sitter import Node

from . import models
from .config import DEFAULT_CONFIG, AnalyzerConfig, ParseOptions
from .errors import FileTimeoutError
from .loader import ProjectSnapshot, SourceFile, check_cancelled
from .models import CodeEdge, CodeNode
from .modules import IMPORT, ModuleScope
from .react import extract_metadata, extract_props, is_component
from .resolver import SymbolResolver
from .syntax import (
    CLASS_DECLARATIONS,
    FUNCTION_VALUES,
    declared_name,
    line_count,
    node_text,
    start_line,
)

logger = logging.getLogger(__name__)

# Word-bounded keywords plus logical and conditional operators. An estimate of
# branching, not a cyclomatic complexity computed from a control-flow graph.
_BRANCH_TOKENS = re.compile(r"\b(?:if|else|for|while|switch|case|catch)\b|&&|\|\||\?")

_FUNCTION_DECLARATIONS = ("function_declaration", "generator_function_declaration")
_VARIABLE_STATEMENTS = ("lexical_declaration", "variable_declaration")
# Class members that become method nodes; abstract signatures have no body.
_METHOD_MEMBERS = ("method_definition", "abstract_method_signature")

_LITERAL_TYPES = {
    "string": "string",
    "template_string": "string",
    "number": "number",
    "true": "boolean",
    "false": "boolean",
    "null": "null",
    "array": "array",
    "object": "object",
    "regex": "RegExp",
}


@dataclass(frozen=True)
class FunctionDecl:
    """A named function: a declaration, or a variable initialized with one."""

    name: str
    function: Node
    outer: Node


@dataclass(frozen=True)
class ClassDecl:
    name: str
    node: Node


@dataclass(frozen=True)
class VariableDecl:
    name: str
    declarator: Node


@dataclass(frozen=True)
class InterfaceDecl:
    name: str
    node: Node


@dataclass(frozen=True)
class TypeAliasDecl:
    name: str
    node: Node


@dataclass(frozen=True)
class EnumDecl:
    name: str
    node: Node


Declaration = Union[FunctionDecl, ClassDecl, VariableDecl, InterfaceDecl, TypeAliasDecl, EnumDecl]


@dataclass(frozen=True)
class DeclarationSite:
    """Where a declaration node lives, used to re-locate its syntax subtree."""

    node_id: str
    rel_path: str
    start_byte: int
    end_byte: int
    syntax_type: str
    class_id: Optional[str] = None


@dataclass(frozen=True)
class HeritageRef:
    class_id: str
    relation: str
    expression: Node
    source: SourceFile


@dataclass(frozen=True)
class StructureResult:
    """Output of the structural pass."""

    nodes: Dict[str, CodeNode]
    edges: Tuple[CodeEdge, ...]
    sites: Dict[str, DeclarationSite]
    warnings: Tuple[str, ...] = ()


def complexity(text: str) -> int:
    return len(_BRANCH_TOKENS.findall(text)) + 1


def _preview(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def _squash(text: str) -> str:
    return " ".join(text.split())


def _head(source: SourceFile, outer: Node, body: Optional[Node]) -> str:
    """Source text of ``outer`` up to the start of ``body``."""
    end = body.start_byte if body is not None else outer.end_byte
    return _squash(source.source[outer.start_byte:end].decode("utf-8", errors="replace"))


def _is_accessor(member: Node) -> bool:
    return any(child.type in ("get", "set") for child in member.children)


def _unwrap_export(statement: Node) -> Optional[Node]:
    if statement.type != "export_statement":
        return statement
    declaration = statement.child_by_field_name("declaration")
    if declaration is not None:
        return declaration
    value = statement.child_by_field_name("value")
    # export default function Name() {} / export default class Name {}
    if value is not None and value.child_by_field_name("name") is not None:
        if value.type in FUNCTION_VALUES or value.type == "class":
            return value
    return None


def collect_declarations(root: Node) -> List[Declaration]:
    """Top-level declarations of a file, in source order."""
    found: List[Declaration] = []
    for statement in root.named_children:
        node = _unwrap_export(statement)
        if node is None:
            continue
        kind = node.type
        name = declared_name(node)
        if kind in _FUNCTION_DECLARATIONS or kind in FUNCTION_VALUES:
            if name:
                found.append(FunctionDecl(name, node, node))
        elif kind in CLASS_DECLARATIONS or kind == "class":
            if name:
                found.append(ClassDecl(name, node))
        elif kind in _VARIABLE_STATEMENTS:
            for declarator in node.named_children:
                if declarator.type != "variable_declarator":
                    continue
                target = declarator.child_by_field_name("name")
                if target is None or target.type != "identifier":
                    continue
                value = declarator.child_by_field_name("value")
                if value is not None and value.type in FUNCTION_VALUES:
                    found.append(FunctionDecl(node_text(target), value, declarator))
                else:
                    found.append(VariableDecl(node_text(target), declarator))
        elif kind == "interface_declaration" and name:
            found.append(InterfaceDecl(name, node))
        elif kind == "type_alias_declaration" and name:
            found.append(TypeAliasDecl(name, node))
        elif kind == "enum_declaration" and name:
            found.append(EnumDecl(name, node))
    return found


class _FileExtraction:
    """Emits the nodes and edges of one file into the pass-scoped collections."""

    def __init__(
        self,
        source: SourceFile,
        scope: ModuleScope,
        nodes: Dict[str, CodeNode],
        edges: List[CodeEdge],
        sites: Dict[str, DeclarationSite],
        heritage: List[HeritageRef],
        config: AnalyzerConfig,
        loaded: AbstractSet[str],
        warnings: List[str],
    ):
        self.source = source
        self.scope = scope
        self.nodes = nodes
        self.edges = edges
        self.sites = sites
        self.heritage = heritage
        self.config = config
        self.loaded = loaded
        self.warnings = warnings
        self.handlers: Dict[type, Callable[[Declaration], Optional[str]]] = {
            FunctionDecl: self.add_function,
            ClassDecl: self.add_class,
            VariableDecl: self.add_variable,
            InterfaceDecl: self.add_interface,
            TypeAliasDecl: self.add_type_alias,
            EnumDecl: self.add_enum,
        }

    @property
    def file_id(self) -> str:
        return self.source.file_id

    def run(self, deadline: float) -> None:
        self.add_file()
        self.add_imports()
        for declaration in collect_declarations(self.source.root):
            if time.monotonic() > deadline:
                raise FileTimeoutError(self.source.rel_path, self.config.file_timeout)
            handler = self.handlers.get(type(declaration))
            if handler is None:
                raise TypeError(f"Unhandled declaration kind: {type(declaration).__name__}")
            handler(declaration)

    def _emit(self, node: CodeNode, parent_id: str, site: Optional[DeclarationSite] = None) -> bool:
        if node.id in self.nodes:
            logger.debug("Duplicate declaration %s ignored", node.id)
            return False
        self.nodes[node.id] = node
        self.edges.append(CodeEdge(id=f"edge:{parent_id}-{node.id}", source=parent_id, target=node.id, type=models.USAGE))
        if site is not None:
            self.sites[node.id] = site
        return True

    def _site(self, node_id: str, syntax: Node, class_id: Optional[str] = None) -> DeclarationSite:
        return DeclarationSite(node_id, self.source.rel_path, syntax.start_byte, syntax.end_byte, syntax.type, class_id)

    def add_file(self) -> None:
        rel_path = self.source.rel_path
        self.nodes[self.file_id] = CodeNode(
            id=self.file_id,
            type=models.FILE,
            label=self.source.path.name,
            file_path=rel_path,
            loc=self.source.loc,
        )

    def add_imports(self) -> None:
        for ref in self.scope.references:
            if ref.target is not None and ref.target not in self.loaded:
                message = f"{self.source.rel_path}: import of {ref.specifier} points at unloaded file {ref.target}"
                if message not in self.warnings:
                    self.warnings.append(message)
                    logger.warning("%s", message)
                continue
            if ref.target is not None:
                target_id = f"file:{ref.target}"
            else:
                target_id = f"external:{ref.specifier}"
                if target_id not in self.nodes:
                    self.nodes[target_id] = CodeNode(
                        id=target_id,
                        type=models.VARIABLE,
                        label=ref.specifier,
                        file_path="node_modules",
                    )
            self.edges.append(CodeEdge(
                id=f"edge:{self.file_id}-{target_id}",
                source=self.file_id,
                target=target_id,
                type=models.IMPORT,
                label=None if ref.kind == IMPORT else ref.kind,
            ))

    def function_node(self, node_id: str, name: str, function: Node, outer: Node, exported: bool) -> CodeNode:
        text = node_text(outer)
        metadata = extract_metadata(function)
        return CodeNode(
            id=node_id,
            type=models.COMPONENT if is_component(function) else models.FUNCTION,
            label=name,
            file_path=self.source.rel_path,
            line=start_line(outer),
            loc=line_count(outer),
            complexity=complexity(text),
            code=_preview(text, self.config.code_preview_length),
            type_signature=_head(self.source, outer, function.child_by_field_name("body")),
            is_exported=exported,
            props=extract_props(function),
            state=metadata.state,
            hooks=metadata.hooks,
            provides_context=metadata.provides_context,
            consumes_context=metadata.consumes_context,
        )

    def add_function(self, decl: FunctionDecl) -> Optional[str]:
        node_id = f"{self.file_id}:{decl.name}"
        node = self.function_node(node_id, decl.name, decl.function, decl.outer, self.scope.is_exported(decl.name))
        if not self._emit(node, self.file_id, self._site(node_id, decl.function)):
            return None
        return node_id

    def add_class(self, decl: ClassDecl) -> Optional[str]:
        class_id = f"{self.file_id}:{decl.name}"
        text = node_text(decl.node)
        body = decl.node.child_by_field_name("body")
        node = CodeNode(
            id=class_id,
            type=models.CLASS,
            label=decl.name,
            file_path=self.source.rel_path,
            line=start_line(decl.node),
            loc=line_count(decl.node),
            complexity=complexity(text),
            code=_preview(text, self.config.code_preview_length),
            type_signature=_head(self.source, decl.node, body),
            is_exported=self.scope.is_exported(decl.name),
        )
        if not self._emit(node, self.file_id, self._site(class_id, decl.node)):
            return None

        for member in (body.named_children if body is not None else []):
            if member.type not in _METHOD_MEMBERS or _is_accessor(member):
                continue
            name_node = member.child_by_field_name("name")
            if name_node is None or name_node.type == "computed_property_name":
                continue
            method_name = node_text(name_node)
            if method_name == "constructor":
                continue
            method_id = f"{class_id}:{method_name}"
            method = self.function_node(method_id, method_name, member, member, False)
            self._emit(method, class_id, self._site(method_id, member, class_id))

        for child in decl.node.children:
            if child.type == "class_heritage":
                self._collect_heritage(class_id, child)
        return class_id

    def _collect_heritage(self, class_id: str, heritage: Node) -> None:
        for part in heritage.named_children:
            if part.type == "extends_clause":
                values = part.children_by_field_name("value") or [
                    c for c in part.named_children if c.type != "type_arguments"
                ]
                for value in values:
                    self.heritage.append(HeritageRef(class_id, "extends", value, self.source))
            elif part.type == "implements_clause":
                for value in part.named_children:
                    self.heritage.append(HeritageRef(class_id, "implements", value, self.source))
            else:
                self.heritage.append(HeritageRef(class_id, "extends", part, self.source))

    def add_variable(self, decl: VariableDecl) -> Optional[str]:
        node_id = f"{self.file_id}:{decl.name}"
        declarator = decl.declarator
        text = node_text(declarator)
        signature = None
        annotation = declarator.child_by_field_name("type")
        if annotation is not None and annotation.named_children:
            signature = node_text(annotation.named_children[0])
        else:
            value = declarator.child_by_field_name("value")
            if value is not None:
                signature = _LITERAL_TYPES.get(value.type)
                if signature is None and value.type == "new_expression":
                    signature = node_text(value.child_by_field_name("constructor")) or None
        node = CodeNode(
            id=node_id,
            type=models.VARIABLE,
            label=decl.name,
            file_path=self.source.rel_path,
            line=start_line(declarator),
            loc=line_count(declarator),
            complexity=complexity(text),
            code=_preview(text, self.config.code_preview_length),
            type_signature=signature,
            is_exported=self.scope.is_exported(decl.name),
        )
        if not self._emit(node, self.file_id, self._site(node_id, declarator)):
            return None
        return node_id

    def _descriptor(self, node_type: str, name: str, syntax: Node, signature: str) -> Optional[str]:
        node_id = f"{self.file_id}:{name}"
        text = node_text(syntax)
        node = CodeNode(
            id=node_id,
            type=node_type,
            label=name,
            file_path=self.source.rel_path,
            line=start_line(syntax),
            loc=line_count(syntax),
            code=_preview(text, self.config.code_preview_length),
            type_signature=signature,
            is_exported=self.scope.is_exported(name),
        )
        if not self._emit(node, self.file_id, self._site(node_id, syntax)):
            return None
        return node_id

    def add_interface(self, decl: InterfaceDecl) -> Optional[str]:
        members = []
        body = decl.node.child_by_field_name("body")
        for member in (body.named_children if body is not None else []):
            name = member.child_by_field_name("name")
            if name is not None:
                members.append(node_text(name))
        signature = f"interface {decl.name} {{ {', '.join(members)} }}"
        return self._descriptor(models.INTERFACE, decl.name, decl.node, signature)

    def add_type_alias(self, decl: TypeAliasDecl) -> Optional[str]:
        value = _squash(node_text(decl.node.child_by_field_name("value")))
        signature = _preview(f"type {decl.name} = {value}", self.config.code_preview_length)
        return self._descriptor(models.INTERFACE, decl.name, decl.node, signature)

    def add_enum(self, decl: EnumDecl) -> Optional[str]:
        members = []
        body = decl.node.child_by_field_name("body")
        for member in (body.named_children if body is not None else []):
            if member.type == "enum_assignment":
                members.append(node_text(member.child_by_field_name("name")))
            elif member.type in ("property_identifier", "identifier"):
                members.append(node_text(member))
            elif member.type == "string":
                members.append(node_text(member)[1:-1])
        signature = f"enum {decl.name} {{ {', '.join(members)} }}"
        return self._descriptor(models.VARIABLE, decl.name, decl.node, signature)


def _inheritance_edges(
    heritage: List[HeritageRef], scopes: Dict[str, ModuleScope], nodes: Dict[str, CodeNode]
) -> List[CodeEdge]:
    resolver = SymbolResolver(scopes, nodes)
    edges = []
    for ref in heritage:
        base_id = resolver.resolve(ref.source, ref.expression)
        if base_id is None or base_id == ref.class_id:
            continue
        edges.append(CodeEdge(
            id=f"edge:{ref.class_id}-{ref.relation}-{base_id}",
            source=ref.class_id,
            target=base_id,
            type=models.INHERITANCE,
            label=ref.relation,
        ))
    return edges


def extract_structure(
    snapshot: ProjectSnapshot,
    scopes: Dict[str, ModuleScope],
    options: Optional[ParseOptions] = None,
    config: AnalyzerConfig = DEFAULT_CONFIG,
) -> StructureResult:
    """Create every file and declaration node plus the structural edges."""
    nodes: Dict[str, CodeNode] = {}
    edges: List[CodeEdge] = []
    sites: Dict[str, DeclarationSite] = {}
    heritage: List[HeritageRef] = []
    warnings: List[str] = []

    loaded = frozenset(f.rel_path for f in snapshot.files)
    total = len(snapshot.files)
    for processed, source in enumerate(snapshot.files, 1):
        check_cancelled(options)
        extraction = _FileExtraction(
            source, scopes[source.rel_path], nodes, edges, sites, heritage, config, loaded, warnings
        )
        try:
            extraction.run(time.monotonic() + config.file_timeout)
        except FileTimeoutError as exc:
            warnings.append(f"{exc}; remaining declarations skipped")
            logger.warning("%s; remaining declarations skipped", exc)
        if processed % 10 == 0:
            logger.info("[Pass 1] Processed %d/%d files...", processed, total)

    edges.extend(_inheritance_edges(heritage, scopes, nodes))
    logger.info("[Pass 1] Created %d nodes", len(nodes))
    return StructureResult(
        nodes=nodes,
        edges=models.unique_edges(edges),
        sites=sites,
        warnings=tuple(warnings),
    )
