"""Import specifier resolution and per-file import/export tables."""

import logging
import os
import posixpath
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Set, Tuple

from tree_sitter import Node

from .config import DEFAULT_CONFIG, AnalyzerConfig, ModuleConfig
from .syntax import call_arguments, declared_name, node_text, string_literal_value, walk

if TYPE_CHECKING:
    from .loader import SourceFile

logger = logging.getLogger(__name__)

# Reference kinds.
IMPORT = "import"
RE_EXPORT = "re-export"
REQUIRE = "require"
DYNAMIC = "dynamic-import"

NAMESPACE = "*"
DEFAULT = "default"

_DECLARATION_TYPES = (
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "abstract_class_declaration",
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
)


@dataclass(frozen=True)
class ImportBinding:
    """A local name bound by an import; ``imported`` is a name, ``default`` or ``*``."""

    local: str
    imported: str
    specifier: str
    target: Optional[str]


@dataclass(frozen=True)
class ReExport:
    exported: str
    imported: str
    specifier: str
    target: Optional[str]


@dataclass(frozen=True)
class ModuleReference:
    """One module specifier mentioned by a file, with its resolved target."""

    specifier: str
    target: Optional[str]
    kind: str
    line: int


@dataclass(frozen=True)
class ModuleScope:
    """Import and export tables of one file."""

    rel_path: str
    imports: Dict[str, ImportBinding] = field(default_factory=dict)
    exports: Dict[str, str] = field(default_factory=dict)
    default_export: Optional[str] = None
    reexports: Tuple[ReExport, ...] = ()
    references: Tuple[ModuleReference, ...] = ()

    def is_exported(self, local_name: str) -> bool:
        return local_name == self.default_export or local_name in self.exports.values()


def _posix(path: str) -> str:
    return path.replace(os.sep, "/") if os.sep != "/" else path


class ModuleResolver:
    """Resolve import specifiers to loaded project files.

    Args:
        rel_paths: Relative paths of every loaded file, as used in node IDs.
        module_config: ``baseUrl``/``paths`` from the project's compiler config.
        config: Analyzer settings providing extensions and default aliases.
    """

    def __init__(
        self,
        rel_paths: Iterable[str],
        module_config: Optional[ModuleConfig] = None,
        config: AnalyzerConfig = DEFAULT_CONFIG,
    ):
        self.files: Dict[str, str] = {_posix(p): p for p in rel_paths}
        self.module_config = module_config or ModuleConfig()
        self.config = config

    def resolve(self, specifier: str, importer: str) -> Optional[str]:
        """Return the relative path of the file ``specifier`` points at, if loaded."""
        for candidate in self._candidates(specifier, _posix(importer)):
            found = self._probe(candidate)
            if found is not None:
                return found
        return None

    def _candidates(self, specifier: str, importer: str) -> List[str]:
        if specifier.startswith("."):
            return [posixpath.join(posixpath.dirname(importer), specifier)]
        if specifier.startswith("/"):
            return [specifier.lstrip("/")]

        candidates: List[str] = []
        base_url = self.module_config.base_url
        base = base_url if base_url else "."
        paths = self.module_config.paths
        if paths:
            for pattern, targets in paths.items():
                if "*" in pattern:
                    prefix, suffix = pattern.split("*", 1)
                    if not (specifier.startswith(prefix) and specifier.endswith(suffix)):
                        continue
                    token = specifier[len(prefix):len(specifier) - len(suffix)]
                    candidates.extend(posixpath.join(base, t.replace("*", token)) for t in targets)
                elif specifier == pattern:
                    candidates.extend(posixpath.join(base, t) for t in targets)
        else:
            for alias, replacement in self.config.alias_map:
                if specifier.startswith(alias):
                    candidates.append(replacement + specifier[len(alias):])
                    break
        if base_url:
            candidates.append(posixpath.join(base_url, specifier))
        return candidates

    def _probe(self, candidate: str) -> Optional[str]:
        target = posixpath.normpath(candidate)
        if target.startswith("../") or target == "..":
            return None
        if target.startswith("./"):
            target = target[2:]
        stems = [target]
        # ESM-style "./x.js" pointing at "x.ts".
        for js_suffix in (".js", ".jsx", ".mjs"):
            if target.endswith(js_suffix):
                stems.append(target[: -len(js_suffix)])
                break
        for stem in stems:
            for ext in self.config.resolve_extensions:
                path = stem + ext
                if path in self.files:
                    return self.files[path]
        return None


def _declaration_names(declaration: Node) -> List[str]:
    if declaration.type in _DECLARATION_TYPES:
        name = declared_name(declaration)
        return [name] if name else []
    if declaration.type in ("lexical_declaration", "variable_declaration"):
        names = []
        for declarator in declaration.named_children:
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            if name is not None and name.type == "identifier":
                names.append(node_text(name))
        return names
    return []


def _import_clause_bindings(clause: Node, specifier: str, target: Optional[str]) -> List[ImportBinding]:
    bindings = []
    for part in clause.named_children:
        if part.type == "identifier":
            bindings.append(ImportBinding(node_text(part), DEFAULT, specifier, target))
        elif part.type == "namespace_import":
            names = [c for c in part.named_children if c.type == "identifier"]
            if names:
                bindings.append(ImportBinding(node_text(names[0]), NAMESPACE, specifier, target))
        elif part.type == "named_imports":
            for spec in part.named_children:
                if spec.type != "import_specifier":
                    continue
                imported = node_text(spec.child_by_field_name("name"))
                alias = spec.child_by_field_name("alias")
                local = node_text(alias) if alias is not None else imported
                bindings.append(ImportBinding(local, imported, specifier, target))
    return bindings


def _require_bindings(declarator: Node, specifier: str, target: Optional[str]) -> List[ImportBinding]:
    name = declarator.child_by_field_name("name")
    if name is None:
        return []
    if name.type == "identifier":
        return [ImportBinding(node_text(name), NAMESPACE, specifier, target)]
    bindings = []
    if name.type == "object_pattern":
        for part in name.named_children:
            if part.type == "shorthand_property_identifier_pattern":
                bindings.append(ImportBinding(node_text(part), node_text(part), specifier, target))
            elif part.type == "pair_pattern":
                key = node_text(part.child_by_field_name("key"))
                value = part.child_by_field_name("value")
                if value is not None and value.type == "identifier":
                    bindings.append(ImportBinding(node_text(value), key, specifier, target))
    return bindings


def _required_specifier(value: Optional[Node]) -> Optional[str]:
    if value is None or value.type != "call_expression":
        return None
    callee = value.child_by_field_name("function")
    if callee is None or node_text(callee) != "require":
        return None
    args = call_arguments(value)
    return string_literal_value(args[0]) if args else None


def _module_exports_name(statement: Node) -> Optional[str]:
    """``module.exports = Name`` -> Name."""
    named = statement.named_children
    if not named or named[0].type != "assignment_expression":
        return None
    left = named[0].child_by_field_name("left")
    right = named[0].child_by_field_name("right")
    if node_text(left) != "module.exports" or right is None or right.type != "identifier":
        return None
    return node_text(right)


def build_scope(source: "SourceFile", resolver: ModuleResolver) -> ModuleScope:
    """Collect the import bindings, exports and module references of one file."""
    rel_path = source.rel_path
    imports: Dict[str, ImportBinding] = {}
    exports: Dict[str, str] = {}
    default_export: Optional[str] = None
    reexports: List[ReExport] = []
    references: List[ModuleReference] = []

    def reference(specifier: str, kind: str, at: Node) -> Optional[str]:
        target = resolver.resolve(specifier, rel_path)
        references.append(ModuleReference(specifier, target, kind, at.start_point[0] + 1))
        return target

    for statement in source.root.named_children:
        if statement.type == "import_statement":
            specifier = string_literal_value(statement.child_by_field_name("source"))
            clause = None
            for part in statement.named_children:
                if part.type == "import_require_clause":
                    clause = part
                    specifier = string_literal_value(part.child_by_field_name("source"))
                elif part.type == "import_clause":
                    clause = part
            if specifier is None:
                continue
            target = reference(specifier, IMPORT, statement)
            if clause is None:
                continue
            if clause.type == "import_require_clause":
                names = [c for c in clause.named_children if c.type == "identifier"]
                if names:
                    binding = ImportBinding(node_text(names[0]), NAMESPACE, specifier, target)
                    imports.setdefault(binding.local, binding)
                continue
            for binding in _import_clause_bindings(clause, specifier, target):
                imports.setdefault(binding.local, binding)

        elif statement.type == "export_statement":
            source_node = statement.child_by_field_name("source")
            is_default = any(child.type == "default" for child in statement.children)
            if source_node is not None:
                specifier = string_literal_value(source_node)
                if specifier is None:
                    continue
                target = reference(specifier, RE_EXPORT, statement)
                clause = None
                for part in statement.named_children:
                    if part.type in ("export_clause", "namespace_export"):
                        clause = part
                if clause is None:
                    reexports.append(ReExport(NAMESPACE, NAMESPACE, specifier, target))
                elif clause.type == "namespace_export":
                    names = [c for c in clause.named_children if c.type == "identifier"]
                    if names:
                        reexports.append(ReExport(node_text(names[0]), NAMESPACE, specifier, target))
                else:
                    for spec in clause.named_children:
                        if spec.type != "export_specifier":
                            continue
                        imported = node_text(spec.child_by_field_name("name"))
                        alias = spec.child_by_field_name("alias")
                        exported = node_text(alias) if alias is not None else imported
                        reexports.append(ReExport(exported, imported, specifier, target))
                continue

            declaration = statement.child_by_field_name("declaration")
            if declaration is not None:
                for name in _declaration_names(declaration):
                    exports.setdefault(name, name)
                    if is_default:
                        default_export = name
                continue

            value = statement.child_by_field_name("value")
            if value is not None:
                value = value if value.type == "identifier" else value.child_by_field_name("name")
                if value is not None and is_default:
                    default_export = node_text(value)
                continue

            for clause in statement.named_children:
                if clause.type != "export_clause":
                    continue
                for spec in clause.named_children:
                    if spec.type != "export_specifier":
                        continue
                    local = node_text(spec.child_by_field_name("name"))
                    alias = spec.child_by_field_name("alias")
                    exported = node_text(alias) if alias is not None else local
                    if exported == DEFAULT:
                        default_export = local
                    else:
                        exports.setdefault(exported, local)

        elif statement.type == "expression_statement":
            assigned = _module_exports_name(statement)
            if assigned is not None and default_export is None:
                default_export = assigned

        elif statement.type in ("lexical_declaration", "variable_declaration"):
            for declarator in statement.named_children:
                if declarator.type != "variable_declarator":
                    continue
                specifier = _required_specifier(declarator.child_by_field_name("value"))
                if specifier is None:
                    continue
                target = resolver.resolve(specifier, rel_path)
                for binding in _require_bindings(declarator, specifier, target):
                    imports.setdefault(binding.local, binding)

    # require("x") and import("x") anywhere in the file.
    for call in walk(source.root):
        if call.type != "call_expression":
            continue
        callee = call.child_by_field_name("function")
        if callee is None:
            continue
        if callee.type == "import":
            kind = DYNAMIC
        elif callee.type == "identifier" and node_text(callee) == "require":
            kind = REQUIRE
        else:
            continue
        args = call_arguments(call)
        specifier = string_literal_value(args[0]) if args else None
        if specifier is not None:
            reference(specifier, kind, call)

    return ModuleScope(
        rel_path=rel_path,
        imports=imports,
        exports=exports,
        default_export=default_export,
        reexports=tuple(reexports),
        references=tuple(references),
    )


def build_scopes(files: Iterable["SourceFile"], resolver: ModuleResolver) -> Dict[str, ModuleScope]:
    scopes = {source.rel_path: build_scope(source, resolver) for source in files}
    logger.debug("Built module scopes for %d files", len(scopes))
    return scopes


def local_targets(scope: ModuleScope) -> Set[str]:
    """Relative paths of every in-project file the scope refers to."""
    return {ref.target for ref in scope.references if ref.target is not None}
