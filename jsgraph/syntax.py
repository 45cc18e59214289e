"""tree-sitter grammar selection and small helpers over syntax nodes."""

from typing import Iterator, List, Optional, Tuple

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

JAVASCRIPT = "javascript"
TYPESCRIPT = "typescript"
TSX = "tsx"

_LANGUAGES = {
    JAVASCRIPT: Language(tree_sitter_javascript.language()),
    TYPESCRIPT: Language(tree_sitter_typescript.language_typescript()),
    TSX: Language(tree_sitter_typescript.language_tsx()),
}

_SUFFIX_LANGUAGES = {
    ".js": JAVASCRIPT,
    ".jsx": JAVASCRIPT,
    ".mjs": JAVASCRIPT,
    ".cjs": JAVASCRIPT,
    ".ts": TYPESCRIPT,
    ".mts": TYPESCRIPT,
    ".cts": TYPESCRIPT,
    ".tsx": TSX,
}

FUNCTION_LIKE = frozenset([
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "generator_function",
    "arrow_function",
    "method_definition",
])
FUNCTION_VALUES = frozenset(["arrow_function", "function_expression", "generator_function"])
CLASS_DECLARATIONS = frozenset(["class_declaration", "abstract_class_declaration"])
JSX_ELEMENTS = frozenset(["jsx_element", "jsx_self_closing_element"])


def language_for(file_name: str) -> Optional[str]:
    """Return the grammar name for a file name, or None if it is not a source file."""
    lowered = file_name.lower()
    for suffix, language in _SUFFIX_LANGUAGES.items():
        if lowered.endswith(suffix):
            return language
    return None


def parse_source(source: bytes, language: str) -> Tree:
    parser = Parser(_LANGUAGES[language])
    return parser.parse(source)


def node_text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def start_line(node: Node) -> int:
    return node.start_point[0] + 1


def line_count(node: Node) -> int:
    return node.end_point[0] - node.start_point[0] + 1


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and all of its descendants in source order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def walk_scope(node: Node) -> Iterator[Node]:
    """Like :func:`walk` but does not enter nested function bodies."""
    stack = list(reversed(node.children))
    while stack:
        current = stack.pop()
        yield current
        if current.type in FUNCTION_LIKE or current.type in CLASS_DECLARATIONS:
            continue
        stack.extend(reversed(current.children))


def unwrap_parens(node: Optional[Node]) -> Optional[Node]:
    while node is not None and node.type == "parenthesized_expression":
        inner = node.named_children
        node = inner[0] if inner else None
    return node


def is_jsx(node: Optional[Node]) -> bool:
    return node is not None and node.type in JSX_ELEMENTS


def string_literal_value(node: Optional[Node]) -> Optional[str]:
    """Return the value of a string literal or substitution-free template string."""
    node = unwrap_parens(node)
    if node is None:
        return None
    if node.type == "jsx_expression":
        inner = node.named_children
        return string_literal_value(inner[0]) if len(inner) == 1 else None
    if node.type == "string":
        return node_text(node)[1:-1]
    if node.type == "template_string":
        if any(child.type == "template_substitution" for child in node.named_children):
            return None
        return node_text(node)[1:-1]
    return None


def jsx_opening(element: Node) -> Node:
    if element.type == "jsx_element":
        return element.child_by_field_name("open_tag") or element.children[0]
    return element


def jsx_tag_name(element: Node) -> Optional[Node]:
    """Tag name node of a JSX element; None for fragments."""
    return jsx_opening(element).child_by_field_name("name")


def jsx_attributes(element: Node) -> List[Tuple[str, Optional[Node]]]:
    """(name, value) pairs of a JSX element's plain attributes."""
    pairs = []
    for child in jsx_opening(element).named_children:
        if child.type != "jsx_attribute":
            continue
        parts = child.named_children
        if not parts:
            continue
        value = parts[-1] if len(parts) > 1 else None
        pairs.append((node_text(parts[0]), value))
    return pairs


def member_parts(node: Node) -> Tuple[Optional[Node], Optional[Node]]:
    """(object, property) of a member expression or dotted identifier."""
    obj = node.child_by_field_name("object")
    prop = node.child_by_field_name("property")
    named = node.named_children
    if obj is None and named:
        obj = named[0]
    if prop is None and len(named) > 1:
        prop = named[-1]
    return obj, prop


def callee_name(call: Node) -> Optional[str]:
    """Plain name of a call's callee: ``foo()`` -> foo, ``a.b.foo()`` -> foo."""
    callee = unwrap_parens(call.child_by_field_name("function"))
    if callee is None:
        return None
    if callee.type == "identifier":
        return node_text(callee)
    if callee.type == "member_expression":
        _, prop = member_parts(callee)
        return node_text(prop) if prop is not None else None
    return None


def call_arguments(call: Node) -> List[Node]:
    args = call.child_by_field_name("arguments")
    if args is None:
        return []
    return [a for a in args.named_children if a.type != "comment"]


def declared_name(node: Node) -> Optional[str]:
    name = node.child_by_field_name("name")
    if name is None:
        return None
    return node_text(name)
