"""React component classification and hook/state/context/props extraction.

Component detection is a heuristic applied in order:

1. a direct ``return`` statement whose value is JSX (parentheses unwrapped);
2. an arrow function whose expression body is JSX;
3. any JSX anywhere in the function's subtree.

The last rule favours recall: a helper that merely builds markup without ever
being rendered is still classified as a component. Tests pin this behaviour.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from tree_sitter import Node

from .syntax import (
    call_arguments,
    callee_name,
    is_jsx,
    node_text,
    unwrap_parens,
    walk,
    walk_scope,
)

HOOK_PREFIX = "use"
STATE_HOOK = "useState"
CONTEXT_HOOK = "useContext"
CONTEXT_FACTORY = "createContext"
CONTEXT_SUFFIX = "Context"

# Expression wrappers allowed between a call and the variable it initializes.
_TRANSPARENT = frozenset([
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
    "await_expression",
])


@dataclass(frozen=True)
class ReactMetadata:
    hooks: Tuple[str, ...] = ()
    state: Tuple[str, ...] = ()
    provides_context: Tuple[str, ...] = ()
    consumes_context: Tuple[str, ...] = ()


def is_hook_name(name: str) -> bool:
    if name == HOOK_PREFIX:
        return True
    return name.startswith(HOOK_PREFIX) and len(name) > len(HOOK_PREFIX) and name[len(HOOK_PREFIX)].isupper()


def strip_context_suffix(name: str) -> str:
    if name.endswith(CONTEXT_SUFFIX) and len(name) > len(CONTEXT_SUFFIX):
        return name[: -len(CONTEXT_SUFFIX)]
    return name


def _returns_markup(function: Node) -> bool:
    for node in walk_scope(function):
        if node.type != "return_statement":
            continue
        value = node.named_children[0] if node.named_children else None
        if is_jsx(unwrap_parens(value)):
            return True
    return False


def is_component(function: Node) -> bool:
    """Classify a function-like node as a UI component."""
    if _returns_markup(function):
        return True
    if function.type == "arrow_function":
        body = unwrap_parens(function.child_by_field_name("body"))
        if is_jsx(body):
            return True
    return any(is_jsx(node) for node in walk(function))


def _bound_declarator(call: Node) -> Optional[Node]:
    """The variable declarator initialized directly by ``call``, if any."""
    current = call
    parent = current.parent
    while parent is not None and parent.type in _TRANSPARENT:
        current = parent
        parent = current.parent
    if parent is None or parent.type != "variable_declarator":
        return None
    value = parent.child_by_field_name("value")
    if value is None or value != current:
        return None
    return parent


def _first_array_binding(declarator: Node) -> Optional[str]:
    pattern = declarator.child_by_field_name("name")
    if pattern is None or pattern.type != "array_pattern":
        return None
    elements = [e for e in pattern.named_children if e.type != "comment"]
    if not elements:
        return None
    first = elements[0]
    if first.type == "assignment_pattern":
        first = first.child_by_field_name("left")
    if first is None or first.type != "identifier":
        return None
    return node_text(first)


def _append(values: List[str], value: str) -> None:
    if value and value not in values:
        values.append(value)


def extract_metadata(function: Node) -> ReactMetadata:
    """Collect hooks, local state and context usage inside a function body."""
    hooks: List[str] = []
    state: List[str] = []
    provides: List[str] = []
    consumes: List[str] = []

    for call in walk(function):
        if call.type != "call_expression":
            continue
        name = callee_name(call)
        if not name:
            continue

        if is_hook_name(name):
            _append(hooks, name)

            if name == STATE_HOOK:
                declarator = _bound_declarator(call)
                if declarator is not None:
                    first = _first_array_binding(declarator)
                    if first:
                        _append(state, first)

            elif name == CONTEXT_HOOK:
                args = call_arguments(call)
                if args:
                    _append(consumes, strip_context_suffix(node_text(args[0])))

        elif name == CONTEXT_FACTORY:
            declarator = _bound_declarator(call)
            if declarator is not None:
                target = declarator.child_by_field_name("name")
                if target is not None and target.type == "identifier":
                    _append(provides, strip_context_suffix(node_text(target)))

    return ReactMetadata(
        hooks=tuple(hooks),
        state=tuple(state),
        provides_context=tuple(provides),
        consumes_context=tuple(consumes),
    )


def _first_parameter(function: Node) -> Optional[Node]:
    single = function.child_by_field_name("parameter")
    if single is not None:
        return single
    params = function.child_by_field_name("parameters")
    if params is None:
        return None
    for param in params.named_children:
        if param.type != "comment":
            return param
    return None


def _type_text(annotation: Optional[Node]) -> Optional[str]:
    if annotation is None:
        return None
    if annotation.type == "type_annotation":
        named = annotation.named_children
        return node_text(named[0]) if named else None
    return node_text(annotation)


def extract_props(function: Node) -> Tuple[str, ...]:
    """Props from the first parameter: destructured keys, its type, or its name."""
    param = _first_parameter(function)
    if param is None:
        return ()

    pattern, annotation = param, None
    if param.type in ("required_parameter", "optional_parameter"):
        pattern = param.child_by_field_name("pattern")
        annotation = param.child_by_field_name("type")
    if pattern is not None and pattern.type == "assignment_pattern":
        pattern = pattern.child_by_field_name("left")
    if pattern is None:
        return ()

    if pattern.type == "object_pattern":
        props: List[str] = []
        for element in pattern.named_children:
            if element.type == "shorthand_property_identifier_pattern":
                _append(props, node_text(element))
            elif element.type == "pair_pattern":
                _append(props, node_text(element.child_by_field_name("key")))
            elif element.type == "object_assignment_pattern":
                _append(props, node_text(element.child_by_field_name("left")))
            elif element.type == "rest_pattern":
                named = element.named_children
                if named:
                    _append(props, "..." + node_text(named[0]))
        return tuple(props)

    type_name = _type_text(annotation)
    if type_name:
        return (type_name,)
    return (node_text(pattern),)
