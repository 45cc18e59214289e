"""Runtime configuration for the source graph builder."""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Sequence, Tuple


@dataclass(frozen=True)
class AnalyzerConfig:
    """Settings shared by every pass of one analysis run.

    Attributes:
        ignored_directories: Directory names whose contents are never loaded
            (dependencies, vendored code and build output).
        source_extensions: File suffixes picked up by the glob fallback.
        script_extensions: The subset of suffixes that are plain JavaScript and
            only loaded from a tsconfig project when ``allowJs`` is set.
        resolve_extensions: Suffixes tried, in order, when resolving an import
            specifier to a file.
        alias_map: Path aliases used when the project declares no ``paths``.
        code_preview_length: Number of characters kept in ``CodeNode.code``.
        file_timeout: Seconds one file may spend in structural extraction.
        navigation_functions: Callee names treated as imperative navigation.
        navigation_attributes: JSX attributes that carry a route target.
    """

    ignored_directories: FrozenSet[str] = frozenset([
        'node_modules', 'bower_components', 'jspm_packages', 'vendor', '.git',
        'dist', 'build', '.next', '.nuxt', 'coverage', '.cache',
    ])
    source_extensions: Tuple[str, ...] = (
        ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".mts", ".cts",
    )
    script_extensions: Tuple[str, ...] = (".js", ".jsx", ".mjs", ".cjs")
    resolve_extensions: Tuple[str, ...] = (
        "",
        ".ts",
        ".tsx",
        ".js",
        ".jsx",
        ".mjs",
        ".mts",
        ".d.ts",
        "/index.ts",
        "/index.tsx",
        "/index.js",
        "/index.jsx",
        "/index.mjs",
        "/index.mts",
    )
    alias_map: Tuple[Tuple[str, str], ...] = (
        ("@/", "src/"),
        ("@components/", "components/"),
        ("@lib/", "lib/"),
        ("@utils/", "utils/"),
        ("@hooks/", "hooks/"),
        ("@contexts/", "contexts/"),
        ("@types/", "types/"),
        ("@app/", "app/"),
    )
    code_preview_length: int = 300
    file_timeout: float = 10.0
    navigation_functions: FrozenSet[str] = frozenset(["push", "navigate"])
    navigation_attributes: FrozenSet[str] = frozenset(["href", "to"])


@dataclass(frozen=True)
class ParseOptions:
    """Per-call options for :func:`jsgraph.parse`.

    ``entry_point`` restricts the run to files reachable from that file through
    in-project imports. ``exclude`` holds glob patterns matched against relative
    paths and file names. ``cancel_event`` is anything with an ``is_set()``
    method, typically a :class:`threading.Event`.
    """

    entry_point: Optional[str] = None
    exclude: Sequence[str] = field(default_factory=tuple)
    cancel_event: Optional[Any] = None


@dataclass(frozen=True)
class ModuleConfig:
    """Alias settings read from the project's compiler configuration."""

    base_url: Optional[str] = None
    paths: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    source: Optional[str] = None


DEFAULT_CONFIG = AnalyzerConfig()
