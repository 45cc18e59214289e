"""Discover, read and parse the source files of one project."""

import fnmatch
import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import networkx as nx
from tree_sitter import Node, Tree

from .config import DEFAULT_CONFIG, AnalyzerConfig, ModuleConfig, ParseOptions
from .errors import AnalysisCancelledError, ProjectLoadError
from .modules import ModuleResolver, build_scopes, local_targets
from .syntax import language_for, parse_source, walk

logger = logging.getLogger(__name__)

_CONFIG_FILES = ("tsconfig.json", "jsconfig.json")
_DEFAULT_INCLUDE = ("**/*",)


@dataclass(frozen=True)
class SourceFile:
    """A loaded and parsed source file."""

    path: Path
    rel_path: str
    source: bytes
    tree: Tree
    language: str

    @property
    def file_id(self) -> str:
        return f"file:{self.rel_path}"

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def loc(self) -> int:
        return self.root.end_point[0] + 1


@dataclass(frozen=True)
class ProjectSnapshot:
    """The immutable set of parsed files every pass works from."""

    root: Path
    files: Tuple[SourceFile, ...]
    module_config: ModuleConfig = field(default_factory=ModuleConfig)
    warnings: Tuple[str, ...] = ()
    discovered: Tuple[str, ...] = ()

    @property
    def project_paths(self) -> Tuple[str, ...]:
        """Every discovered source path, including files that were not loaded."""
        return self.discovered or tuple(f.rel_path for f in self.files)

    def file_map(self) -> Dict[str, SourceFile]:
        return {f.rel_path: f for f in self.files}


def check_cancelled(options: Optional[ParseOptions]) -> None:
    event = options.cancel_event if options is not None else None
    if event is not None and event.is_set():
        raise AnalysisCancelledError("Analysis cancelled by caller")


def strip_json_comments(text: str) -> str:
    """Remove // and /* */ comments and trailing commas from JSON-like text."""
    out: List[str] = []
    in_str = False
    escape = False
    idx = 0
    while idx < len(text):
        ch = text[idx]
        if in_str:
            out.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_str = False
            idx += 1
            continue
        if ch == '"':
            in_str = True
            out.append(ch)
            idx += 1
            continue
        if ch == "/" and idx + 1 < len(text):
            nxt = text[idx + 1]
            if nxt == "/":
                idx = text.find("\n", idx + 2)
                if idx == -1:
                    break
                continue
            if nxt == "*":
                end = text.find("*/", idx + 2)
                if end == -1:
                    break
                idx = end + 2
                continue
        out.append(ch)
        idx += 1
    return re.sub(r",(\s*[}\]])", r"\1", "".join(out))


def _matches(rel_path: str, patterns: Sequence[str]) -> bool:
    """Match a POSIX relative path (or its file name) against glob patterns."""
    name = rel_path.rsplit("/", 1)[-1]
    for raw in patterns:
        pattern = raw.replace("\\", "/")
        if pattern.startswith("./"):
            pattern = pattern[2:]
        variants = {pattern, pattern.replace("**/", "")}
        if not any(token in pattern for token in "*?["):
            variants.add(pattern.rstrip("/") + "/*")
        for variant in variants:
            if fnmatch.fnmatch(rel_path, variant) or fnmatch.fnmatch(name, variant):
                return True
    return False


def _walk_sources(root: Path, extensions: Sequence[str], config: AnalyzerConfig) -> List[str]:
    found = []
    for current, dirs, files in os.walk(root):
        # Prune ignored directories in place so os.walk never enters them.
        dirs[:] = sorted(d for d in dirs if d not in config.ignored_directories)
        for file_name in sorted(files):
            if file_name.endswith(tuple(extensions)):
                found.append(os.path.relpath(os.path.join(current, file_name), root))
    return found


def _read_compiler_config(root: Path, warnings: List[str]) -> Tuple[Optional[str], Optional[dict]]:
    for name in _CONFIG_FILES:
        path = root / name
        if not path.is_file():
            continue
        try:
            payload = json.loads(strip_json_comments(path.read_text(encoding="utf-8")))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            warnings.append(f"Failed to parse {name}: {exc}; falling back to glob discovery")
            logger.warning("Failed to parse %s: %s", name, exc)
            continue
        if not isinstance(payload, dict):
            warnings.append(f"Invalid {name}: expected a JSON object")
            continue
        return name, payload
    return None, None


def _module_config(name: str, payload: dict) -> ModuleConfig:
    compiler = payload.get("compilerOptions")
    if not isinstance(compiler, dict):
        compiler = {}
    base_url = compiler.get("baseUrl")
    if not isinstance(base_url, str) or not base_url.strip():
        base_url = None
    paths: Dict[str, Tuple[str, ...]] = {}
    raw_paths = compiler.get("paths")
    if isinstance(raw_paths, dict):
        for key, value in raw_paths.items():
            if isinstance(value, str):
                paths[key] = (value,)
            elif isinstance(value, list):
                paths[key] = tuple(v for v in value if isinstance(v, str))
    return ModuleConfig(base_url=base_url, paths=paths, source=name)


def discover_files(
    root: Path, config: AnalyzerConfig, warnings: List[str]
) -> Tuple[List[str], ModuleConfig]:
    """List candidate files, honoring tsconfig.json/jsconfig.json when present."""
    name, payload = _read_compiler_config(root, warnings)
    if payload is None:
        logger.info("No compiler config found, adding source files by glob")
        return sorted(_walk_sources(root, config.source_extensions, config)), ModuleConfig()

    compiler = payload.get("compilerOptions") if isinstance(payload.get("compilerOptions"), dict) else {}
    extensions = list(config.source_extensions)
    if name == "tsconfig.json" and not compiler.get("allowJs"):
        extensions = [e for e in extensions if e not in config.script_extensions]

    include = payload.get("include")
    explicit = payload.get("files")
    if not isinstance(include, list):
        include = [] if isinstance(explicit, list) else list(_DEFAULT_INCLUDE)
    exclude = payload.get("exclude") if isinstance(payload.get("exclude"), list) else []
    include = [p for p in include if isinstance(p, str)]
    exclude = [p for p in exclude if isinstance(p, str)]

    selected = []
    for rel_path in _walk_sources(root, extensions, config):
        posix = rel_path.replace(os.sep, "/")
        if include and _matches(posix, include) and not _matches(posix, exclude):
            selected.append(rel_path)
    if isinstance(explicit, list):
        for entry in explicit:
            if not isinstance(entry, str):
                continue
            rel_path = os.path.normpath(entry)
            if (root / rel_path).is_file() and rel_path not in selected:
                selected.append(rel_path)

    logger.info("Using %s: %d candidate files", name, len(selected))
    return sorted(selected), _module_config(name, payload)


def _first_error_line(tree: Tree) -> int:
    for node in walk(tree.root_node):
        if node.is_error or node.is_missing:
            return node.start_point[0] + 1
    return 1


def _parse_file(root: Path, rel_path: str, warnings: List[str]) -> Optional[SourceFile]:
    path = root / rel_path
    language = language_for(path.name)
    if language is None:
        return None
    try:
        source = path.read_bytes()
        source.decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        warnings.append(f"Skipping {rel_path}: {exc}")
        logger.warning("Skipping %s: %s", rel_path, exc)
        return None
    tree = parse_source(source, language)
    if tree.root_node.has_error:
        line = _first_error_line(tree)
        warnings.append(f"Skipping {rel_path}: syntax error near line {line}")
        logger.warning("Skipping %s: syntax error near line %d", rel_path, line)
        return None
    return SourceFile(path=path, rel_path=rel_path, source=source, tree=tree, language=language)


def _reachable(
    files: List[SourceFile],
    entry: str,
    discovered: Sequence[str],
    module_config: ModuleConfig,
    config: AnalyzerConfig,
) -> List[SourceFile]:
    resolver = ModuleResolver(discovered, module_config, config)
    scopes = build_scopes(files, resolver)
    imports = nx.DiGraph()
    imports.add_nodes_from(scopes)
    for rel_path, scope in scopes.items():
        imports.add_edges_from((rel_path, target) for target in local_targets(scope))
    keep = nx.descendants(imports, entry) | {entry}
    return [f for f in files if f.rel_path in keep]


def load_project(
    root_path,
    options: Optional[ParseOptions] = None,
    config: AnalyzerConfig = DEFAULT_CONFIG,
) -> ProjectSnapshot:
    """Load and parse every analyzable file under ``root_path``.

    Raises:
        ProjectLoadError: The root is not a directory, no eligible file exists,
            or the requested entry point is not among the loaded files.
    """
    options = options or ParseOptions()
    root = Path(root_path)
    if not root.is_dir():
        raise ProjectLoadError(f"Directory does not exist: {root_path}")
    root = root.resolve()

    warnings: List[str] = []
    candidates, module_config = discover_files(root, config, warnings)
    discovered = tuple(candidates)
    if options.exclude:
        candidates = [
            p for p in candidates if not _matches(p.replace(os.sep, "/"), list(options.exclude))
        ]
    if not candidates:
        raise ProjectLoadError(f"No JavaScript/TypeScript files found under {root}")
    logger.info("Found %d source files to analyze", len(candidates))

    files: List[SourceFile] = []
    for rel_path in candidates:
        check_cancelled(options)
        loaded = _parse_file(root, rel_path, warnings)
        if loaded is not None:
            files.append(loaded)

    if options.entry_point:
        entry = os.path.normpath(options.entry_point)
        if os.path.isabs(entry):
            entry = os.path.relpath(entry, root)
        if entry not in {f.rel_path for f in files}:
            raise ProjectLoadError(f"Entry point {options.entry_point} is not a loaded source file")
        files = _reachable(files, entry, discovered, module_config, config)
        logger.info("Entry point %s reaches %d files", entry, len(files))

    return ProjectSnapshot(
        root=root,
        files=tuple(files),
        module_config=module_config,
        warnings=tuple(warnings),
        discovered=discovered,
    )
