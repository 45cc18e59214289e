"""Build a knowledge graph of a JavaScript/TypeScript codebase."""

from .config import DEFAULT_CONFIG, AnalyzerConfig, ParseOptions
from .errors import AnalysisCancelledError, FileTimeoutError, JsGraphError, ProjectLoadError
from .models import CodeEdge, CodeNode, GraphData
from .pipeline import parse, parse_async

__version__ = "0.1.0"

__all__ = [
    "AnalysisCancelledError",
    "AnalyzerConfig",
    "CodeEdge",
    "CodeNode",
    "DEFAULT_CONFIG",
    "FileTimeoutError",
    "GraphData",
    "JsGraphError",
    "ParseOptions",
    "ProjectLoadError",
    "parse",
    "parse_async",
]
