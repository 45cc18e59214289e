"""Exceptions raised by the source graph builder."""


class JsGraphError(Exception):
    """Base class for every error raised by jsgraph."""


class ProjectLoadError(JsGraphError):
    """The root path is unusable or holds no analyzable source files."""


class AnalysisCancelledError(JsGraphError):
    """The caller signalled cancellation between two per-file iterations."""


class FileTimeoutError(JsGraphError):
    """One file exceeded its analysis time budget."""

    def __init__(self, rel_path: str, seconds: float):
        super().__init__(f"Analysis of {rel_path} exceeded {seconds:g}s")
        self.rel_path = rel_path
        self.seconds = seconds
