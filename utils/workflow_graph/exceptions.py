"""Custom exceptions for workflow graph extraction and rendering."""

from typing import Optional, Any, Dict, List, Sequence


class WorkflowGraphError(Exception):
    """Base exception for all workflow graph errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ManifestParseError(WorkflowGraphError):
    """Raised when a manifest or status object cannot be parsed."""

    def __init__(self, message: str, kind: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.kind = kind


class EntrypointNotFoundError(WorkflowGraphError):
    """Raised when the entrypoint does not name a declared template."""

    def __init__(self, entrypoint: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f'entrypoint template "{entrypoint}" not found in manifest', details)
        self.entrypoint = entrypoint


class InvalidFormatError(WorkflowGraphError):
    """Raised when an unknown output format is requested."""

    def __init__(self, value: str, allowed: Sequence[str], details: Optional[Dict[str, Any]] = None):
        choices = ", ".join(allowed[:-1]) + f", or {allowed[-1]}" if len(allowed) > 1 else "".join(allowed)
        super().__init__(f"invalid format: {value} (must be {choices})", details)
        self.value = value
        self.allowed = list(allowed)


class CyclicGraphError(WorkflowGraphError):
    """Raised when the node graph contains a dependency cycle."""

    def __init__(self, cycle: List[str], details: Optional[Dict[str, Any]] = None):
        super().__init__(f"dependency cycle detected: {' -> '.join(cycle)}", details)
        self.cycle = cycle


class IdentifierCollisionError(WorkflowGraphError):
    """Raised when distinct node keys sanitize to the same identifier."""

    def __init__(self, identifier: str, keys: List[str], details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"node keys {keys} all map to identifier '{identifier}'", details
        )
        self.identifier = identifier
        self.keys = keys


class GraphCompileError(WorkflowGraphError):
    """Raised when DOT text cannot be compiled into an image.

    ``cleanup_errors`` holds any failures hit while releasing the compiler's
    scratch resources; they are reported alongside the primary error.
    """

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        cleanup_errors: Optional[List[BaseException]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.stage = stage
        self.cleanup_errors: List[BaseException] = list(cleanup_errors or [])

    def add_cleanup_errors(self, errors: List[BaseException]) -> None:
        self.cleanup_errors.extend(errors)

    def __str__(self) -> str:
        if not self.cleanup_errors:
            return self.message
        joined = "; ".join(str(e) for e in self.cleanup_errors)
        return f"{self.message} (cleanup errors: {joined})"


class DotParseError(GraphCompileError):
    """Raised when the layout engine rejects the DOT source."""

    def __init__(self, message: str, cleanup_errors: Optional[List[BaseException]] = None):
        super().__init__(f"failed to parse DOT graph: {message}", "parse", cleanup_errors)


class SvgRenderError(GraphCompileError):
    """Raised when the layout engine fails to produce SVG output."""

    def __init__(self, message: str, cleanup_errors: Optional[List[BaseException]] = None):
        super().__init__(f"failed to render SVG: {message}", "render", cleanup_errors)
