"""Render Mermaid diagrams embedded in HTML documents."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _distribution_version

from mermaidsmith.core.config import (
    BrowserOptions,
    MermaidOptions,
    RenderOptions,
    Strategy,
    validate_strategy,
)
from mermaidsmith.core.diagnostics import DiagnosticEmitter, LoggingEmitter, NullEmitter
from mermaidsmith.core.exceptions import (
    ConfigurationError,
    DiagramRenderError,
    InvalidNodeError,
    MermaidsmithError,
    TransformerExecutionError,
)
from mermaidsmith.core.files import DiagramMessage, SourceFile
from mermaidsmith.core.rendering import (
    BatchRenderer,
    Fulfilled,
    Rejected,
    RenderOutcome,
    RenderResult,
)
from mermaidsmith.core.transform import (
    CodeInstance,
    MermaidTransformer,
    collect_instances,
    render_mermaid,
)


try:
    __version__ = _distribution_version("mermaidsmith")
except PackageNotFoundError:  # running from a source checkout
    __version__ = "0.0.0"

__all__ = [
    "BatchRenderer",
    "BrowserOptions",
    "CodeInstance",
    "ConfigurationError",
    "DiagnosticEmitter",
    "DiagramMessage",
    "DiagramRenderError",
    "Fulfilled",
    "InvalidNodeError",
    "LoggingEmitter",
    "MermaidOptions",
    "MermaidTransformer",
    "MermaidsmithError",
    "NullEmitter",
    "Rejected",
    "RenderOptions",
    "RenderOutcome",
    "RenderResult",
    "SourceFile",
    "Strategy",
    "TransformerExecutionError",
    "__version__",
    "collect_instances",
    "render_mermaid",
    "validate_strategy",
]
