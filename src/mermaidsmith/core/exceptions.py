"""Custom exception hierarchy for the Mermaid transformation pipeline."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .files import DiagramMessage


class MermaidsmithError(RuntimeError):
    """Base exception for Mermaid transformation failures."""


class ConfigurationError(MermaidsmithError):
    """Raised when transformer options are invalid."""


class TransformerExecutionError(MermaidsmithError):
    """Raised when the external diagram renderer fails to execute properly."""


class InvalidNodeError(MermaidsmithError):
    """Raised when the transformer receives an unexpected DOM node shape."""


class DiagramRenderError(MermaidsmithError):
    """Raised after mapping when diagrams failed without a fallback."""

    def __init__(self, messages: Sequence[DiagramMessage]) -> None:
        self.messages = list(messages)
        count = len(self.messages)
        summary = "; ".join(message.reason for message in self.messages)
        noun = "diagram" if count == 1 else "diagrams"
        super().__init__(f"Failed to render {count} Mermaid {noun}: {summary}")


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "ConfigurationError",
    "DiagramRenderError",
    "InvalidNodeError",
    "MermaidsmithError",
    "TransformerExecutionError",
    "exception_hint",
    "exception_messages",
]
