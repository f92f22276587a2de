"""Diagnostic sinks used by the transformer and its front-ends."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any, Protocol, runtime_checkable


logger = logging.getLogger(__name__)


@runtime_checkable
class DiagnosticEmitter(Protocol):
    """Receives warnings, errors and structured events from a transformation."""

    debug_enabled: bool

    def warning(self, message: str, exc: BaseException | None = None) -> None: ...

    def error(self, message: str, exc: BaseException | None = None) -> None: ...

    def event(self, name: str, payload: Mapping[str, Any]) -> None: ...


class NullEmitter:
    """Discard every diagnostic."""

    debug_enabled: bool = False

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        return


class LoggingEmitter:
    """Forward diagnostics to a :mod:`logging` logger.

    Events with a known summary are logged at ``INFO``; any other event is
    logged at ``DEBUG`` with its raw payload.
    """

    def __init__(
        self, *, logger_obj: logging.Logger | None = None, debug_enabled: bool = False
    ) -> None:
        self._logger = logger_obj or logger
        self.debug_enabled = debug_enabled

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self._logger.warning(message, exc_info=exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self._logger.error(message, exc_info=exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        summary = format_event_message(name, payload)
        if summary is None:
            self._logger.debug("diagnostic event %s: %s", name, dict(payload))
        else:
            self._logger.info(summary)


def ensure_emitter(emitter: DiagnosticEmitter | None) -> DiagnosticEmitter:
    """Return ``emitter``, or a :class:`LoggingEmitter` when none is given."""
    return emitter if emitter is not None else LoggingEmitter()


def _diagrams(count: int) -> str:
    return f"{count} Mermaid {'diagram' if count == 1 else 'diagrams'}"


def format_event_message(name: str, payload: Mapping[str, Any]) -> str | None:
    """Return a one-line summary of a known event, ``None`` otherwise."""
    data = dict(payload)

    if name == "mermaid_render":
        strategy = data.get("strategy") or "<unknown>"
        return f"Rendering {_diagrams(data.get('count') or 0)} ({strategy})"

    if name == "mermaid_passthrough":
        return f"Keeping {_diagrams(data.get('count') or 0)} for client-side rendering"

    if name == "parser_fallback":
        preferred = data.get("preferred") or "<unknown>"
        fallback = data.get("fallback") or "<unknown>"
        return f"Parser '{preferred}' unavailable, using '{fallback}'"

    return None


__all__ = [
    "DiagnosticEmitter",
    "LoggingEmitter",
    "NullEmitter",
    "ensure_emitter",
    "format_event_message",
]
