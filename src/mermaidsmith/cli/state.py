"""Per-invocation CLI state, Rich-backed message helpers and the CLI emitter."""

from __future__ import annotations

from collections.abc import Mapping
from contextvars import ContextVar
from dataclasses import dataclass, field
import sys
from typing import TYPE_CHECKING, Any

from mermaidsmith.core.diagnostics import format_event_message
from mermaidsmith.core.exceptions import exception_messages


if TYPE_CHECKING:
    from rich.console import Console

__all__ = [
    "CLIState",
    "CliEmitter",
    "debug_enabled",
    "emit_error",
    "emit_warning",
    "get_cli_state",
    "render_message",
    "set_cli_state",
]


@dataclass(slots=True)
class CLIState:
    """Verbosity settings of the running command."""

    verbosity: int = 0
    show_tracebacks: bool = False
    _err_console: Console | None = field(default=None, init=False, repr=False)

    @property
    def err_console(self) -> Console:
        """Return a stderr console, rebuilt when ``sys.stderr`` was swapped."""
        from rich.console import Console

        if self._err_console is None or self._err_console.file is not sys.stderr:
            self._err_console = Console(file=sys.stderr, highlight=False)
        return self._err_console


_STATE_VAR: ContextVar[CLIState | None] = ContextVar("mermaidsmith_cli_state", default=None)


def get_cli_state() -> CLIState:
    """Return the CLI state of the current context, creating it when missing."""
    state = _STATE_VAR.get()
    if state is None:
        state = CLIState()
        _STATE_VAR.set(state)
    return state


def set_cli_state(*, verbosity: int | None = None, debug: bool | None = None) -> CLIState:
    """Apply the flags of a new invocation and return the state."""
    state = get_cli_state()
    if verbosity is not None:
        state.verbosity = max(0, verbosity)
    if debug is not None:
        state.show_tracebacks = debug
    return state


_STYLES = {"info": "cyan", "warning": "yellow", "error": "red"}


def render_message(
    level: str,
    message: str,
    *,
    exception: BaseException | None = None,
) -> None:
    """Print ``message`` on stderr.

    ``info`` messages only show with ``-v``. With ``-v`` the exception type is
    appended, with ``-vv`` its whole cause chain.
    """
    state = get_cli_state()
    if level == "info" and state.verbosity < 1:
        return

    from rich.text import Text

    style = _STYLES.get(level, "yellow")
    text = Text.assemble((f"{level}: ", f"bold {style}"), (message, style))

    details: list[str] = []
    if exception is not None and state.verbosity >= 1:
        details.append(f"type: {type(exception).__name__}")
        if state.verbosity >= 2:
            chain = exception_messages(exception)[1:]
            if chain:
                details.append("caused by:")
                details.extend(f"  {entry}" for entry in chain)

    if details:
        text.append("\n")
        text.append("\n".join(details), style=style)

    state.err_console.print(text)


def emit_warning(message: str, *, exception: BaseException | None = None) -> None:
    render_message("warning", message, exception=exception)


def emit_error(message: str, *, exception: BaseException | None = None) -> None:
    render_message("error", message, exception=exception)


def debug_enabled() -> bool:
    """Return whether full tracebacks should be displayed."""
    return get_cli_state().show_tracebacks


class CliEmitter:
    """Diagnostic emitter printing through the helpers above.

    Known events are summarised as ``info`` lines, so they only show with ``-v``.
    """

    def __init__(self, state: CLIState | None = None) -> None:
        self.state = state or get_cli_state()

    @property
    def debug_enabled(self) -> bool:
        return self.state.show_tracebacks

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        emit_warning(message, exception=exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        emit_error(message, exception=exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        summary = format_event_message(name, payload)
        if summary:
            render_message("info", summary)
