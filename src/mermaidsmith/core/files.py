"""Source file records collecting diagnostics raised while transforming a tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .exceptions import DiagramRenderError, exception_hint


@dataclass(slots=True)
class DiagramMessage:
    """Diagnostic attached to a source file and, optionally, a tree node."""

    reason: str
    origin: str
    fatal: bool = False
    node: Any = None
    error: BaseException | None = None

    @property
    def source(self) -> str:
        """Return the part of the origin before the rule separator."""
        return self.origin.split(":", 1)[0]

    @property
    def rule(self) -> str | None:
        """Return the part of the origin after the rule separator."""
        _, separator, rule = self.origin.partition(":")
        return rule if separator else None


@dataclass(slots=True)
class SourceFile:
    """Document being transformed, collecting diagnostics as it goes."""

    path: Path | None = None
    messages: list[DiagramMessage] = field(default_factory=list)

    def message(
        self,
        reason: BaseException | str,
        node: Any = None,
        origin: str = "mermaidsmith",
    ) -> DiagramMessage:
        """Record a non-fatal diagnostic."""
        return self._record(reason, node, origin, fatal=False)

    def fail(
        self,
        reason: BaseException | str,
        node: Any = None,
        origin: str = "mermaidsmith",
    ) -> DiagramMessage:
        """Record a fatal diagnostic tied to ``node``."""
        return self._record(reason, node, origin, fatal=True)

    @property
    def fatal_messages(self) -> list[DiagramMessage]:
        return [message for message in self.messages if message.fatal]

    def raise_for_fatal(self, since: int = 0) -> None:
        """Raise when fatal messages were recorded after index ``since``."""
        fatal = [message for message in self.messages[since:] if message.fatal]
        if fatal:
            raise DiagramRenderError(fatal)

    def _record(
        self,
        reason: BaseException | str,
        node: Any,
        origin: str,
        *,
        fatal: bool,
    ) -> DiagramMessage:
        if isinstance(reason, BaseException):
            text = exception_hint(reason) or reason.__class__.__name__
            error: BaseException | None = reason
        else:
            text = str(reason)
            error = None
        if self.path is not None:
            text = f"{self.path}: {text}"
        entry = DiagramMessage(reason=text, origin=origin, fatal=fatal, node=node, error=error)
        self.messages.append(entry)
        return entry


__all__ = ["DiagramMessage", "SourceFile"]
