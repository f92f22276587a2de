"""Render outcomes exchanged with the external batch renderer."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, TypeAlias

from .config import RenderOptions


@dataclass(frozen=True, slots=True)
class RenderResult:
    """Successful rendering of a single diagram."""

    svg: str
    width: float = 0
    height: float = 0
    id: str | None = None
    title: str | None = None
    description: str | None = None
    screenshot: bytes | None = None


@dataclass(frozen=True, slots=True)
class Fulfilled:
    """Outcome of a diagram that rendered successfully."""

    value: RenderResult


@dataclass(frozen=True, slots=True)
class Rejected:
    """Outcome of a diagram that failed to render."""

    reason: BaseException


RenderOutcome: TypeAlias = Fulfilled | Rejected


class BatchRenderer(Protocol):
    """Render every diagram of a batch, returning one outcome per diagram in order."""

    async def __call__(
        self, diagrams: Sequence[str], options: RenderOptions
    ) -> Sequence[RenderOutcome]: ...


__all__ = ["BatchRenderer", "Fulfilled", "Rejected", "RenderOutcome", "RenderResult"]
