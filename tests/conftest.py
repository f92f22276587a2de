from __future__ import annotations

from collections.abc import Callable, Sequence

import pytest

from mermaidsmith.core.config import RenderOptions
from mermaidsmith.core.exceptions import TransformerExecutionError
from mermaidsmith.core.rendering import Fulfilled, Rejected, RenderOutcome, RenderResult


def make_svg(index: int) -> str:
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" id="mermaid-{index}" '
        f'viewBox="0 0 10 20" aria-roledescription="flowchart-v2"><g class="root"/></svg>'
    )


def fulfilled(index: int, *, screenshot: bytes | None = None) -> Fulfilled:
    return Fulfilled(
        RenderResult(
            svg=make_svg(index),
            width=10.0,
            height=20.0,
            id=f"mermaid-{index}",
            title=f"Diagram {index}",
            description=f"Description {index}",
            screenshot=screenshot,
        )
    )


def rejected(message: str = "Parse error on line 1") -> Rejected:
    return Rejected(TransformerExecutionError(message))


class FakeRenderer:
    """Batch renderer recording calls and returning scripted outcomes."""

    def __init__(
        self,
        outcomes: Sequence[RenderOutcome] | Callable[[int, str], RenderOutcome] | None = None,
    ) -> None:
        self.outcomes = outcomes
        self.calls: list[tuple[list[str], RenderOptions]] = []

    async def __call__(
        self, diagrams: Sequence[str], options: RenderOptions
    ) -> list[RenderOutcome]:
        self.calls.append((list(diagrams), options))
        if self.outcomes is None:
            return [
                fulfilled(index, screenshot=b"\x89PNG" if options.screenshot else None)
                for index, _ in enumerate(diagrams)
            ]
        if callable(self.outcomes):
            return [self.outcomes(index, diagram) for index, diagram in enumerate(diagrams)]
        return list(self.outcomes)


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()
