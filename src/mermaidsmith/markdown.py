"""Markdown extension that renders Mermaid code blocks in the generated HTML."""

from __future__ import annotations

from typing import Any

from bs4 import BeautifulSoup
from markdown import Markdown
from markdown.extensions import Extension
from markdown.postprocessors import Postprocessor

from .core.files import SourceFile
from .core.nodes import BLOCK_CLASS
from .core.rendering import BatchRenderer
from .core.transform import MermaidTransformer


class _MermaidPostprocessor(Postprocessor):
    """Replace Mermaid blocks once the final HTML has been produced."""

    def __init__(self, md: Markdown, transformer: MermaidTransformer) -> None:
        super().__init__(md)
        self.transformer = transformer

    def run(self, text: str) -> str:
        if BLOCK_CLASS not in text:
            return text

        soup = BeautifulSoup(text, "html.parser")
        file = SourceFile(getattr(self.md, "mermaidsmith_source", None))
        self.transformer.run_sync(soup, file)
        return str(soup)


class MermaidRenderExtension(Extension):
    """Register the Mermaid rendering postprocessor."""

    def __init__(self, *, renderer: BatchRenderer | None = None, **kwargs: Any) -> None:
        self.config = {
            "strategy": ["inline-svg", "How rendered diagrams are inserted in the page."],
            "prefix": ["mermaid", "Prefix of generated diagram ids."],
            "css": ["", "Extra stylesheet applied while rendering."],
            "mermaid_config": [{}, "Mermaid configuration mapping or JSON file path."],
            "error_fallback": ["", "Callable producing a node for failed diagrams."],
        }
        self._renderer = renderer
        super().__init__(**kwargs)

    def extendMarkdown(self, md: Markdown) -> None:  # type: ignore[override]  # noqa: N802
        # Unset entries keep falsy defaults; Markdown coerces None defaults to booleans.
        options = {key: value for key, value in self.getConfigs().items() if value}
        transformer = MermaidTransformer(options, renderer=self._renderer)
        # Runs after raw HTML placeholders (priority 30) have been restored.
        md.postprocessors.register(
            _MermaidPostprocessor(md, transformer), "mermaidsmith_render", priority=5
        )


def makeExtension(  # noqa: N802 - Markdown expects this entry point name
    **kwargs: Any,
) -> MermaidRenderExtension:  # pragma: no cover - entry point
    return MermaidRenderExtension(**kwargs)


__all__ = ["MermaidRenderExtension", "makeExtension"]
