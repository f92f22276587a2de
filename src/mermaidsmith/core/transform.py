"""Replace Mermaid code blocks in a BeautifulSoup tree with rendered diagrams.

The transformation runs in three steps:

`Collection`
: a single synchronous walk finds ``<code class="language-mermaid">`` and
  ``<pre class="mermaid">`` nodes. A code block that is the only meaningful
  child of a ``<pre>`` is promoted so the whole ``<pre>`` gets replaced.

`Dispatch`
: the ``pre-mermaid`` strategy rewrites blocks in place without rendering.
  Every other strategy sends all diagrams to the batch renderer in one call.

`Mapping`
: outcomes are applied in submission order. Each splice re-locates its node
  by identity, so removals earlier in the same sibling list are harmless.
"""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
import logging
from typing import Any

from bs4.element import NavigableString, PageElement, Tag

from .config import MermaidOptions, Strategy
from .diagnostics import DiagnosticEmitter, ensure_emitter
from .exceptions import InvalidNodeError, TransformerExecutionError
from .files import SourceFile
from .nodes import (
    BLOCK_CLASS,
    build_tag,
    extract_text,
    is_mermaid_element,
    iter_elements,
    only_child_of,
    parse_fragment,
    splice,
    svg_to_data_uri,
)
from .rendering import BatchRenderer, Fulfilled, Rejected, RenderOutcome, RenderResult


logger = logging.getLogger(__name__)

ORIGIN = "mermaidsmith:mermaidsmith"

ErrorFallback = Callable[[Tag, str, BaseException, SourceFile], "PageElement | str | None"]


@dataclass(frozen=True, slots=True)
class CodeInstance:
    """A Mermaid diagram discovered in the tree."""

    diagram: str
    """The Mermaid source."""

    node: Tag
    """The node that should be replaced."""

    parent: Tag
    """The parent of the node that should be replaced."""


def collect_instances(tree: Tag, strategy: Strategy) -> list[CodeInstance]:
    """Return the Mermaid diagrams of ``tree`` in document order."""
    instances: list[CodeInstance] = []
    targets: set[int] = set()

    for node, ancestors in iter_elements(tree):
        if not is_mermaid_element(node, strategy):
            continue

        code_element = node
        parent = ancestors[-1]

        # <code> wrapped in a <pre>: replace the <pre> unless it holds anything else.
        if parent is not tree and parent.name == "pre":
            if not only_child_of(parent, node):
                continue
            code_element = parent
            parent = ancestors[-2]

        # <pre class="mermaid"><code class="language-mermaid"> resolves to the <pre> twice.
        if id(code_element) in targets:
            continue
        targets.add(id(code_element))

        instances.append(CodeInstance(diagram=extract_text(node), node=code_element, parent=parent))

    return instances


class MermaidTransformer:
    """Render Mermaid diagrams found in BeautifulSoup trees."""

    def __init__(
        self,
        options: MermaidOptions | Mapping[str, Any] | None = None,
        *,
        renderer: BatchRenderer | None = None,
        emitter: DiagnosticEmitter | None = None,
        **overrides: Any,
    ) -> None:
        if isinstance(options, MermaidOptions) and not overrides:
            self.options = options
        elif isinstance(options, MermaidOptions):
            self.options = MermaidOptions.from_options(
                options.model_dump(exclude={"browser"}), browser=options.browser, **overrides
            )
        else:
            self.options = MermaidOptions.from_options(options, **overrides)
        self.emitter = ensure_emitter(emitter)
        self._renderer = renderer

    @property
    def strategy(self) -> Strategy:
        return self.options.strategy

    @property
    def renderer(self) -> BatchRenderer:
        """Return the batch renderer, creating the Playwright one on first use."""
        if self._renderer is None:
            from mermaidsmith.adapters.playwright import create_mermaid_renderer

            self._renderer = create_mermaid_renderer(self.options.browser)
        return self._renderer

    async def run(self, tree: Tag, file: SourceFile | None = None) -> None:
        """Transform ``tree`` in place.

        Raises :class:`~mermaidsmith.core.exceptions.DiagramRenderError` once
        every outcome has been applied when a diagram failed and no
        ``error_fallback`` is configured.
        """
        source = file if file is not None else SourceFile()
        instances = collect_instances(tree, self.strategy)

        # Nothing to do. No need to start a browser in this case.
        if not instances:
            return

        if self.strategy is Strategy.PRE_MERMAID:
            self._rewrite_passthrough(instances)
            return

        self.emitter.event(
            "mermaid_render", {"count": len(instances), "strategy": self.strategy.value}
        )
        outcomes = await self.renderer(
            [instance.diagram for instance in instances], self.options.render_options()
        )
        if len(outcomes) != len(instances):
            raise TransformerExecutionError(
                f"Renderer returned {len(outcomes)} results for {len(instances)} diagrams"
            )

        checkpoint = len(source.messages)
        self._apply_results(instances, outcomes, source)
        source.raise_for_fatal(since=checkpoint)

    def run_sync(self, tree: Tag, file: SourceFile | None = None) -> None:
        """Run :meth:`run` to completion on a fresh event loop."""
        asyncio.run(self.run(tree, file))

    # --------------------------------------------------------------------- helpers

    def _rewrite_passthrough(self, instances: Sequence[CodeInstance]) -> None:
        self.emitter.event("mermaid_passthrough", {"count": len(instances)})
        for instance in instances:
            block = build_tag(
                instance.parent, "pre", {"class": [BLOCK_CLASS]}, text=instance.diagram
            )
            self._splice(instance, block)

    def _apply_results(
        self,
        instances: Sequence[CodeInstance],
        outcomes: Sequence[RenderOutcome],
        file: SourceFile,
    ) -> None:
        for instance, outcome in zip(instances, outcomes, strict=True):
            replacement: PageElement | None
            match outcome:
                case Fulfilled(value=result):
                    replacement = self._build_replacement(instance, result)
                case Rejected(reason=reason):
                    fallback = self.options.error_fallback
                    if fallback is None:
                        file.fail(reason, instance.node, ORIGIN)
                        logger.debug("Mermaid diagram failed to render", exc_info=reason)
                        continue
                    replacement = _coerce_node(
                        fallback(instance.node, instance.diagram, reason, file)
                    )
                case _:
                    raise InvalidNodeError(f"Unexpected render outcome: {outcome!r}")

            self._splice(instance, replacement)

    def _build_replacement(self, instance: CodeInstance, result: RenderResult) -> PageElement:
        if result.screenshot is not None:
            encoded = base64.b64encode(result.screenshot).decode("ascii")
            return self._image(instance, result, f"data:image/png;base64,{encoded}")
        if self.strategy is Strategy.INLINE_SVG:
            return parse_fragment(result.svg)
        return self._image(instance, result, svg_to_data_uri(result.svg))

    def _image(self, instance: CodeInstance, result: RenderResult, src: str) -> Tag:
        return build_tag(
            instance.parent,
            "img",
            {
                "alt": result.description or "",
                "height": result.height,
                "id": result.id,
                "src": src,
                "title": result.title,
                "width": result.width,
            },
        )

    def _splice(self, instance: CodeInstance, replacement: PageElement | None) -> None:
        if not splice(instance.parent, instance.node, replacement):
            self.emitter.warning(
                f"Mermaid block <{instance.node.name}> is no longer attached to its parent; "
                "skipping replacement."
            )


def _coerce_node(value: PageElement | str | None) -> PageElement | None:
    if value is None or isinstance(value, PageElement):
        return value
    if isinstance(value, str):
        return NavigableString(value)
    raise InvalidNodeError(
        f"Mermaid error fallback must return a node or None, got {type(value).__name__}"
    )


def render_mermaid(
    tree: Tag,
    file: SourceFile | None = None,
    *,
    renderer: BatchRenderer | None = None,
    **options: Any,
) -> None:
    """Transform ``tree`` synchronously with a one-off transformer."""
    MermaidTransformer(options, renderer=renderer).run_sync(tree, file)


__all__ = [
    "ORIGIN",
    "CodeInstance",
    "ErrorFallback",
    "MermaidTransformer",
    "collect_instances",
    "render_mermaid",
]
