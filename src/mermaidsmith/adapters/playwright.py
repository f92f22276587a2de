"""Batch renderer running Mermaid inside a headless Playwright browser."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import logging
import os
from typing import Any

from mermaidsmith.core.config import BrowserOptions, RenderOptions
from mermaidsmith.core.exceptions import TransformerExecutionError
from mermaidsmith.core.rendering import Fulfilled, Rejected, RenderOutcome, RenderResult


logger = logging.getLogger(__name__)

_PLAYWRIGHT_INSTALL_HINT = (
    "Install the browser with `playwright install chromium` and its system "
    "dependencies with `playwright install-deps`."
)

_PAGE_TEMPLATE = """<!doctype html>
<html><head><meta charset="utf-8" /></head>
<body style="margin:0; background:white;"><div id="container"></div></body></html>"""

_RENDER_SCRIPT = """
async ({ diagrams, prefix }) => {
  const container = document.getElementById('container');
  const parser = new DOMParser();
  const serializer = new XMLSerializer();
  const results = [];
  for (const [index, diagram] of diagrams.entries()) {
    const id = `${prefix}-${index}`;
    try {
      const { svg } = await window.mermaid.render(id, diagram);
      const root = parser.parseFromString(svg, 'text/html').querySelector('svg');
      container.replaceChildren(root);
      const box = root.getBoundingClientRect();
      const title = root.querySelector(':scope > title');
      const description = root.querySelector(':scope > desc');
      results.push({
        status: 'fulfilled',
        value: {
          id,
          svg: serializer.serializeToString(root),
          width: box.width,
          height: box.height,
          title: title ? title.textContent : null,
          description: description ? description.textContent : null,
        },
      });
    } catch (error) {
      results.push({
        status: 'rejected',
        reason: error instanceof Error ? error.message : String(error),
      });
    } finally {
      container.replaceChildren();
    }
  }
  return results;
}
"""


def _wrap_playwright_error(exc: BaseException) -> TransformerExecutionError:
    """Return a structured error with guidance for missing Playwright deps."""
    base_message = str(exc).strip().splitlines()[0] if str(exc).strip() else ""
    base_message = base_message or exc.__class__.__name__
    return TransformerExecutionError(
        f"Playwright backend failed: {base_message}. {_PLAYWRIGHT_INSTALL_HINT}"
    )


class MermaidRenderer:
    """Render Mermaid diagrams with Playwright.

    Creating the renderer launches nothing; each non-empty batch starts a
    browser, renders every diagram sequentially and closes the browser again.
    """

    def __init__(self, options: BrowserOptions | None = None) -> None:
        self.options = options or BrowserOptions()

    async def __call__(
        self, diagrams: Sequence[str], options: RenderOptions
    ) -> list[RenderOutcome]:
        if not diagrams:
            return []

        try:
            from playwright.async_api import Error as PlaywrightError, async_playwright
        except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency
            error = TransformerExecutionError(
                "Mermaid rendering requires the 'playwright' package."
            )
            error.__cause__ = exc
            return [Rejected(error) for _ in diagrams]

        os.environ.setdefault("NODE_OPTIONS", "--no-deprecation")
        try:
            async with async_playwright() as playwright:
                browser_type = getattr(playwright, self.options.browser)
                browser = await browser_type.launch(**self.options.launch_options)
                try:
                    return await self.render_batch(browser, diagrams, options)
                finally:
                    await browser.close()
        except PlaywrightError as exc:
            wrapped = _wrap_playwright_error(exc)
            wrapped.__cause__ = exc
            logger.debug("Playwright failed while rendering Mermaid diagrams", exc_info=exc)
            return [Rejected(wrapped) for _ in diagrams]

    async def render_batch(
        self, browser: Any, diagrams: Sequence[str], options: RenderOptions
    ) -> list[RenderOutcome]:
        """Render ``diagrams`` using an already launched ``browser``."""
        page = await browser.new_page()
        try:
            await page.set_content(_PAGE_TEMPLATE)
            await page.add_script_tag(url=self.options.mermaid_url)
            if options.css:
                await page.add_style_tag(content=options.css)
            await page.evaluate(
                "config => { window.mermaid.initialize(config); }",
                _mermaid_config(options.mermaid_config),
            )
            raw_results = await page.evaluate(
                _RENDER_SCRIPT, {"diagrams": list(diagrams), "prefix": options.prefix}
            )
        finally:
            await page.close()

        outcomes: list[RenderOutcome] = []
        for raw in raw_results:
            if raw.get("status") != "fulfilled":
                reason = raw.get("reason") or "Mermaid rendering failed"
                outcomes.append(Rejected(TransformerExecutionError(str(reason))))
                continue
            value = raw["value"]
            screenshot = None
            if options.screenshot:
                screenshot = await self._screenshot(browser, value["svg"])
            outcomes.append(
                Fulfilled(
                    RenderResult(
                        svg=value["svg"],
                        width=value.get("width") or 0,
                        height=value.get("height") or 0,
                        id=value.get("id"),
                        title=value.get("title"),
                        description=value.get("description"),
                        screenshot=screenshot,
                    )
                )
            )
        return outcomes

    async def _screenshot(self, browser: Any, svg: str) -> bytes:
        page = await browser.new_page(viewport={"width": 2400, "height": 1800})
        try:
            await page.set_content(
                f"<html><body style='margin:0; display:inline-block'>{svg}</body></html>"
            )
            return await page.locator("svg").first.screenshot(omit_background=True)
        finally:
            await page.close()


def _mermaid_config(config: Mapping[str, Any] | None) -> dict[str, Any]:
    resolved = dict(config or {})
    resolved["startOnLoad"] = False
    return resolved


def create_mermaid_renderer(options: BrowserOptions | None = None) -> MermaidRenderer:
    """Return a batch renderer backed by Playwright."""
    return MermaidRenderer(options)


__all__ = ["MermaidRenderer", "create_mermaid_renderer"]
