"""Configuration models used by the Mermaid transformer.

MermaidOptions

`strategy` (`Strategy`)
: How rendered diagrams are inserted into the document. One of `img-png`,
  `img-svg`, `inline-svg` (default) or `pre-mermaid`.

`error_fallback` (`Callable | None`)
: Called as ``error_fallback(node, diagram, error, file)`` when a diagram
  fails to render. The returned node replaces the diagram; returning `None`
  removes it. Without a fallback, failures are reported as fatal diagnostics.

`mermaid_config` (`dict | None`)
: Mermaid configuration forwarded to ``mermaid.initialize``. A path to a JSON
  file is loaded when the options are validated.

`css` (`str | None`)
: Extra stylesheet applied to the rendering page.

`prefix` (`str`)
: Prefix of the generated diagram ids. Diagrams receive ``{prefix}-{index}``.

`browser` (`BrowserOptions`)
: Options used by the default Playwright renderer.

BrowserOptions

`browser` (`str`)
: Playwright browser type, one of `chromium`, `firefox`, `webkit`.

`launch_options` (`dict`)
: Keyword arguments forwarded to ``browser_type.launch``.

`mermaid_url` (`str`)
: URL of the Mermaid bundle loaded in the rendering page. Defaults to
  ``MERMAIDSMITH_MERMAID_URL`` or the unpkg build of Mermaid 11.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from enum import Enum
import json
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError


DEFAULT_MERMAID_URL = "https://unpkg.com/mermaid@11/dist/mermaid.min.js"


class Strategy(str, Enum):
    """Output encodings supported by the transformer."""

    IMG_PNG = "img-png"
    """An ``<img>`` whose source is a base64 PNG data URI."""

    IMG_SVG = "img-svg"
    """An ``<img>`` whose source is an SVG data URI."""

    INLINE_SVG = "inline-svg"
    """The rendered ``<svg>`` element inserted directly in the document."""

    PRE_MERMAID = "pre-mermaid"
    """The raw diagram inside ``<pre class="mermaid">`` for client-side rendering."""

    @property
    def requires_rendering(self) -> bool:
        return self is not Strategy.PRE_MERMAID

    @property
    def screenshot(self) -> bool:
        return self is Strategy.IMG_PNG


STRATEGIES: tuple[str, ...] = tuple(strategy.value for strategy in Strategy)


def validate_strategy(value: Strategy | str | None = None) -> Strategy:
    """Return the matching strategy or raise a configuration error."""
    if value is None:
        return Strategy.INLINE_SVG
    if isinstance(value, Strategy):
        return value
    if isinstance(value, str) and value in STRATEGIES:
        return Strategy(value)
    raise ConfigurationError(
        f"Expected strategy to be one of {', '.join(STRATEGIES)}, got: {value}"
    )


def _load_mermaid_config(value: Any) -> Any:
    if value is None or isinstance(value, Mapping):
        return value
    if isinstance(value, (str, Path)):
        path = Path(value).expanduser()
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ValueError(f"Unable to read Mermaid configuration '{path}': {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ValueError(f"Mermaid configuration '{path}' is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ValueError(f"Mermaid configuration '{path}' must contain a JSON object")
        return payload
    return value


class RenderOptions(BaseModel):
    """Options forwarded verbatim to the batch renderer."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    mermaid_config: dict[str, Any] | None = None
    css: str | None = None
    prefix: str = "mermaid"
    screenshot: bool = False


class BrowserOptions(BaseModel):
    """Options controlling the Playwright browser behind the default renderer."""

    model_config = ConfigDict(extra="forbid")

    browser: Literal["chromium", "firefox", "webkit"] = "chromium"
    launch_options: dict[str, Any] = Field(default_factory=lambda: {"headless": True})
    mermaid_url: str = Field(
        default_factory=lambda: os.environ.get("MERMAIDSMITH_MERMAID_URL", DEFAULT_MERMAID_URL)
    )


class MermaidOptions(BaseModel):
    """Configuration for a :class:`~mermaidsmith.core.transform.MermaidTransformer`."""

    model_config = ConfigDict(extra="forbid")

    strategy: Strategy = Strategy.INLINE_SVG
    error_fallback: Callable[..., Any] | None = None
    mermaid_config: dict[str, Any] | None = None
    css: str | None = None
    prefix: str = "mermaid"
    browser: BrowserOptions = Field(default_factory=BrowserOptions)

    @field_validator("strategy", mode="before")
    @classmethod
    def _check_strategy(cls, value: Any) -> Strategy:
        try:
            return validate_strategy(value)
        except ConfigurationError as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("mermaid_config", mode="before")
    @classmethod
    def _read_mermaid_config(cls, value: Any) -> Any:
        return _load_mermaid_config(value)

    @classmethod
    def from_options(
        cls, options: Mapping[str, Any] | None = None, **overrides: Any
    ) -> MermaidOptions:
        """Build options, turning validation failures into configuration errors."""
        data = {**dict(options or {}), **overrides}
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'options'}: {error['msg']}"
                for error in exc.errors()
            )
            raise ConfigurationError(f"Invalid Mermaid options: {details}") from exc

    def render_options(self) -> RenderOptions:
        """Return the renderer options implied by this configuration."""
        return RenderOptions(
            mermaid_config=self.mermaid_config,
            css=self.css,
            prefix=self.prefix,
            screenshot=self.strategy.screenshot,
        )


__all__ = [
    "DEFAULT_MERMAID_URL",
    "STRATEGIES",
    "BrowserOptions",
    "MermaidOptions",
    "RenderOptions",
    "Strategy",
    "validate_strategy",
]
