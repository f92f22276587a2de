"""BeautifulSoup helpers used to classify, extract and splice diagram nodes."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
import re
from typing import Any, cast
from urllib.parse import quote

from bs4 import BeautifulSoup, FeatureNotFound
from bs4.element import NavigableString, PageElement, PreformattedString, Tag

from .config import Strategy
from .exceptions import InvalidNodeError, TransformerExecutionError


BLOCK_CLASS = "mermaid"
LANGUAGE_CLASS = "language-mermaid"

_CLASS_SEPARATOR = re.compile(r"[\s,]+")
_WHITESPACE = re.compile(r"\s+")
_SVG_URI_SAFE = " '=:/!*(),;"


def parse_class_tokens(value: Any) -> list[str]:
    """Return the class tokens held by a BeautifulSoup ``class`` attribute.

    Parsers store ``class`` as a list of tokens, while hand-built trees often
    carry a raw string. Strings are split on whitespace and commas; any other
    shape yields no tokens.
    """
    if isinstance(value, str):
        return [token for token in _CLASS_SEPARATOR.split(value) if token]
    if isinstance(value, (list, tuple)):
        return [cast(str, item) for item in value if isinstance(item, str)]
    return []


def is_mermaid_element(element: Tag, strategy: Strategy) -> bool:
    """Return whether ``element`` holds Mermaid source under ``strategy``."""
    if element.name == "pre":
        # <pre class="mermaid"> is already the passthrough output.
        if strategy is Strategy.PRE_MERMAID:
            return False
        marker = BLOCK_CLASS
    elif element.name == "code":
        marker = LANGUAGE_CLASS
    else:
        return False

    return marker in parse_class_tokens(element.get("class"))


def iter_elements(root: Tag) -> Iterator[tuple[Tag, tuple[Tag, ...]]]:
    """Yield every tag below ``root`` depth-first with its ancestor chain.

    The chain starts with ``root`` and ends with the direct parent.
    """
    stack: list[tuple[Tag, tuple[Tag, ...]]] = [
        (child, (root,)) for child in reversed(root.contents) if isinstance(child, Tag)
    ]
    while stack:
        node, ancestors = stack.pop()
        yield node, ancestors
        lineage = (*ancestors, node)
        stack.extend(
            (child, lineage) for child in reversed(node.contents) if isinstance(child, Tag)
        )


def is_blank_text(node: PageElement) -> bool:
    """Return True for plain text nodes made only of whitespace."""
    if not isinstance(node, NavigableString) or isinstance(node, PreformattedString):
        return False
    return not str(node).strip()


def only_child_of(parent: Tag, node: Tag) -> bool:
    """Return True when ``node`` is the only meaningful child of ``parent``."""
    for child in parent.contents:
        if child is node:
            continue
        if not is_blank_text(child):
            return False
    return True


def extract_text(node: Tag) -> str:
    """Return the text content of ``node`` with whitespace kept verbatim."""
    return node.get_text()


def index_of(parent: Tag, node: PageElement) -> int | None:
    """Return the position of ``node`` among ``parent`` contents, by identity."""
    for index, child in enumerate(parent.contents):
        if child is node:
            return index
    return None


def splice(parent: Tag, node: PageElement, replacement: PageElement | None) -> bool:
    """Replace ``node`` in ``parent`` with ``replacement`` or remove it.

    The index is resolved right before mutating. Returns False when ``node`` is
    no longer a child of ``parent``.
    """
    index = index_of(parent, node)
    if index is None:
        return False
    node.extract()
    if replacement is not None:
        parent.insert(index, replacement)
    return True


def owner_document(node: PageElement) -> BeautifulSoup:
    """Return the soup owning ``node`` or a detached one usable as a tag factory."""
    current: PageElement | None = node
    while current is not None:
        if isinstance(current, BeautifulSoup):
            return current
        current = current.parent
    return BeautifulSoup("", "html.parser")


def build_tag(
    context: PageElement,
    name: str,
    attrs: dict[str, Any] | None = None,
    *,
    text: str | None = None,
) -> Tag:
    """Create a tag owned by the document of ``context``.

    Attributes set to None are dropped; numbers are rendered as strings.
    """
    document = owner_document(context)
    values: dict[str, Any] = {}
    for key, value in (attrs or {}).items():
        if value is None:
            continue
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        values[key] = value if isinstance(value, (str, list)) else str(value)
    tag = document.new_tag(name, attrs=values)
    if text is not None:
        tag.append(NavigableString(text))
    return tag


def parse_fragment(markup: str) -> Tag:
    """Parse ``markup`` as an HTML fragment and return its first element.

    html5lib follows the browser rules for foreign content: SVG attributes keep
    their case (``viewBox``), HTML inside ``<foreignObject>`` keeps explicit end
    tags, and entities such as ``&nbsp;`` are decoded.
    """
    try:
        document = BeautifulSoup(markup, "html5lib")
    except FeatureNotFound as exc:
        raise TransformerExecutionError(
            "Inline SVG output requires the 'html5lib' package."
        ) from exc

    container = document.body if document.body is not None else document
    element = next(_child_tags(container.contents), None)
    if element is None:
        raise InvalidNodeError("Rendered diagram markup does not contain an element")
    return element.extract()


def _child_tags(children: Iterable[PageElement]) -> Iterator[Tag]:
    return (child for child in children if isinstance(child, Tag))


def svg_to_data_uri(svg: str) -> str:
    """Return a compact, percent-encoded ``data:`` URI for SVG markup."""
    body = _WHITESPACE.sub(" ", svg.strip())
    return "data:image/svg+xml," + quote(body, safe=_SVG_URI_SAFE)


__all__ = [
    "BLOCK_CLASS",
    "LANGUAGE_CLASS",
    "build_tag",
    "extract_text",
    "index_of",
    "is_blank_text",
    "is_mermaid_element",
    "iter_elements",
    "only_child_of",
    "owner_document",
    "parse_class_tokens",
    "parse_fragment",
    "splice",
    "svg_to_data_uri",
]
