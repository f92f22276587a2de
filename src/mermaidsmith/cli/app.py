"""Typer application wiring for the mermaidsmith CLI."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
import sys
from typing import Annotated, Any

from bs4 import BeautifulSoup, FeatureNotFound
from bs4.element import Tag
import typer

from mermaidsmith.core.config import Strategy
from mermaidsmith.core.diagnostics import DiagnosticEmitter
from mermaidsmith.core.exceptions import (
    ConfigurationError,
    DiagramRenderError,
    MermaidsmithError,
)
from mermaidsmith.core.files import SourceFile
from mermaidsmith.core.transform import MermaidTransformer

from .state import (
    CliEmitter,
    debug_enabled,
    emit_error,
    emit_warning,
    get_cli_state,
    set_cli_state,
)


RENDERING_PANEL = "Rendering"
DIAGNOSTICS_PANEL = "Diagnostics"


class OnError(str, Enum):
    """What to do with diagrams that fail to render."""

    FAIL = "fail"
    KEEP = "keep"
    REMOVE = "remove"


def _keep_original(node: Tag, diagram: str, error: BaseException, file: SourceFile) -> Tag:
    file.message(error, node, "mermaidsmith:fallback")
    return node


def _remove_diagram(node: Tag, diagram: str, error: BaseException, file: SourceFile) -> None:
    file.message(error, node, "mermaidsmith:fallback")
    return None


_FALLBACKS = {
    OnError.FAIL: None,
    OnError.KEEP: _keep_original,
    OnError.REMOVE: _remove_diagram,
}


app = typer.Typer(
    help="Render Mermaid code blocks embedded in HTML documents.",
    context_settings={"help_option_names": ["--help"]},
)


def _parse_document(html: str, parser: str, emitter: DiagnosticEmitter) -> BeautifulSoup:
    try:
        return BeautifulSoup(html, parser)
    except FeatureNotFound:
        if parser == "html.parser":
            raise
        emitter.event("parser_fallback", {"preferred": parser, "fallback": "html.parser"})
        return BeautifulSoup(html, "html.parser")


def _read_input(source: str) -> tuple[str, Path | None]:
    if source == "-":
        return sys.stdin.read(), None
    path = Path(source)
    try:
        return path.read_text(encoding="utf-8"), path
    except OSError as exc:
        raise typer.BadParameter(f"Unable to read '{source}': {exc}") from exc


@app.command()
def render(
    source: Annotated[
        str,
        typer.Argument(metavar="INPUT", help="HTML document to transform, or '-' for stdin."),
    ],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the result here instead of stdout."),
    ] = None,
    strategy: Annotated[
        Strategy,
        typer.Option(
            "--strategy",
            "-s",
            help="How rendered diagrams are inserted into the document.",
            rich_help_panel=RENDERING_PANEL,
        ),
    ] = Strategy.INLINE_SVG,
    mermaid_config: Annotated[
        Path | None,
        typer.Option(
            "--mermaid-config",
            help="JSON file forwarded to mermaid.initialize.",
            exists=True,
            dir_okay=False,
            rich_help_panel=RENDERING_PANEL,
        ),
    ] = None,
    css: Annotated[
        Path | None,
        typer.Option(
            "--css",
            help="Stylesheet applied while rendering.",
            exists=True,
            dir_okay=False,
            rich_help_panel=RENDERING_PANEL,
        ),
    ] = None,
    prefix: Annotated[
        str,
        typer.Option(
            "--prefix", help="Prefix of generated diagram ids.", rich_help_panel=RENDERING_PANEL
        ),
    ] = "mermaid",
    on_error: Annotated[
        OnError,
        typer.Option(
            "--on-error",
            help="Keep or remove diagrams that fail to render instead of failing.",
            rich_help_panel=DIAGNOSTICS_PANEL,
        ),
    ] = OnError.FAIL,
    parser: Annotated[
        str,
        typer.Option("--parser", help="BeautifulSoup parser backend (html.parser, lxml)."),
    ] = "html.parser",
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase diagnostic verbosity.",
            rich_help_panel=DIAGNOSTICS_PANEL,
        ),
    ] = 0,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show full tracebacks.", rich_help_panel=DIAGNOSTICS_PANEL),
    ] = False,
) -> None:
    """Render Mermaid diagrams found in INPUT."""
    state = set_cli_state(verbosity=verbose, debug=debug)
    html, path = _read_input(source)

    options: dict[str, Any] = {
        "strategy": strategy,
        "prefix": prefix,
        "error_fallback": _FALLBACKS[on_error],
    }
    if mermaid_config is not None:
        options["mermaid_config"] = mermaid_config
    if css is not None:
        options["css"] = css.read_text(encoding="utf-8")

    try:
        transformer = MermaidTransformer(options, emitter=CliEmitter(state))
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    soup = _parse_document(html, parser, transformer.emitter)
    file = SourceFile(path)
    try:
        transformer.run_sync(soup, file)
    except DiagramRenderError as exc:
        for message in exc.messages:
            emit_error(message.reason, exception=message.error)
        raise typer.Exit(code=1) from exc

    for message in file.messages:
        if not message.fatal:
            emit_warning(message.reason)

    rendered = str(soup)
    if output is None:
        sys.stdout.write(rendered)
    else:
        output.write_text(rendered, encoding="utf-8")


def main() -> None:
    """Entry point compatible with console scripts."""
    try:
        app()
    except typer.Exit:
        raise
    except KeyboardInterrupt as exc:
        if debug_enabled():
            raise
        emit_error("Operation cancelled by user.", exception=exc)
        raise typer.Exit(code=1) from exc
    except MermaidsmithError as exc:
        state = get_cli_state()
        if state.show_tracebacks:
            from rich.traceback import Traceback

            tb = Traceback.from_exception(
                type(exc),
                exc,
                exc.__traceback__,
                show_locals=state.verbosity >= 2,
            )
            state.err_console.print(tb)
        else:
            emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc


__all__ = ["OnError", "app", "main"]
