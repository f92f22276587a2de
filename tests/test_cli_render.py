from __future__ import annotations

import json
from pathlib import Path

from conftest import FakeRenderer, fulfilled, rejected
import pytest
from typer.testing import CliRunner

import mermaidsmith.adapters.playwright as playwright_adapter
from mermaidsmith.cli import app


DOCUMENT = (
    "<html><body><h1>Flow</h1>"
    '<pre><code class="language-mermaid">graph TD\n  A --&gt; B\n</code></pre>'
    "</body></html>"
)


@pytest.fixture
def document(tmp_path: Path) -> Path:
    path = tmp_path / "index.html"
    path.write_text(DOCUMENT, encoding="utf-8")
    return path


def _use_renderer(monkeypatch: pytest.MonkeyPatch, renderer: FakeRenderer) -> None:
    monkeypatch.setattr(playwright_adapter, "create_mermaid_renderer", lambda options: renderer)


def test_pre_mermaid_rewrites_to_stdout(document: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(app, [str(document), "--strategy", "pre-mermaid"])

    assert result.exit_code == 0, result.output
    assert result.stdout == (
        "<html><body><h1>Flow</h1>"
        '<pre class="mermaid">graph TD\n  A --&gt; B\n</pre>'
        "</body></html>"
    )


def test_output_is_written_to_a_file(document: Path, tmp_path: Path) -> None:
    runner = CliRunner()
    target = tmp_path / "out.html"

    result = runner.invoke(
        app, [str(document), "-s", "pre-mermaid", "--output", str(target)]
    )

    assert result.exit_code == 0, result.output
    assert '<pre class="mermaid">' in target.read_text(encoding="utf-8")
    assert result.stdout == ""


def test_reads_from_stdin() -> None:
    runner = CliRunner()

    result = runner.invoke(app, ["-", "-s", "pre-mermaid"], input=DOCUMENT)

    assert result.exit_code == 0, result.output
    assert '<pre class="mermaid">graph TD' in result.stdout


def test_unknown_strategy_is_a_usage_error(document: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(app, [str(document), "--strategy", "pdf"])

    assert result.exit_code == 2


def test_rendering_options_reach_the_renderer(
    document: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    renderer = FakeRenderer()
    _use_renderer(monkeypatch, renderer)
    config = tmp_path / "mermaid.json"
    config.write_text(json.dumps({"theme": "neutral"}), encoding="utf-8")
    stylesheet = tmp_path / "diagram.css"
    stylesheet.write_text(".node rect { fill: #eee; }", encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(
        app,
        [
            str(document),
            "--strategy",
            "img-svg",
            "--mermaid-config",
            str(config),
            "--css",
            str(stylesheet),
            "--prefix",
            "fig",
        ],
    )

    assert result.exit_code == 0, result.output
    ((diagrams, options),) = renderer.calls
    assert diagrams == ["graph TD\n  A --> B\n"]
    assert options.mermaid_config == {"theme": "neutral"}
    assert options.css == ".node rect { fill: #eee; }"
    assert options.prefix == "fig"
    assert '<img alt="Description 0"' in result.stdout


def test_render_failures_exit_with_an_error(
    document: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _use_renderer(monkeypatch, FakeRenderer([rejected("Parse error on line 2")]))
    runner = CliRunner()

    result = runner.invoke(app, [str(document)])

    assert result.exit_code == 1
    assert "Parse error on line 2" in " ".join(result.output.split())
    assert "<html>" not in result.stdout


@pytest.mark.parametrize("mode, kept", [("keep", True), ("remove", False)])
def test_on_error_fallbacks(
    document: Path, monkeypatch: pytest.MonkeyPatch, mode: str, kept: bool
) -> None:
    _use_renderer(monkeypatch, FakeRenderer([rejected("Parse error on line 2")]))
    runner = CliRunner()

    result = runner.invoke(app, [str(document), "--on-error", mode])

    assert result.exit_code == 0, result.output
    assert ('class="language-mermaid"' in result.stdout) is kept
    assert "Parse error on line 2" in " ".join(result.output.split())


def test_successful_render_replaces_the_block(
    document: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _use_renderer(monkeypatch, FakeRenderer([fulfilled(0)]))
    runner = CliRunner()

    result = runner.invoke(app, [str(document)])

    assert result.exit_code == 0, result.output
    assert 'viewBox="0 0 10 20"' in result.stdout
    assert "<pre>" not in result.stdout


def test_unavailable_parser_falls_back_with_a_notice(document: Path) -> None:
    runner = CliRunner()
    args = [str(document), "-s", "pre-mermaid", "--parser", "no-such-parser"]

    quiet = runner.invoke(app, args)
    verbose = runner.invoke(app, [*args, "-v"])

    notice = "Parser 'no-such-parser' unavailable, using 'html.parser'"
    assert quiet.exit_code == 0, quiet.output
    assert notice not in quiet.output
    assert verbose.exit_code == 0, verbose.output
    assert notice in " ".join(verbose.output.split())
    assert '<pre class="mermaid">graph TD' in verbose.stdout
