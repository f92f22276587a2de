from __future__ import annotations

import json
from pathlib import Path

import pytest

from mermaidsmith.core.config import (
    DEFAULT_MERMAID_URL,
    STRATEGIES,
    BrowserOptions,
    MermaidOptions,
    Strategy,
    validate_strategy,
)
from mermaidsmith.core.exceptions import ConfigurationError


def test_defaults() -> None:
    options = MermaidOptions.from_options()

    assert options.strategy is Strategy.INLINE_SVG
    assert options.error_fallback is None
    assert options.prefix == "mermaid"
    assert options.browser.browser == "chromium"
    assert options.browser.launch_options == {"headless": True}


def test_strategies_are_listed_in_a_stable_order() -> None:
    assert STRATEGIES == ("img-png", "img-svg", "inline-svg", "pre-mermaid")


@pytest.mark.parametrize("value", list(STRATEGIES))
def test_validate_strategy_accepts_every_name(value: str) -> None:
    assert validate_strategy(value).value == value


def test_validate_strategy_defaults_to_inline_svg() -> None:
    assert validate_strategy(None) is Strategy.INLINE_SVG


@pytest.mark.parametrize("value", ["pdf", "IMG-PNG", "", 3])
def test_validate_strategy_rejects_unknown_values(value: object) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        validate_strategy(value)  # type: ignore[arg-type]

    assert str(excinfo.value) == (
        "Expected strategy to be one of img-png, img-svg, inline-svg, pre-mermaid, "
        f"got: {value}"
    )


def test_only_img_png_requests_screenshots() -> None:
    assert [strategy.value for strategy in Strategy if strategy.screenshot] == ["img-png"]
    assert not Strategy.PRE_MERMAID.requires_rendering
    assert MermaidOptions.from_options(strategy="img-png").render_options().screenshot


def test_render_options_carry_rendering_settings() -> None:
    options = MermaidOptions.from_options(
        {"mermaid_config": {"theme": "forest"}, "css": "svg { color: red }"}, prefix="fig"
    )

    render = options.render_options()

    assert render.mermaid_config == {"theme": "forest"}
    assert render.css == "svg { color: red }"
    assert render.prefix == "fig"
    assert render.screenshot is False


def test_unknown_options_are_rejected() -> None:
    with pytest.raises(ConfigurationError, match="Invalid Mermaid options: theme"):
        MermaidOptions.from_options({"theme": "dark"})


def test_error_fallback_must_be_callable() -> None:
    with pytest.raises(ConfigurationError, match="error_fallback"):
        MermaidOptions.from_options(error_fallback="remove")


def test_invalid_strategy_reports_the_allowed_values() -> None:
    with pytest.raises(ConfigurationError, match="strategy") as excinfo:
        MermaidOptions.from_options(strategy="png")

    assert "img-png, img-svg, inline-svg, pre-mermaid" in str(excinfo.value)


def test_mermaid_config_is_loaded_from_json_files(tmp_path: Path) -> None:
    config = tmp_path / "mermaid.json"
    config.write_text(json.dumps({"theme": "dark", "flowchart": {"curve": "basis"}}))

    options = MermaidOptions.from_options(mermaid_config=str(config))

    assert options.mermaid_config == {"theme": "dark", "flowchart": {"curve": "basis"}}


@pytest.mark.parametrize(
    "content, message",
    [("{not json", "not valid JSON"), ("[1, 2]", "must contain a JSON object")],
)
def test_invalid_mermaid_config_files(tmp_path: Path, content: str, message: str) -> None:
    config = tmp_path / "mermaid.json"
    config.write_text(content)

    with pytest.raises(ConfigurationError, match=message):
        MermaidOptions.from_options(mermaid_config=config)


def test_missing_mermaid_config_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="Unable to read Mermaid configuration"):
        MermaidOptions.from_options(mermaid_config=tmp_path / "missing.json")


def test_mermaid_url_can_come_from_the_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MERMAIDSMITH_MERMAID_URL", raising=False)
    assert BrowserOptions().mermaid_url == DEFAULT_MERMAID_URL

    monkeypatch.setenv("MERMAIDSMITH_MERMAID_URL", "file:///opt/mermaid.min.js")
    assert BrowserOptions().mermaid_url == "file:///opt/mermaid.min.js"


def test_browser_options_validate_the_browser_type() -> None:
    with pytest.raises(ConfigurationError, match="browser"):
        MermaidOptions.from_options(browser={"browser": "safari"})

    options = MermaidOptions.from_options(browser={"browser": "firefox"})
    assert options.browser.browser == "firefox"
