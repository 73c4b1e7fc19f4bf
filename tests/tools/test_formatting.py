from __future__ import annotations

from mcp_vmanomaly.tools.formatting import (
    CHARACTER_LIMIT,
    MIN_KEPT_CHARS,
    capacity_percent,
    format_json,
    status_icon,
    truncate_response,
)
from mcp_vmanomaly.vmanomaly.types import DetectionLimits


def test_short_content_is_returned_unchanged():
    assert truncate_response("short") == "short"
    assert truncate_response("x" * CHARACTER_LIMIT) == "x" * CHARACTER_LIMIT


def test_long_content_is_cut_to_limit_with_notice():
    content = "x" * (CHARACTER_LIMIT + 500)

    out = truncate_response(content)

    assert len(out) == CHARACTER_LIMIT
    assert "[Response truncated]" in out
    assert f"was {len(content)} characters" in out


def test_tiny_limit_keeps_minimum_prefix():
    out = truncate_response("y" * 1000, limit=50)

    assert out.startswith("y" * MIN_KEPT_CHARS)
    assert "[Response truncated]" in out


def test_non_positive_limit_disables_truncation():
    content = "z" * 100
    assert truncate_response(content, limit=0) == content


def test_capacity_percent_truncates_and_handles_zero_max():
    assert capacity_percent(2, 3) == 66
    assert capacity_percent(3, 3) == 100
    assert capacity_percent(5, 0) == 0
    assert capacity_percent(1, -1) == 0


def test_status_icons():
    assert status_icon("done") == "✓"
    assert status_icon("error") == "✗"
    assert status_icon("canceled") == "⊘"
    assert status_icon("running") == "⏳"


def test_format_json_renders_models_with_two_space_indent():
    text = format_json(DetectionLimits(max_concurrent=2, running=1, available=1))

    assert text.splitlines()[1] == '  "max_concurrent": 2,'
    assert format_json({"name": "ñ"}) == '{\n  "name": "ñ"\n}'
