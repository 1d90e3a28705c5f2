from __future__ import annotations

import pytest

from searchgraph.services.prompt_store import clear_prompt_cache, render_prompt


def test_render_prompt_substitutes_template_values():
    prompt = render_prompt("planner.decompose", question="Who wrote Dune?")
    assert prompt.endswith("## Question\nWho wrote Dune?")
    assert '"nodes"' in prompt


def test_list_entries_are_joined_by_newlines():
    clear_prompt_cache()
    instructions = render_prompt("synthesis.instructions")
    assert "\n- " in instructions
    assert "[id_1][id_2]" in instructions


def test_render_prompt_raises_for_unknown_key():
    with pytest.raises(KeyError):
        render_prompt("missing.prompt.key")


def test_render_prompt_reports_missing_values():
    with pytest.raises(KeyError, match="question"):
        render_prompt("node.adjust_question", context="c")
