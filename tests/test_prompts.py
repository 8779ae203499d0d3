import pytest

from calendar_sql.prompts import Strategy, build_prompt, build_summary_prompt


@pytest.mark.parametrize("strategy", list(Strategy))
def test_prompt_contains_user_input(strategy):
    prompt = build_prompt("show all events for user 3", strategy)
    assert "show all events for user 3" in prompt


def test_zero_shot_is_just_the_request():
    prompt = build_prompt("list users", Strategy.ZERO_SHOT)
    assert prompt == "Generate an SQL query for the following request: list users"


@pytest.mark.parametrize("strategy", [Strategy.SINGLE_DOMAIN, Strategy.CROSS_DOMAIN])
def test_schema_strategies_mention_all_tables(strategy):
    prompt = build_prompt("list users", strategy)
    for table in ("user", "event", "task"):
        assert table in prompt
    assert "isCompleted" in prompt
    assert prompt.endswith("Generate an SQL query for the following request: list users")


def test_cross_domain_extends_single_domain():
    single = build_prompt("x", Strategy.SINGLE_DOMAIN)
    cross = build_prompt("x", Strategy.CROSS_DOMAIN)
    assert cross.endswith(single)
    assert len(cross) > len(single)


def test_empty_input_still_builds_a_prompt():
    assert build_prompt("", "zero-shot") == "Generate an SQL query for the following request: "


@pytest.mark.parametrize("value", ["single-domain", "SINGLE_DOMAIN", " Single-Domain "])
def test_strategy_parse_accepts_names(value):
    assert Strategy.parse(value) is Strategy.SINGLE_DOMAIN


def test_strategy_parse_rejects_unknown():
    with pytest.raises(ValueError, match="few-shot"):
        Strategy.parse("few-shot")


def test_summary_prompt_includes_results():
    prompt = build_summary_prompt('[[1, "Event 5"]]')
    assert prompt.endswith('[[1, "Event 5"]]')
    assert "summary" in prompt
