"""Unit tests for core/request_filter.py - classification and tiered selection."""

import pytest

from cchistory.core.records import parse_record
from cchistory.core.request_filter import (
    NoSuitableRequest,
    filter_non_lightweight,
    filter_with_system_prompt,
    filter_with_tools,
    has_system_prompt,
    has_tools,
    is_lightweight_model,
    select_best_request,
    tool_count,
)
from tests.harness import make_record, make_tool, system_blocks

HAIKU = "claude-3-5-haiku-20241022"
SONNET = "claude-sonnet-4-20250514"


def tools(n):
    return [make_tool(f"T{i}") for i in range(n)]


# ─── Predicates ──────────────────────────────────────────────────────────────


class TestPredicates:
    @pytest.mark.parametrize(
        "model,expected",
        [
            (HAIKU, True),
            ("CLAUDE-3-HAIKU", True),
            ("Claude-Haiku-4-5", True),
            (SONNET, False),
            ("claude-opus-4-1", False),
        ],
    )
    def test_is_lightweight_model(self, model, expected):
        assert is_lightweight_model(make_record(model=model)) is expected

    def test_missing_model_is_not_lightweight(self):
        record = parse_record({"request": {"body": {"messages": []}}})
        assert is_lightweight_model(record) is False

    def test_has_tools(self):
        assert has_tools(make_record(tools=tools(1)))
        assert not has_tools(make_record(tools=[]))
        assert not has_tools(make_record())

    def test_has_tools_rejects_non_list(self):
        record = parse_record({"request": {"body": {"model": SONNET, "tools": {"name": "Read"}}}})
        assert has_tools(record) is False

    def test_has_system_prompt(self):
        assert has_system_prompt(make_record(system=system_blocks("x")))
        assert not has_system_prompt(make_record(system=[]))
        assert not has_system_prompt(make_record())

    def test_string_system_is_not_a_block_sequence(self):
        assert has_system_prompt(make_record(system="You are Claude")) is False

    def test_malformed_system_entries_still_count(self):
        record = make_record(tools=tools(1), system=["You are Claude"])
        assert has_system_prompt(record) is True
        assert record.request.system == ()

    def test_malformed_tool_entries_still_count(self):
        record = make_record(tools=["Read", make_tool("Bash")])
        assert has_tools(record) is True
        assert tool_count(record) == 2
        assert [t.name for t in record.request.tools] == ["Bash"]

    def test_predicates_tolerate_empty_record(self):
        record = parse_record({})
        assert not is_lightweight_model(record)
        assert not has_tools(record)
        assert not has_system_prompt(record)


# ─── Filters ─────────────────────────────────────────────────────────────────


def test_filter_non_lightweight_drops_haiku_and_modelless():
    keep = make_record(model=SONNET)
    records = [
        make_record(model=HAIKU),
        keep,
        parse_record({"request": {"body": {"messages": []}}}),
    ]
    assert filter_non_lightweight(records) == [keep]


def test_filters_preserve_order():
    a = make_record(tools=tools(1), system=system_blocks("a"))
    b = make_record(tools=tools(2))
    c = make_record(system=system_blocks("c"))
    assert filter_with_tools([a, b, c]) == [a, b]
    assert filter_with_system_prompt([a, b, c]) == [a, c]


# ─── Selection ───────────────────────────────────────────────────────────────


class TestSelectBestRequest:
    def test_system_prompt_beats_more_tools(self):
        a = make_record(tools=tools(3))
        b = make_record(tools=tools(1), system=system_blocks("sys"))
        assert select_best_request([a, b]) is b

    def test_string_system_entries_beat_more_tools(self):
        a = make_record(tools=tools(3))
        b = make_record(tools=tools(1), system=["sys"])
        assert select_best_request([a, b]) is b

    def test_ranking_counts_malformed_tools(self):
        clean = make_record(tools=tools(2), system=system_blocks("s"))
        noisy = make_record(tools=tools(1) + ["x", None], system=system_blocks("s"))
        assert select_best_request([clean, noisy]) is noisy

    def test_most_tools_within_tier_one(self):
        small = make_record(tools=tools(2), system=system_blocks("s"))
        big = make_record(tools=tools(5), system=system_blocks("s"))
        assert select_best_request([small, big]) is big

    def test_tier_two_most_tools(self):
        small = make_record(tools=tools(1))
        big = make_record(tools=tools(4))
        assert select_best_request([small, big, make_record()]) is big

    def test_tie_goes_to_earliest(self):
        first = make_record(tools=tools(2), system=system_blocks("1"))
        second = make_record(tools=tools(2), system=system_blocks("2"))
        assert select_best_request([first, second]) is first

    def test_tie_stable_across_calls(self):
        records = [make_record(tools=tools(3)) for _ in range(4)]
        picks = {id(select_best_request(records)) for _ in range(5)}
        assert picks == {id(records[0])}

    def test_does_not_reorder_input(self):
        records = [make_record(tools=tools(1)), make_record(tools=tools(3))]
        snapshot = list(records)
        select_best_request(records)
        assert records == snapshot

    def test_tier_three_first_remaining(self):
        first = make_record(content="one")
        second = make_record(content="two", system=system_blocks("s"))
        assert select_best_request([make_record(model=HAIKU), first, second]) is first

    def test_lightweight_excluded_even_with_richest_surface(self):
        haiku = make_record(model=HAIKU, tools=tools(10), system=system_blocks("s"))
        plain = make_record(model=SONNET)
        assert select_best_request([haiku, plain]) is plain

    def test_only_lightweight_raises(self):
        with pytest.raises(NoSuitableRequest):
            select_best_request([make_record(model=HAIKU)])

    def test_empty_raises(self):
        with pytest.raises(NoSuitableRequest, match="0 record"):
            select_best_request([])

    def test_modelless_records_never_selected(self):
        modelless = parse_record({"request": {"body": {"messages": [], "tools": tools(2)}}})
        with pytest.raises(NoSuitableRequest):
            select_best_request([modelless])

    def test_no_suitable_request_is_distinct_error(self):
        assert not issubclass(NoSuitableRequest, ValueError)
        assert issubclass(NoSuitableRequest, LookupError)
