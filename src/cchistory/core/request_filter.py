"""Classification and selection of captured API requests.

Pure functions over LoggedRecord. A traced session issues several calls:
lightweight-model housekeeping (quota checks, topic detection) and the
main conversational call that carries the full system prompt and tool
surface. select_best_request picks the latter.
"""

from __future__ import annotations

from collections.abc import Sequence

from cchistory.core.records import LoggedRecord

LIGHTWEIGHT_MODEL_MARKER = "haiku"


class NoSuitableRequest(LookupError):
    """No record survives selection: the log holds only housekeeping calls."""


# ─── Predicates ───────────────────────────────────────────────────────────────


def is_lightweight_model(record: LoggedRecord) -> bool:
    model = record.request.model
    return bool(model) and LIGHTWEIGHT_MODEL_MARKER in model.lower()


def has_tools(record: LoggedRecord) -> bool:
    return tool_count(record) > 0


def has_system_prompt(record: LoggedRecord) -> bool:
    return (record.request.system_entries or 0) > 0


def tool_count(record: LoggedRecord) -> int:
    """Entries in the raw tools list, malformed ones included."""
    return record.request.tool_entries or 0


# ─── Filters ──────────────────────────────────────────────────────────────────


def filter_non_lightweight(records: Sequence[LoggedRecord]) -> list[LoggedRecord]:
    """Drop lightweight-model records and records with no model at all."""
    return [r for r in records if r.request.model and not is_lightweight_model(r)]


def filter_with_tools(records: Sequence[LoggedRecord]) -> list[LoggedRecord]:
    return [r for r in records if has_tools(r)]


def filter_with_system_prompt(records: Sequence[LoggedRecord]) -> list[LoggedRecord]:
    return [r for r in records if has_system_prompt(r)]


def _most_tools(records: list[LoggedRecord]) -> LoggedRecord:
    # sorted() is stable with reverse=True, so the earliest maximal record wins
    return sorted(records, key=tool_count, reverse=True)[0]


# ─── Selection ────────────────────────────────────────────────────────────────


def select_best_request(records: Sequence[LoggedRecord]) -> LoggedRecord:
    """Pick the most representative conversational request.

    Tiers, in order:
      1. tools and system prompt, most tools first
      2. tools only, most tools first
      3. first remaining record in log order
    Lightweight-model records never reach any tier.

    Raises:
        NoSuitableRequest: every record was excluded
    """
    candidates = filter_non_lightweight(records)
    with_tools = filter_with_tools(candidates)

    if with_tools:
        with_system = filter_with_system_prompt(with_tools)
        if with_system:
            return _most_tools(with_system)
        return _most_tools(with_tools)

    if candidates:
        return candidates[0]

    raise NoSuitableRequest(
        f"No non-{LIGHTWEIGHT_MODEL_MARKER} request found in the log "
        f"({len(records)} record(s) inspected)"
    )
