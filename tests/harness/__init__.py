"""Test harness for cchistory.

Re-exports the builders for convenient imports:
    from tests.harness import make_raw, make_record, make_tool, ...
"""

from tests.harness.builders import (
    make_raw,
    make_record,
    make_tool,
    system_blocks,
    to_jsonl,
)

__all__ = [
    "make_raw",
    "make_record",
    "make_tool",
    "system_blocks",
    "to_jsonl",
]
