"""Unit tests for core/patcher.py - version-check neutralization."""

import pytest

from cchistory.core.patcher import (
    DISABLED_BODY,
    VERSION_CHECK_MARKER,
    PatchResult,
    find_matching_brace,
    locate_and_neutralize,
    patch_version_check,
)


GUARD = (
    "function Xk(A){if(A.v!==B){console.error("
    f'"{VERSION_CHECK_MARKER} is out of date");'
    "process.exit(1)}return!0}"
)


def _brace_balance(text: str) -> int:
    return text.count("{") - text.count("}")


# ─── find_matching_brace ─────────────────────────────────────────────────────


def test_find_matching_brace_flat():
    assert find_matching_brace("a{b}c", 1) == 3


def test_find_matching_brace_nested():
    text = "{ {x} {y{z}} }"
    assert find_matching_brace(text, 0) == len(text) - 1
    assert find_matching_brace(text, 2) == 4


def test_find_matching_brace_unbalanced():
    assert find_matching_brace("{ { }", 0) == -1


# ─── locate_and_neutralize ───────────────────────────────────────────────────


def test_marker_absent_returns_input_unchanged():
    text = "function a(){return 1}"
    result = locate_and_neutralize(text, "not present")
    assert result == PatchResult(patched=False, content=text)
    assert result.content is text


@pytest.mark.parametrize(
    "text",
    [
        "",
        "var x = 1;",
        "function a(){ if (b) { c() } }",
        "{{{{",
    ],
)
def test_patch_version_check_without_marker_is_identity(text):
    result = patch_version_check(text)
    assert result.patched is False
    assert result.content == text


def test_patches_guard_function_body():
    prefix = "var a=1;"
    suffix = ";function next(){return 2}"
    result = patch_version_check(prefix + GUARD + suffix)

    assert result.patched is True
    assert result.content == prefix + "function Xk(A){" + DISABLED_BODY + suffix
    assert VERSION_CHECK_MARKER not in result.content


def test_patched_output_is_brace_balanced_and_keeps_header():
    text = "(()=>{" + GUARD + "})();"
    result = patch_version_check(text)
    assert result.patched
    assert _brace_balance(result.content) == 0
    assert "function Xk(A){" in result.content


def test_uses_nearest_preceding_keyword():
    text = "function outer(){return 1}function inner(){log('MARK')}tail"
    result = locate_and_neutralize(text, "MARK")
    assert result.content == (
        "function outer(){return 1}function inner(){" + DISABLED_BODY + "tail"
    )


def test_bytes_outside_span_preserved():
    before = "/* header */\n" * 50
    after = "\n// trailer ünïcode ✓\n" * 50
    result = patch_version_check(before + GUARD + after)
    assert result.content.startswith(before)
    assert result.content.endswith(after)


def test_only_first_marker_occurrence_is_patched():
    second = GUARD.replace("Xk", "Yk")
    result = patch_version_check(GUARD + second)
    assert result.patched
    assert result.content.endswith(second)


def test_no_preceding_keyword():
    text = f'console.log("{VERSION_CHECK_MARKER}"); function later(){{}}'
    assert patch_version_check(text) == PatchResult(False, text)


def test_no_opening_brace_after_keyword():
    text = f'function f(x) "{VERSION_CHECK_MARKER}"'
    assert patch_version_check(text) == PatchResult(False, text)


def test_unbalanced_body():
    text = f'function f(){{ if (x) {{ "{VERSION_CHECK_MARKER}" }}'
    assert patch_version_check(text) == PatchResult(False, text)


def test_braces_inside_strings_are_counted():
    # Known limitation: the scan is not string-aware, so a "}" literal
    # closes the body early and the remainder of the original body survives.
    text = 'function f(){ var s="}"; warn("MARK"); }rest'
    result = locate_and_neutralize(text, "MARK")
    assert result.patched
    assert result.content == 'function f(){' + DISABLED_BODY + '"; warn("MARK"); }rest'


def test_custom_replacement_body():
    result = locate_and_neutralize("function f(){MARK}", "MARK", replacement_body="}")
    assert result.content == "function f(){}"


def test_repeatable():
    text = "x;" + GUARD
    assert patch_version_check(text) == patch_version_check(text)
