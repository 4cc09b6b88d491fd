"""Version-check neutralizer for packaged cli.js bundles.

Finds the function that guards against running an unexpected binary
version and replaces its body with an inert comment, so the traced binary
runs outside its expected install location.

The scan is a byte-level heuristic, not a parse: braces inside string,
regex or comment literals are counted like any other brace. A stricter
tokenizer can replace `find_matching_brace` without touching callers.

Pure computation module with no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass

VERSION_CHECK_MARKER = "It looks like your version of Claude Code"
FUNCTION_KEYWORD = "function"
DISABLED_BODY = " /* Version check disabled */ }"


@dataclass(frozen=True)
class PatchResult:
    """Outcome of a patch attempt.

    // [LAW:dataflow-not-control-flow] Always returned; patched=False means
    // nothing matched and content is the input, unchanged.
    """

    patched: bool
    content: str


def find_matching_brace(text: str, open_index: int) -> int:
    """Return the index of the ``}`` closing the ``{`` at open_index, or -1."""
    depth = 0
    for i in range(open_index, len(text)):
        ch = text[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def locate_and_neutralize(
    text: str,
    marker: str,
    keyword: str = FUNCTION_KEYWORD,
    replacement_body: str = DISABLED_BODY,
) -> PatchResult:
    """Empty the body of the nearest ``keyword`` definition enclosing marker.

    Steps: first occurrence of marker, nearest preceding keyword, first
    ``{`` after the keyword, its matching ``}``. The header text from the
    keyword through ``{`` is kept verbatim; everything after the matched
    ``}`` is kept byte-for-byte.
    """
    unpatched = PatchResult(patched=False, content=text)

    marker_index = text.find(marker)
    if marker_index == -1:
        return unpatched

    # rfind's end bound lets a keyword start at marker_index itself
    keyword_index = text.rfind(keyword, 0, marker_index + len(keyword))
    if keyword_index == -1:
        return unpatched

    open_index = text.find("{", keyword_index)
    if open_index == -1:
        return unpatched

    close_index = find_matching_brace(text, open_index)
    if close_index == -1:
        return unpatched

    header = text[keyword_index : open_index + 1]
    patched = text[:keyword_index] + header + replacement_body + text[close_index + 1 :]
    return PatchResult(patched=True, content=patched)


def patch_version_check(text: str) -> PatchResult:
    """Disable the Claude Code version-check guard in a cli.js bundle."""
    return locate_and_neutralize(text, VERSION_CHECK_MARKER)
