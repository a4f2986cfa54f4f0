"""
Structural repair for truncated JSON returned by the generative backend.

Provides:
- Markdown code-fence stripping
- Closing of unterminated strings, objects and arrays
- Dropping of members cut before their value and of trailing commas
- Parse helper that reports whether repair was needed

Repair never attempts to recover lost content: whatever was cut off stays
cut off, and the value closest to the truncation point keeps its prefix.
"""

import json
import logging
import re
from typing import Any, Tuple

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?")

_CLOSERS = {"{": "}", "[": "]"}
_HEX_DIGITS = set("0123456789abcdefABCDEF")


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` fences some models wrap around JSON output."""
    if not text:
        return ""
    return _FENCE_PATTERN.sub("", text).strip()


def repair_truncated_json(text: str) -> str:
    """
    Close unterminated strings, objects and arrays in a JSON fragment.

    Walks the string once, tracking whether the cursor is inside a quoted
    string (honouring backslash and ``\\uXXXX`` escapes) and a stack of
    ``{``/``[`` opened outside strings. A closer that does not match the top
    of the stack is left in place and ignored. When the scan ends inside a
    string value one quote is appended. An object member cut before its
    value and a trailing comma are dropped, then the missing closers are
    appended in reverse order.

    Applying the function to its own output returns it unchanged.

    Args:
        text: Raw (fence-stripped) backend output

    Returns:
        Structurally closed JSON text
    """
    repaired = text.strip()

    stack = []
    in_string = False
    escaped = False
    hex_left = 0
    escape_start = 0
    string_start = 0
    string_is_key = False
    last = ""

    for index, char in enumerate(repaired):
        if hex_left:
            if char in _HEX_DIGITS:
                hex_left -= 1
                continue
            hex_left = 0
        if escaped:
            escaped = False
            if char == "u":
                hex_left = 4
            continue
        if char == "\\":
            escaped = True
            escape_start = index
            continue
        if char == '"':
            if in_string:
                last = '"'
            else:
                string_start = index
                string_is_key = bool(stack) and stack[-1] == "}" and last in ("{", ",")
            in_string = not in_string
            continue
        if in_string or char.isspace():
            continue
        if char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in ("}", "]") and stack and stack[-1] == char:
            stack.pop()
        last = char

    # A partial escape would swallow the closing quote or fail to decode
    if escaped or hex_left:
        repaired = repaired[:escape_start]

    if string_is_key and (in_string or last in ('"', ":")):
        # Key without a value
        repaired = repaired[:string_start]
    elif in_string:
        repaired += '"'

    stripped = repaired.rstrip()
    if stripped.endswith(","):
        repaired = stripped[:-1]

    while stack:
        repaired += stack.pop()

    return repaired


def parse_json_object(text: str) -> Tuple[Any, bool]:
    """
    Parse backend output, falling back to structural repair.

    Args:
        text: Raw backend output, possibly fenced and truncated

    Returns:
        Tuple of (parsed value, repaired flag)

    Raises:
        json.JSONDecodeError: If the text does not parse even after repair
    """
    cleaned = strip_code_fences(text)

    try:
        return json.loads(cleaned), False
    except json.JSONDecodeError as e:
        logger.warning(f"JSON parse failed ({e.msg} at char {e.pos}), attempting repair")

    repaired = repair_truncated_json(cleaned)
    value = json.loads(repaired)
    logger.info(f"JSON repair successful (closed {repaired[len(cleaned):]!r})")
    return value, True
