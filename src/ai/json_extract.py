"""
Locate a JSON object inside free-form model output.

Models wrap their JSON in prose, markdown fences or stray whitespace.
Rather than a greedy regex, each candidate '{' is scanned to its matching
'}' by brace depth (braces inside JSON strings are ignored), and the first
candidate that parses to an object wins.
"""

import json
from typing import Optional


def find_object_end(text: str, start: int) -> Optional[int]:
    """
    Return the index of the '}' closing the object that opens at text[start].

    Returns None when the object is never closed (e.g. truncated output).
    """
    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i

    return None


def extract_json_object(text: str) -> Optional[dict]:
    """
    Extract the first balanced JSON object from text.

    Args:
        text: Raw model response

    Returns:
        The parsed object, or None if no balanced, parseable object exists
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        end = find_object_end(text, start)
        if end is not None:
            try:
                parsed = json.loads(text[start : end + 1])
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, dict):
                return parsed
        start = text.find("{", start + 1)

    return None
