"""First-JSON-object extraction from noisy model output.

Local LLM output often wraps the answer in logs, prose or an echoed schema.
This only balances braces while respecting string literals; real JSON
validation happens later when the substring is decoded.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ExtractedObject:
    json_object: str
    # True if non-whitespace text surrounds the object.
    has_text_outside: bool


def extract_first_json_object(text: str) -> Optional[ExtractedObject]:
    """Return the first balanced top-level {...} in `text`, or None."""
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    end = None

    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                end = i
                break

    if end is None:
        return None

    outside = text[:start] + text[end + 1:]
    return ExtractedObject(
        json_object=text[start:end + 1],
        has_text_outside=bool(outside.strip()),
    )
