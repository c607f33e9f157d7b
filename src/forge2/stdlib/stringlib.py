"""
String utilities for Forge scripts (the `string` namespace).
"""

import re
from typing import Any, Dict, List

from ..runtime.values import stringify


_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_WORD_START = re.compile(r"\b\w")
_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def capitalize(s: str) -> str:
    """Uppercase the first character, leave the rest unchanged."""
    return s[:1].upper() + s[1:]


def title_case(s: str) -> str:
    return _WORD_START.sub(lambda m: m.group(0).upper(), s)


def _fill(s: str, length, char: str) -> str:
    needed = int(length) - len(s)
    if needed <= 0 or not char:
        return ""
    return (char * (needed // len(char) + 1))[:needed]


def pad_start(s: str, length, char: str = " ") -> str:
    return _fill(s, length, char) + s


def pad_end(s: str, length, char: str = " ") -> str:
    return s + _fill(s, length, char)


def split(s: str, separator: str = None) -> List[str]:
    """Split on a separator; "" splits into characters, no separator gives [s]."""
    if separator is None:
        return [s]
    if separator == "":
        return list(s)
    return s.split(separator)


def join(items: List[Any], separator: str = "") -> str:
    return separator.join(stringify(item) for item in items)


def _index(value):
    return None if value is None else int(value)


def slice_string(s: str, start=None, end=None) -> str:
    return s[_index(start):_index(end)]


def substring(s: str, start, end=None) -> str:
    """Like slice, but negative bounds clamp to 0 and reversed bounds swap."""
    size = len(s)
    start = min(max(int(start), 0), size)
    end = size if end is None else min(max(int(end), 0), size)
    if start > end:
        start, end = end, start
    return s[start:end]


def char_at(s: str, index) -> str:
    index = int(index)
    return s[index] if 0 <= index < len(s) else ""


def char_code_at(s: str, index=0):
    index = int(index)
    return ord(s[index]) if 0 <= index < len(s) else float("nan")


def from_char_code(*codes) -> str:
    return "".join(chr(int(code)) for code in codes)


def to_number(s: str):
    """Parse the leading number of a string; NaN when there is none."""
    match = _FLOAT_PREFIX.match(s)
    if not match:
        return float("nan")
    text = match.group(1)
    if "." in text or "e" in text or "E" in text:
        return float(text)
    return int(text)


def to_int(s: str, radix=10):
    """Parse a leading integer in the given radix; NaN when there is none."""
    radix = int(radix)
    text = s.strip()
    negative = text.startswith("-")
    if text and text[0] in "+-":
        text = text[1:]
    valid = _DIGITS[:radix]
    digits = ""
    for ch in text.lower():
        if ch not in valid:
            break
        digits += ch
    if not digits:
        return float("nan")
    value = int(digits, radix)
    return -value if negative else value


def format_template(template: str, *args) -> str:
    """Replace each {} in turn with the next argument (missing or null: "")."""
    values = iter(args)

    def substitute(_match) -> str:
        value = next(values, None)
        return "" if value is None else stringify(value)

    return re.sub(r"\{\}", substitute, template)


def create_string_namespace() -> Dict[str, Any]:
    """Build the `string` namespace map."""
    return {
        # Case
        "toUpperCase": lambda s: s.upper(),
        "toLowerCase": lambda s: s.lower(),
        "capitalize": capitalize,
        "titleCase": title_case,

        # Trimming
        "trim": lambda s: s.strip(),
        "trimStart": lambda s: s.lstrip(),
        "trimEnd": lambda s: s.rstrip(),

        # Padding
        "padStart": pad_start,
        "padEnd": pad_end,

        # Splitting/Joining
        "split": split,
        "join": join,

        # Search
        "includes": lambda s, search: search in s,
        "startsWith": lambda s, search: s.startswith(search),
        "endsWith": lambda s, search: s.endswith(search),
        "indexOf": lambda s, search: s.find(search),
        "lastIndexOf": lambda s, search: s.rfind(search),

        # Manipulation
        "replace": lambda s, search, replacement: s.replace(search, replacement, 1),
        "replaceAll": lambda s, search, replacement: s.replace(search, replacement),
        "slice": slice_string,
        "substring": substring,
        "repeat": lambda s, count: s * int(count),
        "reverse": lambda s: s[::-1],

        # Info
        "length": len,
        "isEmpty": lambda s: len(s) == 0,
        "charAt": char_at,
        "charCodeAt": char_code_at,

        # Conversion
        "fromCharCode": from_char_code,
        "toNumber": to_number,
        "toInt": to_int,

        # Template
        "format": format_template,
    }
