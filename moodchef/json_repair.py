"""Locate and repair JSON embedded in generative-AI replies.

Models asked for "ONLY valid JSON" still wrap it in markdown fences, prefix it
with prose, leave trailing commas and comments, or stop mid-object when they
hit their token limit. ``extract`` finds the most likely JSON span and
``repair`` rewrites the common malformations into something ``json.loads``
accepts. Neither function raises; whether the result actually parses is
checked by the caller.
"""

import re
from collections.abc import Callable

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_FENCED_ANY = re.compile(r"```\s*([\s\S]*?)\s*```")

_FENCE_MARKERS = re.compile(r"```json|```", re.IGNORECASE)
_LEADING_JSON_WORD = re.compile(r"^\s*(?:json\b\s*)+", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",[\s,]*(?=[}\]])")
_BLANK_LINES = re.compile(r"\n\s*\n")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_$][\w$]*)(\s*):")
_BARE_FRACTION = re.compile(r"^(\s*:\s*)(\d+(?:\.\d+)?(?:\s+\d+)?\s*/\s*\d+)")

# Fields whose values models like to write as bare fractions (``1/2``)
_FRACTION_FIELDS = frozenset({'"amount"', '"quantity"'})

_CLOSERS = {"{": "}", "[": "]"}

# A truncated reply is detected by unbalanced braces; its last line is kept
# only when it ends like a complete JSON value.
_COMPLETE_LINE_ENDINGS = ('"', "}", "]")

_MAX_REPAIR_PASSES = 3


def _fenced_json_block(text: str) -> str | None:
    match = _FENCED_JSON.search(text)
    return match.group(1) if match else None


def _fenced_block(text: str) -> str | None:
    match = _FENCED_ANY.search(text)
    return match.group(1) if match else None


def _brace_span(text: str) -> str | None:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start:end + 1]


def _open_brace_tail(text: str) -> str | None:
    """Everything from the first brace on, for replies cut off before closing."""
    start = text.find("{")
    return text[start:] if start != -1 else None


# Tried in order; the first strategy returning non-blank text wins.
EXTRACTION_STRATEGIES: tuple[Callable[[str], str | None], ...] = (
    _fenced_json_block,
    _fenced_block,
    _brace_span,
    _open_brace_tail,
)


def extract(raw_text: str | None) -> str | None:
    """Find the JSON candidate inside a model reply.

    Args:
        raw_text: Raw text returned by the model

    Returns:
        The candidate JSON text, or None if the reply contains nothing JSON-like
    """
    if not raw_text:
        return None
    for strategy in EXTRACTION_STRATEGIES:
        candidate = strategy(raw_text)
        if candidate and candidate.strip():
            return candidate
    return None


def scan_balanced_lines(raw_text: str | None) -> str | None:
    """Last-resort extraction: collect lines from the first one opening an object
    until braces balance again.

    Used when the extracted and repaired candidate still does not parse, e.g.
    when prose after the JSON contains a stray closing brace.
    """
    if not raw_text:
        return None

    json_lines: list[str] = []
    depth = 0
    for line in raw_text.split("\n"):
        if not json_lines and not line.strip().startswith("{"):
            continue
        json_lines.append(line)
        depth += line.count("{") - line.count("}")
        if depth <= 0 and "}" in line:
            break

    return "\n".join(json_lines) if json_lines else None


def _split_strings(text: str) -> list[tuple[bool, str]]:
    """Split text into (is_string_literal, chunk) pairs.

    An unterminated string literal runs to the end of the text.
    """
    chunks: list[tuple[bool, str]] = []
    start = 0
    i = 0
    n = len(text)
    while i < n:
        if text[i] != '"':
            i += 1
            continue
        if i > start:
            chunks.append((False, text[start:i]))
        j = i + 1
        while j < n and text[j] != '"':
            j += 2 if text[j] == "\\" else 1
        end = min(j + 1, n)
        chunks.append((True, text[i:end]))
        start = i = end
    if start < n:
        chunks.append((False, text[start:]))
    return chunks


def _outside_strings(text: str, transform: Callable[[str], str]) -> str:
    return "".join(
        chunk if is_string else transform(chunk)
        for is_string, chunk in _split_strings(text)
    )


def _strip_comments(text: str) -> str:
    """Remove ``/* */`` and ``//`` comments that are not inside string literals."""
    out: list[str] = []
    i = 0
    n = len(text)
    in_string = False
    while i < n:
        ch = text[i]
        if in_string:
            if ch == "\\":
                out.append(text[i:i + 2])
                i += 2
                continue
            if ch == '"':
                in_string = False
            out.append(ch)
            i += 1
        elif ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _quote_fractions(text: str) -> str:
    chunks = _split_strings(text)
    fixed: list[str] = []
    previous = ""
    for is_string, chunk in chunks:
        if not is_string and previous.lower() in _FRACTION_FIELDS:
            chunk = _BARE_FRACTION.sub(r'\1"\2"', chunk, count=1)
        fixed.append(chunk)
        previous = chunk if is_string else ""
    return "".join(fixed)


def _open_structures(text: str) -> tuple[list[str], bool]:
    """Return the stack of unclosed ``{``/``[`` and whether text ends inside a string."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(ch)
        elif ch in "}]" and stack and _CLOSERS[stack[-1]] == ch:
            stack.pop()
    return stack, in_string


def close_truncated(text: str) -> str:
    """Close a reply that was cut off mid-structure.

    If braces/brackets are unbalanced, the last line is dropped unless it ends
    like a complete value, then the missing closers are appended innermost
    first.
    """
    stack, in_string = _open_structures(text)
    if not stack:
        return text

    lines = text.split("\n")
    last = lines[-1].rstrip().rstrip(",").rstrip()
    if not last.endswith(_COMPLETE_LINE_ENDINGS):
        lines.pop()
        text = "\n".join(lines).rstrip()
        stack, in_string = _open_structures(text)

    if in_string:
        text += '"'
    else:
        text = text.rstrip().rstrip(",").rstrip()
        if text.endswith(":"):
            text += " null"

    return text + "".join(_CLOSERS[opener] for opener in reversed(stack))


def _repair_pass(text: str) -> str:
    text = _FENCE_MARKERS.sub("", text)
    text = _LEADING_JSON_WORD.sub("", text)
    text = _strip_comments(text)
    text = _outside_strings(text, lambda chunk: _TRAILING_COMMA.sub("", chunk))
    text = _outside_strings(text, lambda chunk: _BLANK_LINES.sub("\n", chunk))
    text = text.strip()
    text = _outside_strings(text, lambda chunk: _BARE_KEY.sub(r'\1"\2"\3:', chunk))
    text = _quote_fractions(text)
    return close_truncated(text)


def repair(candidate: str | None) -> str:
    """Rewrite common JSON malformations in a model reply.

    Strips fences and a leading ``json`` word, removes comments and trailing
    commas, collapses blank lines, quotes bare keys and bare fraction amounts,
    and closes truncated structures. Applying it twice gives the same result as
    applying it once.

    Args:
        candidate: Text returned by ``extract`` (or any string)

    Returns:
        The repaired text; it is not guaranteed to parse
    """
    text = candidate or ""
    for _ in range(_MAX_REPAIR_PASSES):
        repaired = _repair_pass(text)
        if repaired == text:
            break
        text = repaired
    return text
