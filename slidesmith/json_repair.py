"""
json_repair.py — Recover JSON from free-form model text.

Gemini is asked for JSON, but what comes back is only *mostly* JSON: fenced in
markdown, trailing commas, `//` notes, Hebrew or English copy with literal
quote characters inside string values, or simply cut off when the output
token budget runs out. `parse()` walks a ladder of strategies, cheapest first,
and returns the first one that json.loads accepts:

  raw             → plain parse of the untouched text
  cleaned         → fences stripped, BOM/control chars, // lines, trailing commas removed
  extracted       → outermost {...} / [...] span
  string-repair   → single-pass state machine that escapes stray quotes/newlines
  truncation      → drops dangling keys, closes open strings and containers
  aggressive      → collapses stray commas, then string + truncation repair again

Every strategy leaves valid JSON untouched, so parse(json.dumps(v)) == v.

Usage:
    from .json_repair import parse
    data = parse(response.text)                      # any JSON value
    direction = parse(response.text, CreativeDirection)  # validated pydantic model
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterator, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import UnparsableOutputError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

LOOKAHEAD_CHARS = 80

_VALID_ESCAPES = set('"\\/bfnrtu')
_HEX_DIGITS = set("0123456789abcdefABCDEF")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_DUPLICATE_COMMAS = re.compile(r",(\s*,)+")
_COMMA_AFTER_OPENER = re.compile(r"([\[{])\s*,")
# A complete number or literal ending its array slot: `1,` `-2.5]` `null,`
_ARRAY_SCALAR = re.compile(r"(-?\d+(\.\d+)?([eE][+-]?\d+)?|true|false|null)\s*(?:[,\]]|$)")


# ── Step 1–2: surface cleanup ─────────────────────────────────────────────────

def strip_code_fences(text: str) -> str:
    """Return the payload of a ```json fenced block, or the text without stray fences."""
    stripped = text.strip()
    blocks = _FENCED_BLOCK.findall(stripped)
    if blocks:
        # Longest block is the payload; shorter ones are usually inline examples
        return max(blocks, key=len).strip()
    stripped = re.sub(r"^```(?:json)?\s*", "", stripped, flags=re.IGNORECASE)
    stripped = re.sub(r"\s*```$", "", stripped)
    return stripped.strip()


def strip_trailing_commas(text: str) -> str:
    """Remove commas that directly precede `}` or `]`, ignoring string contents."""
    out: List[str] = []
    in_string = False
    escaped = False
    pending_comma = -1

    for ch in text:
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch in "}]" and pending_comma >= 0:
            del out[pending_comma]
            pending_comma = -1
        elif ch == ",":
            pending_comma = len(out)
        elif not ch.isspace():
            pending_comma = -1
            if ch == '"':
                in_string = True
        out.append(ch)

    return "".join(out)


def clean_text(text: str) -> str:
    """BOM, control characters, // comment lines and trailing commas."""
    text = text.replace("\ufeff", "")
    text = _CONTROL_CHARS.sub("", text)
    lines = [line for line in text.splitlines() if not line.lstrip().startswith("//")]
    return strip_trailing_commas("\n".join(lines))


# ── Step 4: outermost container ───────────────────────────────────────────────

def extract_outermost(text: str) -> List[str]:
    """Outermost {...} and [...] spans by first/last bracket index, earliest opener first."""
    spans: List[Tuple[int, str]] = []
    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        start = text.find(open_ch)
        end = text.rfind(close_ch)
        if start != -1 and end > start:
            spans.append((start, text[start:end + 1]))
    spans.sort(key=lambda span: span[0])
    return [span for _, span in spans]


def _from_first_opener(text: str) -> str:
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    return text[min(starts):] if starts else ""


# ── Step 5: character-level string repair ─────────────────────────────────────

def _is_closing_quote(text: str, pos: int, in_array: bool = False) -> bool:
    """Classify the quote just before `pos` as closing (True) or interior (False)."""
    window = text[pos:pos + LOOKAHEAD_CHARS].lstrip()
    if not window:
        return True
    ch = window[0]
    if ch in "}]:":
        return True
    if ch == ",":
        rest = window[1:].lstrip()
        if not rest or rest[0] in '"{[}]':
            return True
        return in_array and _ARRAY_SCALAR.match(rest) is not None
    return False


def repair_string_literals(text: str) -> str:
    """
    Escape what breaks JSON strings: raw newlines/tabs, lone backslashes and
    unescaped interior quotes. Outside strings the text is copied unchanged.
    """
    out: List[str] = []
    containers: List[str] = []
    in_string = False
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if not in_string:
            out.append(ch)
            if ch == '"':
                in_string = True
            elif ch in "{[":
                containers.append(ch)
            elif ch in "}]" and containers:
                containers.pop()
            i += 1
            continue

        if ch == "\\":
            nxt = text[i + 1] if i + 1 < n else ""
            hex4 = text[i + 2:i + 6]
            if nxt == "u" and (len(hex4) < 4 or not all(c in _HEX_DIGITS for c in hex4)):
                out.append("\\\\")
                i += 1
            elif nxt and nxt in _VALID_ESCAPES:
                out.append(ch + nxt)
                i += 2
            else:
                out.append("\\\\")
                i += 1
            continue

        if ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        elif ch == '"':
            if _is_closing_quote(text, i + 1, in_array=bool(containers) and containers[-1] == "["):
                out.append('"')
                in_string = False
            else:
                out.append('\\"')
        else:
            out.append(ch)
        i += 1

    if in_string:
        out.append('"')

    return strip_trailing_commas("".join(out))


# ── Step 6: truncation repair ─────────────────────────────────────────────────

def _is_json_value(fragment: str) -> bool:
    try:
        json.loads(fragment)
    except ValueError:
        return False
    return True


def repair_truncation(text: str) -> str:
    """Close what a cut-off response left open: strings, objects, arrays."""
    text = text.rstrip()
    stack: List[str] = []
    marks: List[Tuple[int, str]] = []   # structural chars outside strings
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
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
        elif ch in "{[":
            stack.append(ch)
            marks.append((i, ch))
        elif ch in "}]":
            if stack and stack[-1] == ("{" if ch == "}" else "["):
                stack.pop()
            marks.append((i, ch))
        elif ch in ",:":
            marks.append((i, ch))

    if in_string:
        if escaped:
            text = text[:-1]
        text += '"'

    if not stack:
        return text

    if marks:
        idx, mark = marks[-1]
        tail = text[idx + 1:].strip()
        if stack[-1] == "{":
            if mark in "{," and tail:
                # Key with no colon: drop it and its comma
                text = text[:idx + 1] if mark == "{" else text[:idx]
            elif mark == ":" and not tail:
                # "key": with no value, drop the pair
                if len(marks) >= 2:
                    prev_idx, prev_mark = marks[-2]
                    text = text[:prev_idx + 1] if prev_mark == "{" else text[:prev_idx]
            elif mark == ":" and not _is_json_value(tail):
                text = text[:idx + 1] + " null"
        elif mark in "[," and tail and not _is_json_value(tail):
            text = text[:idx + 1] if mark == "[" else text[:idx]

    text = text.rstrip()
    if text.endswith(","):
        text = text[:-1]
    return text + "".join("}" if c == "{" else "]" for c in reversed(stack))


# ── Step 7: aggressive pass ───────────────────────────────────────────────────

def collapse_commas(text: str) -> str:
    text = _DUPLICATE_COMMAS.sub(",", text)
    return _COMMA_AFTER_OPENER.sub(r"\1", text)


# ── Public API ────────────────────────────────────────────────────────────────

def _snippet(text: str, limit: int = 200) -> str:
    snippet = text.strip().replace("\n", " ")
    return (snippet[:limit] + "...") if len(snippet) > limit else snippet


def _candidates(text: str) -> Iterator[Tuple[str, str]]:
    yield "raw", text

    cleaned = clean_text(strip_code_fences(text))
    yield "cleaned", cleaned

    spans = extract_outermost(cleaned)
    for span in spans:
        yield "extracted", span

    bases: List[str] = []
    for base in [_from_first_opener(cleaned)] + spans:
        if base and base not in bases:
            bases.append(base)

    for base in bases:
        repaired = repair_string_literals(base)
        yield "string-repair", repaired
        yield "truncation", repair_truncation(repaired)

    for base in bases:
        yield "aggressive", repair_truncation(repair_string_literals(collapse_commas(base)))


def parse_any(text: str) -> Any:
    """Repair-parse `text` into a JSON value or raise UnparsableOutputError."""
    if text is None or not text.strip():
        raise UnparsableOutputError("Model returned empty output")

    for strategy, candidate in _candidates(text):
        try:
            value = json.loads(candidate)
        except (ValueError, RecursionError):
            continue
        if strategy != "raw":
            logger.debug(f"JSON recovered via '{strategy}' strategy")
        return value

    snippet = _snippet(text)
    raise UnparsableOutputError(f"No JSON could be recovered. Snippet: {snippet}", snippet)


def parse_value(value: Any, schema: Type[T]) -> T:
    """Validate an already-parsed JSON value into `schema`."""
    try:
        return schema.model_validate(value)
    except ValidationError as e:
        raise UnparsableOutputError(
            f"Parsed JSON does not match {schema.__name__} ({e.error_count()} error(s))",
            _snippet(str(value)),
        ) from e


def parse(text: str, schema: Optional[Type[T]] = None) -> Any:
    """
    Parse model text into JSON; with `schema`, validate into that pydantic model.

    Raises:
        UnparsableOutputError: every strategy failed, or the value does not fit `schema`.
    """
    value = parse_any(text)
    if schema is None:
        return value
    return parse_value(value, schema)
