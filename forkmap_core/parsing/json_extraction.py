# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
Locate and parse a JSON payload embedded in free-form model output.

Strategies run in order and stop at the first success:
1. the whole (trimmed) text, raw then repaired
2. the first fenced code block
3. the first balanced {...} span inside that code block
4. the first balanced {...} span in the whole text
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from forkmap_core.parsing.json_repair import repair_json

logger = logging.getLogger(__name__)

CODE_BLOCK_RE = re.compile(r"```(?:[A-Za-z0-9_+-]+)?[ \t]*\n?([\s\S]*?)\n?```")


class ExtractionPath(str, Enum):
    """How the payload was found (provenance)."""
    DIRECT = "direct"
    REPAIRED = "repaired"
    CODE_BLOCK = "code_block"
    BRACE_MATCH = "brace_match"
    NONE = "none"


@dataclass(frozen=True)
class ExtractedJson:
    value: Any
    path: ExtractionPath

    @property
    def found(self) -> bool:
        return self.path != ExtractionPath.NONE


_NOT_FOUND = ExtractedJson(value=None, path=ExtractionPath.NONE)


def _try_parse(candidate: str) -> tuple[bool, Any]:
    """Parse JSON, accepting only objects/arrays (or a string wrapping one)."""
    try:
        parsed = json.loads(candidate)
    except (json.JSONDecodeError, ValueError, RecursionError):
        return False, None
    if isinstance(parsed, (dict, list)):
        return True, parsed
    if isinstance(parsed, str):
        try:
            inner = json.loads(parsed)
        except (json.JSONDecodeError, ValueError, RecursionError):
            return False, None
        if isinstance(inner, (dict, list)):
            return True, inner
    return False, None


def _try_parse_with_repair(candidate: str, *, repair: bool = True) -> tuple[bool, Any, bool]:
    """Returns (ok, value, repaired)."""
    ok, value = _try_parse(candidate)
    if ok:
        return True, value, False
    if not repair:
        return False, None, False
    repaired_text = repair_json(candidate)
    if repaired_text and repaired_text != candidate:
        ok, value = _try_parse(repaired_text)
        if ok:
            return True, value, True
    return False, None, False


def extract_code_block(src: str) -> str | None:
    """Contents of the first fenced code block, or None if absent/empty."""
    m = CODE_BLOCK_RE.search(src)
    if not m:
        return None
    content = m.group(1).strip()
    return content or None


def extract_balanced_braces(src: str) -> str | None:
    """First balanced `{...}` span, skipping braces inside quoted strings."""
    start = src.find("{")
    if start == -1:
        return None

    depth = 0
    quote: str | None = None
    esc = False
    for i in range(start, len(src)):
        ch = src[i]
        if quote:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == quote:
                quote = None
            continue
        if ch in ('"', "'"):
            quote = ch
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return src[start:i + 1]
    return None


def extract_json_object(text: str | None, *, repair: bool = True) -> ExtractedJson:
    """
    Find the structured payload in `text`.

    Args:
        text: Arbitrary model output
        repair: Allow the repair pipeline as a second attempt per candidate

    Returns:
        ExtractedJson(value, path); path is NONE only if every strategy failed
    """
    raw = str(text or "").strip()
    if not raw:
        return _NOT_FOUND

    def _hit(value: Any, repaired: bool, path: ExtractionPath) -> ExtractedJson:
        return ExtractedJson(value=value, path=ExtractionPath.REPAIRED if repaired else path)

    ok, value, repaired = _try_parse_with_repair(raw, repair=repair)
    if ok:
        return _hit(value, repaired, ExtractionPath.DIRECT)

    code = extract_code_block(raw)
    if code:
        ok, value, repaired = _try_parse_with_repair(code, repair=repair)
        if ok:
            return _hit(value, repaired, ExtractionPath.CODE_BLOCK)
        brace_in_code = extract_balanced_braces(code)
        if brace_in_code:
            ok, value, repaired = _try_parse_with_repair(brace_in_code, repair=repair)
            if ok:
                return _hit(value, repaired, ExtractionPath.BRACE_MATCH)

    brace = extract_balanced_braces(raw)
    if brace:
        ok, value, repaired = _try_parse_with_repair(brace, repair=repair)
        if ok:
            return _hit(value, repaired, ExtractionPath.BRACE_MATCH)

    logger.debug("[Extract] No JSON payload found in %d chars", len(raw))
    return _NOT_FOUND


def extract_json_from_content(content: str | None, *, repair: bool = True) -> Any | None:
    """
    Value-only wrapper around `extract_json_object`.

    Adds one last resort: the slice between the first `{` and the last `}`.
    """
    if not content:
        return None

    extracted = extract_json_object(content, repair=repair)
    if extracted.found:
        return extracted.value

    text = content.strip()
    code = extract_code_block(text)
    if code:
        text = code

    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last > first:
        try:
            return json.loads(text[first:last + 1])
        except (json.JSONDecodeError, ValueError, RecursionError):
            pass

    return None
