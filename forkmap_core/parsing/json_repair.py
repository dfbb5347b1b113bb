# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
Best-effort repair of near-valid JSON emitted by text models.

Each stage is a single left-to-right scan that tracks whether the cursor is
inside a quoted string, so string contents are never touched. Stage order is
fixed: comments and trailing commas go first so key quoting sees a clean
token stream, and escape repair runs last.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

_QUOTES = ('"', "'")
_ALLOWED_ESCAPES = frozenset('"\\/bfnrtu')
_KEY_START = re.compile(r"[A-Za-z_]")
_KEY_CHAR = re.compile(r"[A-Za-z0-9_]")


def strip_comments(src: str) -> str:
    """Remove `// ...` and `/* ... */` outside strings. Line comments keep their newline."""
    out: list[str] = []
    quote: str | None = None
    esc = False
    i = 0
    n = len(src)

    while i < n:
        ch = src[i]
        nxt = src[i + 1] if i + 1 < n else ""

        if quote:
            out.append(ch)
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == quote:
                quote = None
            i += 1
            continue

        if ch in _QUOTES:
            quote = ch
            out.append(ch)
            i += 1
            continue

        if ch == "/" and nxt == "/":
            end = src.find("\n", i)
            if end == -1:
                break
            out.append("\n")
            i = end + 1
            continue

        if ch == "/" and nxt == "*":
            end = src.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue

        out.append(ch)
        i += 1

    return "".join(out)


def remove_trailing_commas(src: str) -> str:
    """Drop a comma whose next non-whitespace character is `}` or `]`."""
    out: list[str] = []
    quote: str | None = None
    esc = False
    n = len(src)

    for i, ch in enumerate(src):
        if quote:
            out.append(ch)
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == quote:
                quote = None
            continue

        if ch in _QUOTES:
            quote = ch
            out.append(ch)
            continue

        if ch == ",":
            j = i + 1
            while j < n and src[j].isspace():
                j += 1
            if j < n and src[j] in "}]":
                continue

        out.append(ch)

    return "".join(out)


def quote_unquoted_keys(src: str) -> str:
    """Wrap bare identifier keys (`{foo: 1}`) in double quotes."""
    out: list[str] = []
    quote: str | None = None
    esc = False
    expecting_key = False
    i = 0
    n = len(src)

    while i < n:
        ch = src[i]

        if quote:
            out.append(ch)
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == quote:
                quote = None
            i += 1
            continue

        if ch in _QUOTES:
            quote = ch
            out.append(ch)
            expecting_key = False
            i += 1
            continue

        if ch in "{,":
            expecting_key = True
            out.append(ch)
            i += 1
            continue

        if expecting_key:
            if ch.isspace():
                out.append(ch)
                i += 1
                continue
            if ch == "}":
                expecting_key = False
                out.append(ch)
                i += 1
                continue
            if _KEY_START.match(ch):
                k = i + 1
                while k < n and _KEY_CHAR.match(src[k]):
                    k += 1
                key = src[i:k]
                j = k
                while j < n and src[j].isspace():
                    j += 1
                expecting_key = False
                if j < n and src[j] == ":":
                    out.append(f'"{key}"{src[k:j]}:')
                    i = j + 1
                else:
                    out.append(key)
                    i = k
                continue
            expecting_key = False

        out.append(ch)
        i += 1

    return "".join(out)


def fix_invalid_string_escapes(src: str) -> str:
    r"""Inside strings, turn `\(` style invalid escapes into the bare character."""
    out: list[str] = []
    quote: str | None = None
    esc = False
    i = 0
    n = len(src)

    while i < n:
        ch = src[i]
        nxt = src[i + 1] if i + 1 < n else ""

        if quote:
            if esc:
                esc = False
                out.append(ch)
                i += 1
                continue
            if ch == "\\":
                # the string's own delimiter keeps its backslash
                if nxt and nxt not in _ALLOWED_ESCAPES and nxt != quote:
                    out.append(nxt)
                    i += 2
                    continue
                esc = True
                out.append(ch)
                i += 1
                continue
            out.append(ch)
            if ch == quote:
                quote = None
            i += 1
            continue

        out.append(ch)
        if ch in _QUOTES:
            quote = ch
            esc = False
        i += 1

    return "".join(out)


def repair_json(text: str | None) -> str:
    """
    Run the full repair pipeline. Never raises; returns "" for empty input.

    Example:
        repair_json('{foo: 1,}') == '{"foo": 1}'
    """
    src = str(text or "")
    if not src:
        return ""

    repaired = fix_invalid_string_escapes(
        quote_unquoted_keys(remove_trailing_commas(strip_comments(src)))
    )
    if repaired != src:
        logger.debug("[Repair] Rewrote JSON text (%d -> %d chars)", len(src), len(repaired))
    return repaired
