# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
Unified mapper output parsing.

The mapping model answers with two sections: a structured map and a prose
narrative. They are delimited either by tags (`<map>`, `<narrative>`, legacy
`<raw_narrative>`) or by markdown headings (`# THE MAP`, `# THE NARRATIVE`).
When a tag appears more than once the last occurrence wins; it is treated as
the model correcting an earlier attempt.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from forkmap_core.parsing.json_extraction import (
    CODE_BLOCK_RE,
    ExtractionPath,
    extract_balanced_braces,
    extract_json_from_content,
    extract_json_object,
)

logger = logging.getLogger(__name__)

_ESCAPED_ANGLE_RE = re.compile(r"\\+(?=[<>])")
_HEADING_RE = re.compile(r"^#{1,6}\s*THE\s*(MAP|NARRATIVE)\b.*$", re.IGNORECASE | re.MULTILINE)
_MAP_TAG_RE = re.compile(r"<map\b[^>]*>([\s\S]*?)</map\s*>", re.IGNORECASE)
_MAP_OPEN_RE = re.compile(r"<map\b[^>]*>", re.IGNORECASE)
_NARRATIVE_TAG_RE = re.compile(r"<narrative\b[^>]*>([\s\S]*?)</narrative\s*>", re.IGNORECASE)
_RAW_NARRATIVE_TAG_RE = re.compile(r"<raw_narrative\b[^>]*>([\s\S]*?)</raw_narrative\s*>", re.IGNORECASE)
_STRAY_NARRATIVE_TAGS_RE = re.compile(r"</?(?:raw_)?narrative\b[^>]*>", re.IGNORECASE)
_ANCHOR_RE = re.compile(r"\*\*\[([^\]|]+)\|([^\]]+)\]\*\*|\[([^\]|]+)\|([^\]]+)\]")


@dataclass(frozen=True)
class NarrativeAnchor:
    """An inline `[label|claim_id]` reference in the narrative."""
    label: str
    id: str
    position: int


@dataclass(frozen=True)
class _HeadingBlock:
    kind: str  # "map" | "narrative"
    header_start: int
    content_start: int


@dataclass(frozen=True)
class _Section:
    content: str
    start: int
    end: int


@dataclass
class UnifiedOutput:
    """
    Sections recovered from one model response.

    `map_value` is the raw JSON-like value (not yet validated); `map_source`
    records where it came from: "tag", "heading", "fallback" or None.
    """
    map_value: Any = None
    map_source: str | None = None
    extraction_path: ExtractionPath = ExtractionPath.NONE
    narrative: str = ""
    anchors: list[NarrativeAnchor] = field(default_factory=list)

    @property
    def has_map(self) -> bool:
        return self.map_value is not None


def strip_escaped_angles(text: str) -> str:
    """Drop backslashes that directly precede `<` or `>` (escaping artifacts)."""
    return _ESCAPED_ANGLE_RE.sub("", text)


def extract_anchor_positions(narrative: str) -> list[NarrativeAnchor]:
    anchors: list[NarrativeAnchor] = []
    for m in _ANCHOR_RE.finditer(narrative or ""):
        label = (m.group(1) or m.group(3) or "").strip()
        anchor_id = (m.group(2) or m.group(4) or "").strip()
        if not label or not anchor_id:
            continue
        anchors.append(NarrativeAnchor(label=label, id=anchor_id, position=m.start()))
    return anchors


def _heading_blocks(text: str) -> list[_HeadingBlock]:
    blocks: list[_HeadingBlock] = []
    for m in _HEADING_RE.finditer(text):
        line_end = text.find("\n", m.start())
        content_start = len(text) if line_end == -1 else line_end + 1
        kind = "map" if m.group(1).lower() == "map" else "narrative"
        blocks.append(_HeadingBlock(kind=kind, header_start=m.start(), content_start=content_start))
    blocks.sort(key=lambda b: b.header_start)
    return blocks


def _heading_section(text: str, blocks: list[_HeadingBlock], kind: str) -> _Section | None:
    """Content under the LAST heading of `kind`, up to the next heading."""
    idx = next((i for i in range(len(blocks) - 1, -1, -1) if blocks[i].kind == kind), None)
    if idx is None:
        return None
    block = blocks[idx]
    end = blocks[idx + 1].header_start if idx + 1 < len(blocks) else len(text)
    return _Section(content=text[block.content_start:end].strip(), start=block.header_start, end=end)


def _last_match_content(pattern: re.Pattern[str], text: str) -> str | None:
    matches = list(pattern.finditer(text))
    if not matches:
        return None
    return matches[-1].group(1)


def _looks_like_map(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("claims"), list)


def _payload_span(text: str) -> tuple[int, int] | None:
    """Span of the code block or balanced-brace payload inside `text`."""
    m = CODE_BLOCK_RE.search(text)
    if m:
        return m.start(), m.end()
    brace = extract_balanced_braces(text)
    if brace:
        start = text.find(brace)
        return start, start + len(brace)
    return None


def parse_unified_output(text: str | None, *, repair: bool = True) -> UnifiedOutput:
    """
    Split a model response into its map payload and narrative.

    Map lookup order: `<map>` tags (last usable match first), an unclosed
    `<map>` running to the end of the text, a `THE MAP` heading section,
    then any JSON payload in the whole text.
    """
    if not text:
        return UnifiedOutput()

    normalized = strip_escaped_angles(text)
    blocks = _heading_blocks(normalized)
    map_section = _heading_section(normalized, blocks, "map")
    narrative_section = _heading_section(normalized, blocks, "narrative")

    result = UnifiedOutput()
    map_span: tuple[int, int] | None = None

    map_matches = list(_MAP_TAG_RE.finditer(normalized))
    if map_matches:
        for m in reversed(map_matches):
            content = m.group(1)
            if not content or not content.strip():
                continue
            extracted = extract_json_object(content, repair=repair)
            value = extracted.value if extracted.found else extract_json_from_content(content, repair=repair)
            if _looks_like_map(value):
                result.map_value = value
                result.map_source = "tag"
                result.extraction_path = extracted.path if extracted.found else ExtractionPath.BRACE_MATCH
                map_span = (m.start(), m.end())
                break
    else:
        open_m = _MAP_OPEN_RE.search(normalized)
        if open_m:
            content = normalized[open_m.end():]
            extracted = extract_json_object(content, repair=repair)
            if extracted.found and _looks_like_map(extracted.value):
                result.map_value = extracted.value
                result.map_source = "tag"
                result.extraction_path = extracted.path
                map_span = (open_m.start(), len(normalized))

    if not result.has_map and map_section and map_section.content:
        extracted = extract_json_object(map_section.content, repair=repair)
        if extracted.found and _looks_like_map(extracted.value):
            result.map_value = extracted.value
            result.map_source = "heading"
            result.extraction_path = extracted.path
            map_span = (map_section.start, map_section.end)

    if not result.has_map:
        extracted = extract_json_object(normalized, repair=repair)
        if extracted.found and isinstance(extracted.value, dict):
            result.map_value = extracted.value
            result.map_source = "fallback"
            result.extraction_path = extracted.path

    candidates: list[str] = []
    narrative_tag = _last_match_content(_NARRATIVE_TAG_RE, normalized)
    if narrative_tag:
        candidates.append(narrative_tag.strip())
    raw_narrative_tag = _last_match_content(_RAW_NARRATIVE_TAG_RE, normalized)
    if raw_narrative_tag:
        candidates.append(raw_narrative_tag.strip())
    if narrative_section and narrative_section.content:
        candidates.append(_STRAY_NARRATIVE_TAGS_RE.sub("", narrative_section.content).strip())

    candidates.sort(key=len, reverse=True)
    narrative = next((c for c in candidates if c.strip()), "")

    if not narrative:
        if map_span is not None:
            narrative = (normalized[:map_span[0]] + normalized[map_span[1]:]).strip()
        elif result.map_source == "fallback":
            span = None if result.extraction_path == ExtractionPath.DIRECT else _payload_span(normalized)
            if span is not None:
                narrative = (normalized[:span[0]] + normalized[span[1]:]).strip()
        else:
            narrative = normalized.strip()

    result.narrative = narrative
    result.anchors = extract_anchor_positions(narrative)

    if not result.has_map:
        logger.warning("[Extract] No map payload found in model output (%d chars)", len(normalized))
    else:
        logger.debug(
            "[Extract] Map found via %s (%s); narrative %d chars, %d anchors",
            result.map_source, result.extraction_path.value, len(narrative), len(result.anchors),
        )
    return result
