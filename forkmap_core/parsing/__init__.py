# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
Model Output Parsing

Repair, extraction and section splitting for raw model text.
"""

from forkmap_core.parsing.json_repair import (
    fix_invalid_string_escapes,
    quote_unquoted_keys,
    remove_trailing_commas,
    repair_json,
    strip_comments,
)
from forkmap_core.parsing.json_extraction import (
    ExtractedJson,
    ExtractionPath,
    extract_balanced_braces,
    extract_code_block,
    extract_json_from_content,
    extract_json_object,
)
from forkmap_core.parsing.unified_output import (
    NarrativeAnchor,
    UnifiedOutput,
    extract_anchor_positions,
    parse_unified_output,
    strip_escaped_angles,
)

__all__ = [
    "fix_invalid_string_escapes",
    "quote_unquoted_keys",
    "remove_trailing_commas",
    "repair_json",
    "strip_comments",
    "ExtractedJson",
    "ExtractionPath",
    "extract_balanced_braces",
    "extract_code_block",
    "extract_json_from_content",
    "extract_json_object",
    "NarrativeAnchor",
    "UnifiedOutput",
    "extract_anchor_positions",
    "parse_unified_output",
    "strip_escaped_angles",
]
