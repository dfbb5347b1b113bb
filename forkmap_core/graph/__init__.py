# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
Claim Graph Package

- Normalizer: validates a raw map and compiles determinants into edges/gates
- Forcing points: ordered decisions derived from the canonical graph
"""

from forkmap_core.graph.normalizer import (
    ClaimGraphNormalizer,
    CompiledDeterminants,
    compile_determinants,
    normalize_claim_graph,
    sanitize_conditionals,
    sanitize_edges,
)
from forkmap_core.graph.forcing_points import (
    PLACEHOLDER_QUESTION,
    conflict_forcing_point_id,
    extract_forcing_points,
    merge_conditionals,
)

__all__ = [
    "ClaimGraphNormalizer",
    "CompiledDeterminants",
    "compile_determinants",
    "normalize_claim_graph",
    "sanitize_conditionals",
    "sanitize_edges",
    "PLACEHOLDER_QUESTION",
    "conflict_forcing_point_id",
    "extract_forcing_points",
    "merge_conditionals",
]
