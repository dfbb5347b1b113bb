# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
Forkmap Core Schema Module

- Graph: canonical claims, conflict edges, gates and determinants
- Forcing points: gates and conflicts derived from a graph
- Traversal: claim statuses, resolutions and the decision log
- Results: normalization outcome contract
"""

# Graph
from forkmap_core.schema.graph import (
    ClaimType,
    ClaimRole,
    EdgeType,
    Claim,
    Edge,
    ConditionalPruner,
    IntrinsicDeterminant,
    ExtrinsicDeterminant,
    Determinant,
    ClaimGraph,
    pair_key_for,
)

# Forcing points
from forkmap_core.schema.forcing_points import (
    CONDITIONAL_TIER,
    CONFLICT_TIER,
    ConflictStatus,
    ConflictOption,
    ConditionalForcingPoint,
    ConflictForcingPoint,
    ForcingPoint,
    FORCING_POINTS_ADAPTER,
)

# Traversal
from forkmap_core.schema.traversal import (
    ClaimStatus,
    ConditionalResolution,
    ConflictResolution,
    Resolution,
    RESOLUTION_ADAPTER,
    TraversalState,
)

# Results
from forkmap_core.schema.results import (
    MappingIssue,
    NormalizationResult,
)

from forkmap_core.schema.serialization import SchemaModel, dump_schema, load_schema


__all__ = [
    # Graph
    "ClaimType", "ClaimRole", "EdgeType", "Claim", "Edge", "ConditionalPruner",
    "IntrinsicDeterminant", "ExtrinsicDeterminant", "Determinant", "ClaimGraph",
    "pair_key_for",
    # Forcing points
    "CONDITIONAL_TIER", "CONFLICT_TIER", "ConflictStatus", "ConflictOption",
    "ConditionalForcingPoint", "ConflictForcingPoint", "ForcingPoint",
    "FORCING_POINTS_ADAPTER",
    # Traversal
    "ClaimStatus", "ConditionalResolution", "ConflictResolution", "Resolution",
    "RESOLUTION_ADAPTER", "TraversalState",
    # Results
    "MappingIssue", "NormalizationResult",
    # Serialization
    "SchemaModel", "dump_schema", "load_schema",
]
