# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
Traversal

Pure reducers over claim status and resolutions, the wire format for the
resulting state, and a session holder binding both to one graph.
"""

from forkmap_core.traversal.engine import (
    EMPTY_PATH_SUMMARY,
    get_active_claims,
    get_claim_availability,
    get_conflict_status,
    get_live_forcing_points,
    get_path_summary,
    get_preferred_claims,
    get_pruned_claims,
    get_resolution,
    init_traversal_state,
    is_traversal_complete,
    reset_traversal_state,
    resolve_conditional,
    resolve_conflict,
    with_conflict_statuses,
)
from forkmap_core.traversal.serialization import (
    deserialize_traversal_state,
    serialize_traversal_state,
)
from forkmap_core.traversal.session import TraversalSession

__all__ = [
    "EMPTY_PATH_SUMMARY",
    "get_active_claims",
    "get_claim_availability",
    "get_conflict_status",
    "get_live_forcing_points",
    "get_path_summary",
    "get_preferred_claims",
    "get_pruned_claims",
    "get_resolution",
    "init_traversal_state",
    "is_traversal_complete",
    "reset_traversal_state",
    "resolve_conditional",
    "resolve_conflict",
    "with_conflict_statuses",
    "deserialize_traversal_state",
    "serialize_traversal_state",
    "TraversalSession",
]
