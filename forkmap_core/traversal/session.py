# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
TraversalSession: one graph generation bound to its traversal state.

The reducers in `engine` are pure; this is the small stateful holder a
presentation layer drives. Replacing the graph always starts a fresh state,
because forcing point ids only mean something within one generation.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from forkmap_core.graph.forcing_points import extract_forcing_points
from forkmap_core.schema.forcing_points import ForcingPoint
from forkmap_core.schema.graph import Claim, ClaimGraph
from forkmap_core.schema.traversal import ClaimStatus, Resolution, TraversalState
from forkmap_core.traversal import engine
from forkmap_core.traversal.serialization import (
    deserialize_traversal_state,
    serialize_traversal_state,
)

logger = logging.getLogger(__name__)


class TraversalSession:
    """
    Usage:
        session = TraversalSession.from_graph(graph)
        for fp in session.live_forcing_points():
            ...
        session.resolve_gate("det_ext_1", satisfied=False)
        print(session.path_summary())
    """

    def __init__(
        self,
        claims: list[Claim],
        forcing_points: list[ForcingPoint],
        *,
        graph: Optional[ClaimGraph] = None,
        state: Optional[TraversalState] = None,
    ):
        self.claims = list(claims)
        self.forcing_points = list(forcing_points)
        self.graph = graph
        self.state = state or engine.init_traversal_state(self.claims, graph)

    @classmethod
    def from_graph(cls, graph: ClaimGraph) -> "TraversalSession":
        return cls(list(graph.claims), extract_forcing_points(graph), graph=graph)

    # ─── decisions ──────────────────────────────────────────────────────────

    def resolve_gate(self, forcing_point_id: str, satisfied: bool, user_input: Optional[str] = None) -> TraversalState:
        self.state = engine.resolve_conditional(
            self.state, self.forcing_points, forcing_point_id, satisfied, user_input
        )
        return self.state

    def resolve_forcing_point(
        self,
        forcing_point_id: str,
        selected_claim_id: str,
        selected_label: Optional[str] = None,
    ) -> TraversalState:
        self.state = engine.resolve_conflict(
            self.state, self.forcing_points, forcing_point_id, selected_claim_id, selected_label
        )
        return self.state

    def reset(self) -> TraversalState:
        self.state = engine.reset_traversal_state(self.state)
        return self.state

    def replace_graph(self, graph: ClaimGraph) -> None:
        """Switch to a new graph generation. The old state is discarded, not merged."""
        self.graph = graph
        self.claims = list(graph.claims)
        self.forcing_points = extract_forcing_points(graph)
        self.state = engine.init_traversal_state(self.claims, graph)
        logger.debug("[Traversal] Graph replaced; %d forcing point(s)", len(self.forcing_points))

    # ─── queries ────────────────────────────────────────────────────────────

    def get_resolution(self, forcing_point_id: str) -> Optional[Resolution]:
        return engine.get_resolution(self.state, forcing_point_id)

    def live_forcing_points(self) -> list[ForcingPoint]:
        return engine.get_live_forcing_points(self.forcing_points, self.state)

    def is_complete(self) -> bool:
        return engine.is_traversal_complete(self.forcing_points, self.state)

    def active_claims(self) -> list[Claim]:
        return engine.get_active_claims(self.claims, self.state)

    def preferred_claims(self) -> list[Claim]:
        return engine.get_preferred_claims(self.claims, self.forcing_points, self.state)

    def claim_availability(self) -> dict[str, ClaimStatus]:
        return engine.get_claim_availability(self.forcing_points, self.state)

    def path_summary(self) -> str:
        return engine.get_path_summary(self.state)

    # ─── persistence shape ──────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return serialize_traversal_state(self.state)

    @classmethod
    def from_dict(
        cls,
        data: Any,
        graph: ClaimGraph,
        *,
        allow_mismatch: bool = False,
    ) -> "TraversalSession":
        """
        Rebuild a session over `graph`, restoring `data` when it belongs to it.

        A persisted state is only reused if its claim ids are exactly the
        graph's; otherwise it came from another generation and a fresh state
        is used instead.
        """
        session = cls.from_graph(graph)
        restored = deserialize_traversal_state(data)
        if restored is None:
            logger.debug("[Traversal] No usable persisted state; starting fresh")
            return session

        expected = set(session.state.claim_statuses)
        if set(restored.claim_statuses) != expected and not allow_mismatch:
            logger.warning(
                "[Traversal] Persisted state does not match graph (%d vs %d claims); starting fresh",
                len(restored.claim_statuses), len(expected),
            )
            return session

        statuses = dict(session.state.claim_statuses)
        statuses.update(restored.claim_statuses)
        session.state = TraversalState(
            claim_statuses=statuses,
            resolutions=dict(restored.resolutions),
            path_steps=restored.path_steps,
        )
        return session
