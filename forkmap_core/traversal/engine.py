# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
Traversal state machine.

Pure reducers over `TraversalState`. Every transition returns a new state
and leaves its input untouched.

Two kinds of decision:
- gates (conditional points): answering "no" prunes every affected claim,
  and a pruned claim never comes back within the same graph generation;
- conflicts: the answer is recorded as a preference only. The option not
  chosen stays active; `get_preferred_claims` gives the stricter view.

Ids that do not name a forcing point of the right kind are ignored, since
stale ids from an earlier graph generation reach the reducers routinely.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Sequence, TypeVar

from forkmap_core.schema.forcing_points import (
    ConditionalForcingPoint,
    ConflictForcingPoint,
    ConflictStatus,
    ForcingPoint,
)
from forkmap_core.schema.graph import ClaimGraph
from forkmap_core.schema.traversal import (
    ClaimStatus,
    ConditionalResolution,
    ConflictResolution,
    Resolution,
    TraversalState,
)

logger = logging.getLogger(__name__)

EMPTY_PATH_SUMMARY = "No constraints applied."

T = TypeVar("T")


def _claim_id(claim: Any) -> str:
    """Id of a Claim model, a claim dict, or a bare id string."""
    if isinstance(claim, str):
        return claim
    if isinstance(claim, dict):
        return str(claim.get("id") or "")
    return str(getattr(claim, "id", "") or "")


def _find(points: Sequence[ForcingPoint], fp_id: str) -> Optional[ForcingPoint]:
    for fp in points:
        if fp.id == fp_id:
            return fp
    return None


def _next_state(
    state: TraversalState,
    *,
    statuses: Optional[dict[str, ClaimStatus]] = None,
    resolution: Optional[Resolution] = None,
    step: Optional[str] = None,
) -> TraversalState:
    resolutions = dict(state.resolutions)
    if resolution is not None:
        resolutions[resolution.forcing_point_id] = resolution
    return TraversalState(
        claim_statuses=statuses if statuses is not None else dict(state.claim_statuses),
        resolutions=resolutions,
        path_steps=state.path_steps + ((step,) if step else ()),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Initialization
# ─────────────────────────────────────────────────────────────────────────────

def init_traversal_state(claims: Iterable[Any], graph: Optional[ClaimGraph] = None) -> TraversalState:
    """
    Fresh state: every claim active, no resolutions, empty path.

    When `graph` is given, ids that only appear in its edges or gates get an
    entry too.
    """
    statuses: dict[str, ClaimStatus] = {}
    for c in claims:
        cid = _claim_id(c)
        if cid:
            statuses[cid] = ClaimStatus.ACTIVE
    if graph is not None:
        for cid in graph.referenced_claim_ids():
            statuses.setdefault(cid, ClaimStatus.ACTIVE)
    return TraversalState(claim_statuses=statuses)


def reset_traversal_state(state: TraversalState) -> TraversalState:
    """Full reset over the same claim ids."""
    return TraversalState(claim_statuses={cid: ClaimStatus.ACTIVE for cid in state.claim_statuses})


# ─────────────────────────────────────────────────────────────────────────────
# Transitions
# ─────────────────────────────────────────────────────────────────────────────

def resolve_conditional(
    state: TraversalState,
    forcing_points: Sequence[ForcingPoint],
    forcing_point_id: str,
    satisfied: bool,
    user_input: Optional[str] = None,
) -> TraversalState:
    """
    Answer a gate. "No" prunes every affected claim.

    Returns the input state unchanged if `forcing_point_id` is not a
    conditional point of `forcing_points`.
    """
    fp = _find(forcing_points, forcing_point_id)
    if not isinstance(fp, ConditionalForcingPoint):
        logger.debug("[Traversal] Ignoring gate answer for unknown id %s", forcing_point_id)
        return state

    note = (user_input or "").strip() or None
    resolution = ConditionalResolution(forcing_point_id=fp.id, satisfied=bool(satisfied), user_input=note)

    if satisfied:
        step = f'✓ "{fp.condition}"' + (f": {note}" if note else "")
        return _next_state(state, resolution=resolution, step=step)

    statuses = dict(state.claim_statuses)
    for cid in fp.affected_claims:
        statuses[cid] = ClaimStatus.PRUNED
    step = f'✗ "{fp.condition}": {len(fp.affected_claims)} claim(s) pruned'
    logger.debug("[Traversal] Gate %s pruned %d claim(s)", fp.id, len(fp.affected_claims))
    return _next_state(state, statuses=statuses, resolution=resolution, step=step)


def resolve_conflict(
    state: TraversalState,
    forcing_points: Sequence[ForcingPoint],
    forcing_point_id: str,
    selected_claim_id: str,
    selected_label: Optional[str] = None,
) -> TraversalState:
    """
    Record the preferred option of a conflict. Nothing is pruned.

    No-op if the id is not a conflict point or the claim is not one of its
    two options.
    """
    fp = _find(forcing_points, forcing_point_id)
    if not isinstance(fp, ConflictForcingPoint):
        logger.debug("[Traversal] Ignoring conflict choice for unknown id %s", forcing_point_id)
        return state

    chosen = fp.option_for(selected_claim_id)
    other = fp.other_option(selected_claim_id)
    if chosen is None or other is None:
        logger.debug(
            "[Traversal] Claim %s is not an option of %s; ignoring", selected_claim_id, forcing_point_id
        )
        return state

    label = (selected_label or "").strip() or chosen.label
    resolution = ConflictResolution(
        forcing_point_id=fp.id,
        selected_claim_id=chosen.claim_id,
        selected_label=label,
    )
    return _next_state(state, resolution=resolution, step=f'→ Chose "{label}" over "{other.label}"')


# ─────────────────────────────────────────────────────────────────────────────
# Queries
# ─────────────────────────────────────────────────────────────────────────────

def _is_moot(fp: ForcingPoint, state: TraversalState) -> bool:
    if isinstance(fp, ConditionalForcingPoint):
        return all(state.is_pruned(cid) for cid in fp.affected_claims)
    return any(state.is_pruned(opt.claim_id) for opt in fp.options)


def get_live_forcing_points(forcing_points: Sequence[ForcingPoint], state: TraversalState) -> list[ForcingPoint]:
    """Unresolved points that pruning has not made moot, in input order."""
    return [
        fp for fp in forcing_points
        if fp.id not in state.resolutions and not _is_moot(fp, state)
    ]


def is_traversal_complete(forcing_points: Sequence[ForcingPoint], state: TraversalState) -> bool:
    return not get_live_forcing_points(forcing_points, state)


def get_active_claims(claims: Iterable[T], state: TraversalState) -> list[T]:
    return [c for c in claims if state.status_of(_claim_id(c)) == ClaimStatus.ACTIVE]


def get_pruned_claims(claims: Iterable[T], state: TraversalState) -> list[T]:
    return [c for c in claims if state.is_pruned(_claim_id(c))]


def get_preferred_claims(
    claims: Iterable[T],
    forcing_points: Sequence[ForcingPoint],
    state: TraversalState,
) -> list[T]:
    """Active claims minus the options passed over in resolved conflicts."""
    passed_over: set[str] = set()
    for fp in forcing_points:
        if not isinstance(fp, ConflictForcingPoint):
            continue
        res = state.resolutions.get(fp.id)
        if isinstance(res, ConflictResolution):
            other = fp.other_option(res.selected_claim_id)
            if other is not None:
                passed_over.add(other.claim_id)
    return [c for c in get_active_claims(claims, state) if _claim_id(c) not in passed_over]


def get_conflict_status(fp: ConflictForcingPoint, state: TraversalState) -> tuple[ConflictStatus, Optional[str]]:
    """
    Status of a conflict point and, when auto-resolved, the surviving claim id.

    A recorded choice wins over pruning.
    """
    if isinstance(state.resolutions.get(fp.id), ConflictResolution):
        return ConflictStatus.RESOLVED, None
    pruned_a = state.is_pruned(fp.option_a.claim_id)
    pruned_b = state.is_pruned(fp.option_b.claim_id)
    if pruned_a != pruned_b:
        survivor = fp.option_b if pruned_a else fp.option_a
        return ConflictStatus.AUTO_RESOLVED, survivor.claim_id
    return ConflictStatus.PENDING, None


def with_conflict_statuses(forcing_points: Sequence[ForcingPoint], state: TraversalState) -> list[ForcingPoint]:
    """Copies of the points with conflict `status`/`autoResolvedTo` filled in."""
    out: list[ForcingPoint] = []
    for fp in forcing_points:
        if isinstance(fp, ConflictForcingPoint):
            status, survivor = get_conflict_status(fp, state)
            fp = fp.model_copy(update={"status": status, "auto_resolved_to": survivor})
        out.append(fp)
    return out


def get_claim_availability(
    forcing_points: Sequence[ForcingPoint],
    state: TraversalState,
) -> dict[str, ClaimStatus]:
    """
    Display view of claim statuses.

    Active claims behind a live gate read as UNAVAILABLE. The state itself
    is never changed by this.
    """
    view = dict(state.claim_statuses)
    for fp in get_live_forcing_points(forcing_points, state):
        if not isinstance(fp, ConditionalForcingPoint):
            continue
        for cid in fp.affected_claims:
            if view.get(cid, ClaimStatus.ACTIVE) == ClaimStatus.ACTIVE:
                view[cid] = ClaimStatus.UNAVAILABLE
    return view


def get_resolution(state: TraversalState, forcing_point_id: str) -> Optional[Resolution]:
    return state.resolutions.get(forcing_point_id)


def get_path_summary(state: TraversalState) -> str:
    """The decision log, one step per line, in the order decisions were made."""
    if not state.path_steps:
        return EMPTY_PATH_SUMMARY
    return "\n".join(state.path_steps)
