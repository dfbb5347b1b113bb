# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
Forcing point extraction.

A forcing point is a decision the user has to make before the graph can be
reduced. Gates (tier 0) always come before conflicts (tier 2); inside a tier
the order follows the graph.

The result is a pure function of the graph: same graph, same ids, same order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from forkmap_core.schema.forcing_points import (
    ConditionalForcingPoint,
    ConflictForcingPoint,
    ConflictOption,
    ForcingPoint,
)
from forkmap_core.schema.graph import Claim, ClaimGraph, ConditionalPruner, pair_key_for

logger = logging.getLogger(__name__)

PLACEHOLDER_QUESTION = "Is this applicable to your situation?"
CONFLICT_ID_PREFIX = "fp_conflict_"
MAX_SUMMARY_LABELS = 3


@dataclass
class _MergedGate:
    id: str
    question: str
    affected_claims: list[str] = field(default_factory=list)


def _is_placeholder(question: str, gate_id: str) -> bool:
    q = (question or "").strip()
    return (
        not q
        or q == gate_id
        or q == f"Condition: {gate_id}"
        or q.startswith("placeholder_")
    )


def merge_conditionals(conditionals: tuple[ConditionalPruner, ...] | list[ConditionalPruner]) -> list[_MergedGate]:
    """
    Merge gates that share an id.

    Affected claims are unioned in first-seen order; the first question that
    is not a placeholder wins.
    """
    by_id: dict[str, _MergedGate] = {}
    for cond in conditionals:
        gate_id = cond.id.strip()
        affected = [cid.strip() for cid in cond.affected_claims if cid and cid.strip()]
        if not gate_id or not affected:
            continue

        prev = by_id.get(gate_id)
        if prev is None:
            by_id[gate_id] = _MergedGate(id=gate_id, question=cond.question, affected_claims=list(dict.fromkeys(affected)))
            continue

        for cid in affected:
            if cid not in prev.affected_claims:
                prev.affected_claims.append(cid)
        if _is_placeholder(prev.question, gate_id) and not _is_placeholder(cond.question, gate_id):
            prev.question = cond.question

    return list(by_id.values())


def _affected_summary(affected: list[str], claims: dict[str, Claim]) -> str:
    labels = [(claims[cid].label if cid in claims else cid).strip() for cid in affected]
    labels = [lbl for lbl in labels if lbl]
    if not labels:
        return f"Affects {len(affected)} claim(s)"
    summary = ", ".join(labels[:MAX_SUMMARY_LABELS])
    if len(labels) > MAX_SUMMARY_LABELS:
        summary += f" +{len(labels) - MAX_SUMMARY_LABELS} more"
    return f"Affects: {summary}"


def _conditional_points(graph: ClaimGraph, claims: dict[str, Claim]) -> list[ConditionalForcingPoint]:
    points: list[ConditionalForcingPoint] = []
    for gate in merge_conditionals(graph.conditionals):
        question = gate.question.strip()
        if _is_placeholder(question, gate.id):
            question = PLACEHOLDER_QUESTION
            condition = _affected_summary(gate.affected_claims, claims)
        else:
            condition = question
        points.append(
            ConditionalForcingPoint(
                id=gate.id,
                question=question,
                condition=condition,
                affected_claims=tuple(gate.affected_claims),
            )
        )
    return points


def _conflict_points(graph: ClaimGraph, claims: dict[str, Claim]) -> list[ConflictForcingPoint]:
    points: list[ConflictForcingPoint] = []
    seen: set[str] = set()
    skipped = 0

    for edge in graph.edges:
        if edge.from_ == edge.to:
            continue
        key = edge.pair_key
        if key in seen:
            continue
        seen.add(key)

        a = claims.get(edge.from_)
        b = claims.get(edge.to)
        if a is None or b is None:
            skipped += 1
            continue

        question = (edge.question or "").strip() or f"Choose between: {a.label} vs {b.label}"
        points.append(
            ConflictForcingPoint(
                id=conflict_forcing_point_id(a.id, b.id),
                question=question,
                condition=f"{a.label} vs {b.label}",
                option_a=ConflictOption(claim_id=a.id, label=a.label, text=a.text),
                option_b=ConflictOption(claim_id=b.id, label=b.label, text=b.text),
            )
        )

    if skipped:
        logger.debug("[ForcingPoints] Skipped %d conflict pair(s) with unknown claims", skipped)
    return points


def extract_forcing_points(graph: ClaimGraph | dict[str, Any]) -> list[ForcingPoint]:
    """
    Derive the ordered forcing points of a canonical graph.

    Args:
        graph: A ClaimGraph, or its wire dict (validated into one)

    Returns:
        Tier-0 conditional points followed by tier-2 conflict points
    """
    if not isinstance(graph, ClaimGraph):
        graph = ClaimGraph.from_dict(graph)

    claims = graph.claim_map()
    conditionals = _conditional_points(graph, claims)
    conflicts = _conflict_points(graph, claims)

    logger.debug(
        "[ForcingPoints] Extracted %d conditional(s), %d conflict(s)", len(conditionals), len(conflicts)
    )
    return [*conditionals, *conflicts]


def conflict_forcing_point_id(a_id: str, b_id: str) -> str:
    """Id of the conflict point for an unordered claim pair."""
    return f"{CONFLICT_ID_PREFIX}{pair_key_for(a_id, b_id)}"
