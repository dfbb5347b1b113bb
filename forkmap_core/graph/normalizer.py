# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
Claim graph normalization.

Turns the loosely structured map a model produced into a canonical
`ClaimGraph`. Defects fall into two buckets:

- field errors (missing claims array, missing id/label/text, duplicate ids)
  are accumulated and fail the whole result;
- everything else (bad supporters, unusable determinants, rejected edge
  types, incomplete gates) is a warning and the offending item is dropped.

Determinants are compiled here: an intrinsic fork over N claims becomes the
full clique of N*(N-1)/2 conflict edges, an extrinsic fork becomes a single
conditional pruner.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from forkmap_core.parsing.unified_output import parse_unified_output
from forkmap_core.runtime_config import NormalizerConfig
from forkmap_core.schema.graph import (
    Claim,
    ClaimGraph,
    ConditionalPruner,
    Edge,
    EdgeType,
    ExtrinsicDeterminant,
    IntrinsicDeterminant,
)
from forkmap_core.schema.results import MappingIssue, NormalizationResult

logger = logging.getLogger(__name__)

_STANDARD_ID_RE = re.compile(r"^(?:c_|claim_)", re.IGNORECASE)

NO_MAP_ISSUE = "No valid <map> JSON found in response"


def _text(value: Any) -> str:
    """Trimmed string form of a scalar; containers and None read as empty."""
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return ""
    return str(value).strip()


def _id_list(values: Any) -> list[str]:
    """Non-empty, de-duplicated string ids in first-seen order."""
    if not isinstance(values, (list, tuple)):
        return []
    out: list[str] = []
    for v in values:
        s = _text(v)
        if s and s not in out:
            out.append(s)
    return out


def _supporter_list(value: Any) -> Optional[list[int]]:
    """Model indices as ints. Integral floats (`2.0`) count; bools and fractions do not."""
    if not isinstance(value, list):
        return None
    out: list[int] = []
    for s in value:
        if isinstance(s, bool):
            return None
        if isinstance(s, int):
            out.append(s)
        elif isinstance(s, float) and s.is_integer():
            out.append(int(s))
        else:
            return None
    return out


@dataclass
class CompiledDeterminants:
    """Output of `compile_determinants`: audit copies plus derived edges and gates."""
    determinants: list[IntrinsicDeterminant | ExtrinsicDeterminant] = field(default_factory=list)
    edges: list[dict[str, Any]] = field(default_factory=list)
    conditionals: list[dict[str, Any]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def compile_determinants(determinants: list[Any]) -> CompiledDeterminants:
    """
    Compile determinants into raw conflict edges and conditional gates.

    Pure function of the determinant list; it does not look at explicit edges
    or at the claim set.
    """
    out = CompiledDeterminants()

    for i, d in enumerate(determinants):
        ctx = f"determinants[{i}]"

        if not isinstance(d, dict):
            out.warnings.append(f"{ctx} is not an object; skipping")
            continue

        det_type = _text(d.get("type")).lower()
        fork = _text(d.get("fork"))
        hinge = _text(d.get("hinge"))
        question = _text(d.get("question"))

        raw_paths = d.get("paths")
        paths = raw_paths if isinstance(raw_paths, dict) and raw_paths else None
        path_ids = _id_list(list(paths.keys())) if paths else []
        claim_ids = path_ids or _id_list(d.get("claims"))

        if det_type not in ("intrinsic", "extrinsic"):
            out.warnings.append(f"{ctx}.type is invalid; skipping")
            continue
        if not question:
            out.warnings.append(f"{ctx}.question is empty; skipping")
            continue
        if not claim_ids:
            out.warnings.append(f"{ctx}.claims is empty; skipping")
            continue

        if not fork:
            out.warnings.append(f"{ctx}.fork is empty")
        if not hinge:
            out.warnings.append(f"{ctx}.hinge is empty")

        if det_type == "intrinsic":
            out.determinants.append(
                IntrinsicDeterminant(
                    fork=fork,
                    hinge=hinge,
                    question=question,
                    claims=tuple(claim_ids),
                    paths={str(k).strip(): _text(v) for k, v in paths.items() if str(k).strip()} if paths else None,
                )
            )
            if len(claim_ids) < 2:
                out.warnings.append(f"{ctx}.claims has <2 items; no conflict edges derived")
                continue
            for a in range(len(claim_ids)):
                for b in range(a + 1, len(claim_ids)):
                    out.edges.append(
                        {"from": claim_ids[a], "to": claim_ids[b], "type": "conflict", "question": question}
                    )
            continue

        gate_id = _text(d.get("id")) or f"det_ext_{i + 1}"
        out.determinants.append(
            ExtrinsicDeterminant(
                id=gate_id,
                fork=fork,
                hinge=hinge,
                question=question,
                claims=tuple(claim_ids),
                yes_means=_text(d.get("yes_means")) or None,
                no_means=_text(d.get("no_means")) or None,
            )
        )
        out.conditionals.append({"id": gate_id, "question": question, "affectedClaims": claim_ids})

    return out


def sanitize_edges(
    edges: list[Any],
    warnings: list[str],
    *,
    known_ids: Optional[set[str]] = None,
) -> list[Edge]:
    """
    Reduce raw edges to canonical conflict edges.

    `known_ids`, when given, drops every edge with an endpoint that is not a
    known claim, whether the model wrote it or a determinant derived it.
    """
    out: list[Edge] = []

    for i, e in enumerate(edges):
        ctx = f"edges[{i}]"
        if not isinstance(e, dict):
            warnings.append(f"{ctx} is not an object; dropped")
            continue

        src = _text(e.get("from"))
        dst = _text(e.get("to"))
        edge_type = _text(e.get("type")).lower()
        raw_q = e.get("question")
        question = raw_q.strip() if isinstance(raw_q, str) and raw_q.strip() else None

        if not src or not dst:
            warnings.append(f"{ctx} missing from/to; dropped")
            continue

        if known_ids is not None:
            dangling = [cid for cid in (src, dst) if cid not in known_ids]
            if dangling:
                warnings.append(f'{ctx} references unknown claim "{dangling[0]}"; dropped')
                continue

        if edge_type in (EdgeType.CONFLICT.value, EdgeType.CONFLICTS.value):
            out.append(Edge(from_=src, to=dst, question=question))
        elif edge_type == EdgeType.TRADEOFF.value:
            out.append(Edge(from_=src, to=dst, question=None))
        elif edge_type == EdgeType.SUPPORTS.value:
            warnings.append(f'{ctx}.type is "supports"; dropped (supports are derived later)')
        else:
            warnings.append(f'{ctx}.type is unsupported ("{edge_type}"); dropped')

    return out


def sanitize_conditionals(conditionals: list[Any], warnings: list[str]) -> list[ConditionalPruner]:
    out: list[ConditionalPruner] = []
    for i, c in enumerate(conditionals):
        ctx = f"conditionals[{i}]"
        if not isinstance(c, dict):
            warnings.append(f"{ctx} is not an object; dropped")
            continue

        gate_id = _text(c.get("id"))
        question = _text(c.get("question"))
        affected = _id_list(c.get("affectedClaims", c.get("affected_claims")))

        if not gate_id or not question or not affected:
            warnings.append(f"{ctx} is missing id/question/affectedClaims; dropped")
            continue

        out.append(ConditionalPruner(id=gate_id, question=question, affected_claims=tuple(affected)))
    return out


class ClaimGraphNormalizer:
    """
    Validates a raw map and derives the canonical graph.

    Usage:
        normalizer = ClaimGraphNormalizer()
        result = normalizer.normalize(raw_map, narrative)
        if result.success:
            graph = result.output
    """

    def __init__(self, config: NormalizerConfig | None = None):
        self.config = config or NormalizerConfig()

    def normalize(self, raw: Any, narrative: str = "") -> NormalizationResult:
        """
        Normalize one raw map. Never raises.

        Args:
            raw: The parsed map value. A string is run through the unified
                output parser first and its narrative used when none is given.
            narrative: Narrative text found alongside the map

        Returns:
            NormalizationResult with either `output` or accumulated `errors`
        """
        if isinstance(raw, str):
            parsed = parse_unified_output(raw)
            raw = parsed.map_value
            narrative = narrative or parsed.narrative

        if not isinstance(raw, dict):
            logger.warning("[Normalizer] %s", NO_MAP_ISSUE)
            return NormalizationResult.parse_failure(NO_MAP_ISSUE)

        errors: list[MappingIssue] = []
        warnings: list[str] = []

        raw_claims = raw.get("claims")
        if not isinstance(raw_claims, list):
            errors.append(MappingIssue(field="claims", issue="Missing or invalid claims array"))
            logger.debug("[Normalizer] Rejected: claims array missing")
            return NormalizationResult(success=False, errors=tuple(errors))

        raw_determinants = raw.get("determinants") if isinstance(raw.get("determinants"), list) else None
        raw_edges = raw.get("edges") if isinstance(raw.get("edges"), list) else None
        raw_conditionals = raw.get("conditionals") if isinstance(raw.get("conditionals"), list) else []

        if not raw_claims:
            warnings.append("claims array is empty")
        if raw_determinants is None and raw_edges is None:
            warnings.append("No determinants or edges present; proceeding with empty relationships")

        claim_inputs = self._validate_claims(raw_claims, errors, warnings)

        compiled = compile_determinants(raw_determinants or [])
        warnings.extend(compiled.warnings)

        explicit_edges = list(raw_edges or [])
        known_ids = {c["id"] for c in claim_inputs} if self.config.drop_dangling_edges and not errors else None
        edges = sanitize_edges(
            explicit_edges + compiled.edges,
            warnings,
            known_ids=known_ids,
        )
        conditionals = sanitize_conditionals(list(raw_conditionals) + compiled.conditionals, warnings)

        if errors:
            logger.debug(
                "[Normalizer] Rejected: %d error(s), %d warning(s)", len(errors), len(warnings)
            )
            return NormalizationResult(success=False, errors=tuple(errors), warnings=tuple(warnings))

        if self.config.warn_nonstandard_ids:
            for c in claim_inputs:
                if not _STANDARD_ID_RE.match(c["id"]):
                    warnings.append(f"Non-standard claim id: {c['id']}")
                    break

        if not narrative and isinstance(raw.get("narrative"), str):
            narrative = raw["narrative"]

        graph = ClaimGraph(
            claims=tuple(Claim(**c) for c in claim_inputs),
            determinants=tuple(compiled.determinants) or None,
            edges=tuple(edges),
            conditionals=tuple(conditionals),
        )

        for w in warnings:
            logger.debug("[Normalizer] %s", w)
        logger.debug(
            "[Normalizer] Normalized %d claims, %d edges, %d conditionals (%d warnings)",
            len(graph.claims), len(graph.edges), len(graph.conditionals), len(warnings),
        )

        return NormalizationResult(
            success=True,
            output=graph,
            narrative=str(narrative or "").strip(),
            warnings=tuple(warnings),
        )

    def _validate_claims(
        self,
        raw_claims: list[Any],
        errors: list[MappingIssue],
        warnings: list[str],
    ) -> list[dict[str, Any]]:
        """Collect claim field errors; return constructor kwargs for the valid claims."""
        seen: set[str] = set()
        out: list[dict[str, Any]] = []

        for i, c in enumerate(raw_claims):
            ctx = f"claims[{i}]"
            if not isinstance(c, dict):
                errors.append(MappingIssue(field=ctx, issue="Claim must be an object"))
                continue

            claim_id = _text(c.get("id"))
            label = _text(c.get("label"))
            text = _text(c.get("text"))

            if not claim_id:
                errors.append(MappingIssue(field=f"{ctx}.id", issue="Missing id"))
            if not label:
                errors.append(MappingIssue(field=f"{ctx}.label", issue="Missing label"))
            if not text:
                errors.append(MappingIssue(field=f"{ctx}.text", issue="Missing text"))

            if claim_id:
                if claim_id in seen:
                    errors.append(MappingIssue(field=f"{ctx}.id", issue=f"Duplicate id: {claim_id}"))
                seen.add(claim_id)

            supporters = _supporter_list(c.get("supporters"))
            if supporters is None:
                warnings.append(f"{ctx}.supporters is invalid; defaulting to []")
                supporters = []

            if not (claim_id and label and text):
                continue

            support_count = c.get("support_count")
            quote = c.get("quote")
            challenges = c.get("challenges")
            out.append(
                {
                    "id": claim_id,
                    "label": label,
                    "text": text,
                    "supporters": tuple(supporters),
                    "type": c.get("type"),
                    "role": c.get("role"),
                    "challenges": challenges.strip() if isinstance(challenges, str) else None,
                    "quote": quote if isinstance(quote, str) else None,
                    "support_count": (
                        support_count
                        if isinstance(support_count, int) and not isinstance(support_count, bool)
                        else None
                    ),
                }
            )

        return out


def normalize_claim_graph(
    raw: Any,
    narrative: str = "",
    *,
    config: NormalizerConfig | None = None,
) -> NormalizationResult:
    """Functional entry point around `ClaimGraphNormalizer`."""
    return ClaimGraphNormalizer(config).normalize(raw, narrative)
