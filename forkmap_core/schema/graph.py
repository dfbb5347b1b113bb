# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
Canonical claim graph models.

This is the NORMALIZER output format. The mapping model produces loosely
structured claims, edges and determinants; the normalizer validates them and
builds these immutable snapshots. Everything downstream (forcing points,
traversal) reads only these types.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import Field, field_validator, model_validator

from forkmap_core.schema.serialization import SchemaModel


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────

class ClaimType(str, Enum):
    """Epistemic flavour of a claim."""
    FACTUAL = "factual"
    PRESCRIPTIVE = "prescriptive"
    CONDITIONAL = "conditional"
    CONTESTED = "contested"
    SPECULATIVE = "speculative"


class ClaimRole(str, Enum):
    """Structural role of a claim within the map."""
    ANCHOR = "anchor"
    BRANCH = "branch"
    CHALLENGER = "challenger"
    SUPPLEMENT = "supplement"


class EdgeType(str, Enum):
    """Relationship types accepted on input. Only CONFLICT survives normalization."""
    CONFLICT = "conflict"
    CONFLICTS = "conflicts"
    TRADEOFF = "tradeoff"
    SUPPORTS = "supports"


def _coerce_enum(value: Any, enum_cls: type[Enum], default: Enum) -> Enum:
    if isinstance(value, enum_cls):
        return value
    v = str(value or "").strip().lower()
    for member in enum_cls:
        if member.value == v:
            return member
    return default


# ─────────────────────────────────────────────────────────────────────────────
# Claim
# ─────────────────────────────────────────────────────────────────────────────

class Claim(SchemaModel):
    """
    A single position extracted from the model outputs.

    Example: {id: "c_0", label: "Ship now", text: "...", supporters: [1, 3]}
    """

    id: str
    label: str
    text: str
    supporters: tuple[int, ...] = ()
    """Indices of the models that voiced this claim."""

    type: ClaimType = ClaimType.SPECULATIVE
    role: ClaimRole = ClaimRole.BRANCH
    challenges: Optional[str] = None
    """Id of the claim this one opposes; only kept for challengers."""

    quote: Optional[str] = None
    support_count: Optional[int] = Field(default=None, alias="support_count")

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, v: Any) -> ClaimType:
        return _coerce_enum(v, ClaimType, ClaimType.SPECULATIVE)

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, v: Any) -> ClaimRole:
        return _coerce_enum(v, ClaimRole, ClaimRole.BRANCH)

    @model_validator(mode="before")
    @classmethod
    def _challenges_only_for_challengers(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        role = _coerce_enum(data.get("role"), ClaimRole, ClaimRole.BRANCH)
        challenges = data.get("challenges")
        if role != ClaimRole.CHALLENGER or not isinstance(challenges, str) or not challenges.strip():
            data = {**data, "challenges": None}
        return data


# ─────────────────────────────────────────────────────────────────────────────
# Edges and gates
# ─────────────────────────────────────────────────────────────────────────────

class Edge(SchemaModel):
    """Canonical conflict edge. `question` is always present, possibly null."""

    from_: str = Field(alias="from")
    to: str
    type: Literal["conflict"] = "conflict"
    question: Optional[str] = None

    @property
    def pair_key(self) -> str:
        return pair_key_for(self.from_, self.to)


class ConditionalPruner(SchemaModel):
    """Yes/no gate: answering "no" eliminates every affected claim."""

    id: str
    question: str
    affected_claims: tuple[str, ...]


def pair_key_for(a_id: str, b_id: str) -> str:
    """Order-independent key for an unordered claim pair."""
    return "::".join(sorted((a_id, b_id)))


# ─────────────────────────────────────────────────────────────────────────────
# Determinants (input-side fork descriptions)
# ─────────────────────────────────────────────────────────────────────────────

class IntrinsicDeterminant(SchemaModel):
    """Mutually exclusive claims: choosing one excludes the others."""

    type: Literal["intrinsic"] = "intrinsic"
    fork: str = ""
    hinge: str = ""
    question: str
    claims: tuple[str, ...]
    paths: Optional[dict[str, str]] = None


class ExtrinsicDeterminant(SchemaModel):
    """Claims whose applicability depends on the user's situation."""

    type: Literal["extrinsic"] = "extrinsic"
    id: Optional[str] = None
    fork: str = ""
    hinge: str = ""
    question: str
    claims: tuple[str, ...]
    yes_means: Optional[str] = Field(default=None, alias="yes_means")
    no_means: Optional[str] = Field(default=None, alias="no_means")


Determinant = Annotated[
    Union[IntrinsicDeterminant, ExtrinsicDeterminant],
    Field(discriminator="type"),
]


# ─────────────────────────────────────────────────────────────────────────────
# Graph snapshot
# ─────────────────────────────────────────────────────────────────────────────

class ClaimGraph(SchemaModel):
    """
    The canonical graph for one mapping round.

    Immutable snapshot: a new mapping round produces a new ClaimGraph, and
    any traversal state built against the old one must be discarded.
    """

    claims: tuple[Claim, ...]
    determinants: Optional[tuple[Determinant, ...]] = None
    edges: tuple[Edge, ...] = ()
    conditionals: tuple[ConditionalPruner, ...] = ()

    def claim_map(self) -> dict[str, Claim]:
        return {c.id: c for c in self.claims}

    def referenced_claim_ids(self) -> list[str]:
        """All claim ids mentioned anywhere in the graph, in first-seen order."""
        seen: dict[str, None] = {}
        for c in self.claims:
            seen.setdefault(c.id, None)
        for e in self.edges:
            seen.setdefault(e.from_, None)
            seen.setdefault(e.to, None)
        for cond in self.conditionals:
            for cid in cond.affected_claims:
                seen.setdefault(cid, None)
        return list(seen)
