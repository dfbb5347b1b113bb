# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""Forcing point models: the decisions a user must make to traverse a graph."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from forkmap_core.schema.serialization import SchemaModel


CONDITIONAL_TIER = 0
CONFLICT_TIER = 2


class ConflictStatus(str, Enum):
    PENDING = "pending"
    AUTO_RESOLVED = "auto_resolved"
    """One option was pruned by a gate, so the other wins without asking."""
    RESOLVED = "resolved"


class ConflictOption(SchemaModel):
    claim_id: str
    label: str
    text: Optional[str] = None


class ConditionalForcingPoint(SchemaModel):
    """Tier-0 gate derived from a ConditionalPruner."""

    type: Literal["conditional"] = "conditional"
    tier: Literal[0] = CONDITIONAL_TIER
    id: str
    question: str
    condition: str
    affected_claims: tuple[str, ...]


class ConflictForcingPoint(SchemaModel):
    """Tier-2 choice between two competing claims."""

    type: Literal["conflict"] = "conflict"
    tier: Literal[2] = CONFLICT_TIER
    id: str
    question: str
    condition: str
    option_a: ConflictOption
    option_b: ConflictOption
    status: ConflictStatus = ConflictStatus.PENDING
    auto_resolved_to: Optional[str] = None

    @property
    def options(self) -> tuple[ConflictOption, ConflictOption]:
        return (self.option_a, self.option_b)

    def option_for(self, claim_id: str) -> ConflictOption | None:
        for opt in self.options:
            if opt.claim_id == claim_id:
                return opt
        return None

    def other_option(self, claim_id: str) -> ConflictOption | None:
        if self.option_a.claim_id == claim_id:
            return self.option_b
        if self.option_b.claim_id == claim_id:
            return self.option_a
        return None


ForcingPoint = Annotated[
    Union[ConditionalForcingPoint, ConflictForcingPoint],
    Field(discriminator="type"),
]

FORCING_POINTS_ADAPTER: TypeAdapter[list[ForcingPoint]] = TypeAdapter(list[ForcingPoint])
