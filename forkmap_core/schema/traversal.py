# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""Traversal state and resolution records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from forkmap_core.schema.serialization import SchemaModel


class ClaimStatus(str, Enum):
    ACTIVE = "active"
    PRUNED = "pruned"
    """Eliminated by a gate answered "no". One-way within a graph generation."""
    UNAVAILABLE = "unavailable"
    """Blocked by an unresolved gate. Informational only, never persisted."""


class ConditionalResolution(SchemaModel):
    type: Literal["conditional"] = "conditional"
    forcing_point_id: str
    satisfied: bool
    user_input: Optional[str] = None


class ConflictResolution(SchemaModel):
    type: Literal["conflict"] = "conflict"
    forcing_point_id: str
    selected_claim_id: str
    selected_label: str


Resolution = Annotated[
    Union[ConditionalResolution, ConflictResolution],
    Field(discriminator="type"),
]

RESOLUTION_ADAPTER: TypeAdapter[Resolution] = TypeAdapter(Resolution)


@dataclass(frozen=True)
class TraversalState:
    """
    Value object for one traversal over one graph generation.

    Reducers in `forkmap_core.traversal.engine` never mutate a state; they
    return a new one. `path_steps` is the chronological decision log and is
    never derived from the two maps.
    """

    claim_statuses: dict[str, ClaimStatus] = field(default_factory=dict)
    resolutions: dict[str, Resolution] = field(default_factory=dict)
    path_steps: tuple[str, ...] = ()

    def status_of(self, claim_id: str) -> ClaimStatus:
        return self.claim_statuses.get(claim_id, ClaimStatus.ACTIVE)

    def is_pruned(self, claim_id: str) -> bool:
        return self.status_of(claim_id) == ClaimStatus.PRUNED
