# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""Normalization result contract."""

from __future__ import annotations

from typing import Optional

from forkmap_core.errors import MappingIssueKind, MappingRejected
from forkmap_core.schema.graph import ClaimGraph
from forkmap_core.schema.serialization import SchemaModel


class MappingIssue(SchemaModel):
    """One fatal defect. `field` is a path like `claims[2].label`."""

    kind: MappingIssueKind = MappingIssueKind.FIELD_ERROR
    field: str
    issue: str
    context: Optional[str] = None


class NormalizationResult(SchemaModel):
    """
    Outcome of one normalization pass.

    Warnings never block success; only structural claim errors do. On
    failure `output` is None and `errors` holds the full defect list.
    """

    success: bool
    output: Optional[ClaimGraph] = None
    narrative: Optional[str] = None
    errors: tuple[MappingIssue, ...] = ()
    warnings: tuple[str, ...] = ()

    @classmethod
    def parse_failure(cls, issue: str) -> "NormalizationResult":
        return cls(
            success=False,
            errors=(MappingIssue(kind=MappingIssueKind.PARSE_FAILURE, field="response", issue=issue),),
        )

    def raise_for_errors(self) -> ClaimGraph:
        if not self.success or self.output is None:
            raise MappingRejected(
                errors=[e.to_dict() for e in self.errors],
                warnings=list(self.warnings),
            )
        return self.output
