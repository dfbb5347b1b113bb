# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
Mapping Errors

The core reports defects as values (see `NormalizationResult`). These
exceptions exist for callers that prefer to raise on a rejected mapping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MappingIssueKind(str, Enum):
    PARSE_FAILURE = "parse_failure"
    FIELD_ERROR = "field_error"


class ForkmapError(Exception):
    """Base class for all Forkmap exceptions."""


@dataclass
class MappingRejected(ForkmapError):
    """
    Raised by `NormalizationResult.raise_for_errors()` on a failed mapping.

    Attributes:
        errors: Every accumulated issue, in detection order
        warnings: Non-fatal quality warnings collected alongside
    """

    errors: list[dict[str, Any]]
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        head = "; ".join(f"{e.get('field')}: {e.get('issue')}" for e in self.errors[:3])
        more = len(self.errors) - 3
        msg = f"Mapping rejected with {len(self.errors)} error(s): {head}"
        if more > 0:
            msg += f" (+{more} more)"
        super().__init__(msg)
