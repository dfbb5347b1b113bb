# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
Wire format for traversal state.

    {
      "claimStatuses": [["c_0", "active"], ["c_1", "pruned"]],
      "resolutions": [["fp_x", {"type": "conditional", ...}]],
      "pathSteps": ["..."]
    }

Reading is lenient. Older records stored `claimStatuses` and `resolutions`
as plain objects, and some resolution entries predate the `type` tag.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from forkmap_core.schema.traversal import (
    RESOLUTION_ADAPTER,
    ClaimStatus,
    Resolution,
    TraversalState,
)

logger = logging.getLogger(__name__)


def serialize_traversal_state(state: TraversalState) -> dict[str, Any]:
    return {
        "claimStatuses": [[cid, ClaimStatus(status).value] for cid, status in state.claim_statuses.items()],
        "resolutions": [[fp_id, res.to_dict()] for fp_id, res in state.resolutions.items()],
        "pathSteps": list(state.path_steps),
    }


def _pairs(raw: Any) -> Iterable[tuple[Any, Any]]:
    """Key/value pairs from a pair list or any mapping. Anything else yields nothing."""
    if isinstance(raw, Mapping):
        return list(raw.items())
    if isinstance(raw, (list, tuple)):
        return [
            (item[0], item[1])
            for item in raw
            if isinstance(item, (list, tuple)) and len(item) >= 2
        ]
    return []


def _read_status(value: Any) -> ClaimStatus:
    if isinstance(value, ClaimStatus):
        value = value.value
    return ClaimStatus.PRUNED if str(value).strip().lower() == ClaimStatus.PRUNED.value else ClaimStatus.ACTIVE


def _read_resolution(fp_id: str, value: Any) -> Optional[Resolution]:
    if not isinstance(value, Mapping):
        return None
    data = dict(value)
    data.setdefault("forcingPointId", fp_id)
    if "type" not in data:
        if "selectedClaimId" in data or "selected_claim_id" in data:
            data["type"] = "conflict"
        elif "satisfied" in data:
            data["type"] = "conditional"
    try:
        return RESOLUTION_ADAPTER.validate_python(data)
    except ValidationError as exc:
        logger.debug("[Traversal] Skipping malformed resolution %s: %s", fp_id, exc.error_count())
        return None


def deserialize_traversal_state(raw: Any) -> Optional[TraversalState]:
    """
    Rebuild a state from its wire form.

    Accepts a dict, any Mapping, or a JSON string of one. Malformed entries
    are skipped. Returns None only when the top level is not a mapping.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, ValueError, RecursionError):
            return None
    if not isinstance(raw, Mapping):
        return None

    statuses: dict[str, ClaimStatus] = {}
    for cid, status in _pairs(raw.get("claimStatuses")):
        if isinstance(cid, str) and cid:
            statuses[cid] = _read_status(status)

    resolutions: dict[str, Resolution] = {}
    for fp_id, value in _pairs(raw.get("resolutions")):
        if not isinstance(fp_id, str) or not fp_id:
            continue
        res = _read_resolution(fp_id, value)
        if res is not None:
            resolutions[fp_id] = res

    steps_raw = raw.get("pathSteps")
    steps = tuple(s for s in steps_raw if isinstance(s, str)) if isinstance(steps_raw, (list, tuple)) else ()

    return TraversalState(claim_statuses=statuses, resolutions=resolutions, path_steps=steps)
