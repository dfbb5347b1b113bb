# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors

"""
Tests: traversal state wire format

Writing always uses pair lists with camelCase keys; reading also accepts
plain objects, untagged resolutions and JSON text.
"""

import json

import pytest

from forkmap_core.schema.traversal import ClaimStatus, ConditionalResolution, ConflictResolution
from forkmap_core.traversal.engine import resolve_conditional, resolve_conflict
from forkmap_core.traversal.serialization import (
    deserialize_traversal_state,
    serialize_traversal_state,
)


@pytest.fixture
def decided(forcing_points, state):
    s = resolve_conditional(state, forcing_points, "det_ext_2", False)
    return resolve_conflict(s, forcing_points, "fp_conflict_c_0::c_2", "c_2")


@pytest.mark.unit
class TestSerialize:

    def test_wire_shape(self, decided):
        wire = serialize_traversal_state(decided)
        assert wire["claimStatuses"] == [
            ["c_0", "active"], ["c_1", "pruned"], ["c_2", "active"], ["c_3", "pruned"],
        ]
        assert wire["resolutions"] == [
            ["det_ext_2", {"type": "conditional", "forcingPointId": "det_ext_2", "satisfied": False, "userInput": None}],
            [
                "fp_conflict_c_0::c_2",
                {
                    "type": "conflict",
                    "forcingPointId": "fp_conflict_c_0::c_2",
                    "selectedClaimId": "c_2",
                    "selectedLabel": "Ship behind flag",
                },
            ],
        ]
        assert wire["pathSteps"] == list(decided.path_steps)

    def test_json_text_restores_equal_state(self, decided):
        text = json.dumps(serialize_traversal_state(decided))
        assert deserialize_traversal_state(text) == decided


@pytest.mark.unit
class TestDeserialize:

    def test_object_form_and_untagged_resolutions(self):
        state = deserialize_traversal_state({
            "claimStatuses": {"c_0": "active", "c_1": "PRUNED"},
            "resolutions": {
                "g_1": {"satisfied": True, "userInput": "yes, remote"},
                "fp_conflict_c_0::c_1": {"selectedClaimId": "c_0", "selectedLabel": "Ship now"},
            },
            "pathSteps": ["one", 2, "two"],
        })
        assert state.claim_statuses == {"c_0": ClaimStatus.ACTIVE, "c_1": ClaimStatus.PRUNED}
        gate = state.resolutions["g_1"]
        assert isinstance(gate, ConditionalResolution)
        assert gate.forcing_point_id == "g_1"
        assert gate.user_input == "yes, remote"
        assert isinstance(state.resolutions["fp_conflict_c_0::c_1"], ConflictResolution)
        assert state.path_steps == ("one", "two")

    def test_unknown_status_reads_active(self):
        state = deserialize_traversal_state({"claimStatuses": [["c_0", "unavailable"], ["c_1", "???"]]})
        assert state.claim_statuses == {"c_0": ClaimStatus.ACTIVE, "c_1": ClaimStatus.ACTIVE}

    def test_malformed_entries_skipped(self):
        state = deserialize_traversal_state({
            "claimStatuses": [["c_0", "active"], ["lonely"], [3, "pruned"], "junk"],
            "resolutions": [["g_1", "not a dict"], ["g_2", {"type": "conditional"}], ["", {}]],
            "pathSteps": "not a list",
        })
        assert state.claim_statuses == {"c_0": ClaimStatus.ACTIVE}
        assert state.resolutions == {}
        assert state.path_steps == ()

    def test_missing_sections_give_empty_state(self):
        state = deserialize_traversal_state({})
        assert state.claim_statuses == {}
        assert state.resolutions == {}

    def test_deeply_nested_json_text_is_none(self):
        assert deserialize_traversal_state("[" * 100_000 + "]" * 100_000) is None

    @pytest.mark.parametrize("raw", [None, 42, ["c_0"], "not json", "[1, 2]"])
    def test_non_mapping_is_none(self, raw):
        assert deserialize_traversal_state(raw) is None
