# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors

"""
Tests: MappingEngine end to end

Model text in, graph + forcing points out, then a traversal over them.
"""

import logging

import pytest

from forkmap_core.config import ForkmapConfig
from forkmap_core.engine import NO_NARRATIVE_WARNING, MappingEngine
from forkmap_core.errors import MappingIssueKind, MappingRejected
from forkmap_core.parsing.json_extraction import ExtractionPath
from forkmap_core.runtime_config import EngineRuntimeConfig, ParsingConfig


def _engine(**kwargs) -> MappingEngine:
    runtime = kwargs.pop("runtime", EngineRuntimeConfig())
    return MappingEngine(ForkmapConfig(runtime=runtime, **kwargs))


@pytest.mark.unit
class TestMapText:

    def test_tagged_response(self, model_response):
        mapping_round = _engine().map_text(model_response)
        assert mapping_round.success is True
        assert mapping_round.extraction_path == ExtractionPath.DIRECT
        assert [fp.id for fp in mapping_round.forcing_points][0] == "det_ext_2"
        assert [a.id for a in mapping_round.anchors] == ["c_0", "c_1"]
        assert mapping_round.result.narrative.startswith("The pivot is speed")

    def test_no_map(self):
        mapping_round = _engine().map_text("I could not build a map, sorry.")
        assert mapping_round.success is False
        assert mapping_round.forcing_points == []
        assert mapping_round.result.errors[0].kind == MappingIssueKind.PARSE_FAILURE

    def test_none_input(self):
        assert _engine().map_text(None).success is False

    def test_deeply_nested_payload_fails_cleanly(self):
        text = "<map>" + "[" * 100_000 + "]" * 100_000 + "</map>"
        mapping_round = _engine().map_text(text)
        assert mapping_round.success is False
        assert mapping_round.result.errors[0].kind == MappingIssueKind.PARSE_FAILURE

    def test_invalid_claims_give_no_points(self):
        text = '<map>{"claims": [{"id": "c_0"}], "edges": []}</map>'
        mapping_round = _engine().map_text(text)
        assert mapping_round.success is False
        assert mapping_round.forcing_points == []
        assert len(mapping_round.result.errors) == 2

    def test_missing_narrative_warning(self):
        text = '<map>{"claims": [{"id": "c_0", "label": "A", "text": "B", "supporters": [1]}], "edges": []}</map>'
        assert NO_NARRATIVE_WARNING not in _engine().map_text(text).result.warnings
        warned = _engine(require_narrative=True).map_text(text)
        assert NO_NARRATIVE_WARNING in warned.result.warnings

    def test_repair_disabled(self):
        text = '<map>{claims: [{id: "c_0", label: "A", text: "B"}]}</map>'
        assert _engine().map_text(text).success is True
        no_repair = EngineRuntimeConfig(parsing=ParsingConfig(repair_enabled=False))
        assert _engine(runtime=no_repair).map_text(text).success is False

    def test_input_truncated(self, model_response, caplog):
        small = EngineRuntimeConfig(parsing=ParsingConfig(max_input_chars=40))
        with caplog.at_level(logging.WARNING):
            mapping_round = _engine(runtime=small).map_text(model_response)
        assert mapping_round.success is False
        assert "[Extract] Input truncated" in caplog.text

    def test_round_to_dict(self, model_response):
        payload = _engine().map_text(model_response).to_dict()
        assert payload["extractionPath"] == "direct"
        assert payload["result"]["success"] is True
        assert payload["forcingPoints"][1]["optionA"]["claimId"] == "c_0"
        assert (payload["anchors"][0]["label"], payload["anchors"][0]["id"]) == ("Ship now", "c_0")


@pytest.mark.unit
class TestTraversalEntry:

    def test_start_traversal(self, model_response):
        engine = _engine()
        session = engine.start_traversal(engine.map_text(model_response))
        session.resolve_gate("det_ext_2", satisfied=False)
        assert [fp.id for fp in session.live_forcing_points()] == ["fp_conflict_c_0::c_2"]

    def test_start_traversal_rejects_failed_round(self):
        engine = _engine()
        with pytest.raises(MappingRejected):
            engine.start_traversal(engine.map_text("no map here"))

    def test_restore_traversal(self, model_response):
        engine = _engine()
        mapping_round = engine.map_text(model_response)
        session = engine.start_traversal(mapping_round)
        session.resolve_gate("det_ext_2", satisfied=False)

        restored = engine.restore_traversal(mapping_round, session.to_dict())
        assert restored.state == session.state

    def test_restore_mismatched_when_allowed(self, model_response):
        engine = _engine(restore_mismatched_state=True)
        mapping_round = engine.map_text(model_response)
        restored = engine.restore_traversal(mapping_round, {"claimStatuses": [["c_3", "pruned"]]})
        assert restored.state.is_pruned("c_3")
