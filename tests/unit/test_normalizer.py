# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors

"""
Tests: claim graph normalization

- claim field errors accumulate and fail the result
- determinants compile into conflict cliques and gates
- edges are reduced to canonical conflicts; everything else is a warning
"""

import pytest

from forkmap_core.errors import MappingIssueKind, MappingRejected
from forkmap_core.graph.normalizer import (
    ClaimGraphNormalizer,
    compile_determinants,
    normalize_claim_graph,
)
from forkmap_core.runtime_config import NormalizerConfig
from forkmap_core.schema.graph import ClaimRole, ClaimType, ExtrinsicDeterminant, IntrinsicDeterminant


def _claims(*ids: str) -> list[dict]:
    return [{"id": cid, "label": f"label {cid}", "text": f"text {cid}", "supporters": [1]} for cid in ids]


@pytest.mark.unit
class TestClaims:

    def test_minimal_graph_succeeds(self):
        result = normalize_claim_graph({"claims": [{"id": "c_0", "label": "x", "text": "y", "supporters": [1]}]})
        assert result.success is True
        assert result.output.edges == ()
        assert result.output.conditionals == ()
        assert result.output.claims[0].supporters == (1,)

    def test_missing_fields_accumulate(self):
        result = normalize_claim_graph({"claims": [{"id": "c_0"}, {"label": "L", "text": "T"}]})
        assert result.success is False
        assert result.output is None
        assert [e.field for e in result.errors] == ["claims[0].label", "claims[0].text", "claims[1].id"]
        assert all(e.kind == MappingIssueKind.FIELD_ERROR for e in result.errors)

    def test_duplicate_ids(self):
        result = normalize_claim_graph({"claims": _claims("c_0", "c_0")})
        assert result.success is False
        assert result.errors[0].field == "claims[1].id"
        assert result.errors[0].issue == "Duplicate id: c_0"

    def test_non_object_claim(self):
        result = normalize_claim_graph({"claims": ["c_0"]})
        assert result.success is False
        assert result.errors[0].issue == "Claim must be an object"

    def test_missing_claims_array(self):
        result = normalize_claim_graph({"edges": []})
        assert result.success is False
        assert result.errors[0].field == "claims"

    def test_no_map_is_parse_failure(self):
        result = normalize_claim_graph(None)
        assert result.success is False
        assert len(result.errors) == 1
        assert result.errors[0].kind == MappingIssueKind.PARSE_FAILURE
        assert result.errors[0].field == "response"

    @pytest.mark.parametrize("supporters", [[1, "2"], [True], [1.5], "1,2", None])
    def test_invalid_supporters_default_to_empty(self, supporters):
        raw = {"claims": [{"id": "c_0", "label": "x", "text": "y", "supporters": supporters}], "edges": []}
        result = normalize_claim_graph(raw)
        assert result.success is True
        assert result.output.claims[0].supporters == ()
        assert "claims[0].supporters is invalid; defaulting to []" in result.warnings

    def test_integral_float_supporters_accepted(self):
        raw = {"claims": [{"id": "c_0", "label": "x", "text": "y", "supporters": [1.0, 3]}], "edges": []}
        result = normalize_claim_graph(raw)
        assert result.output.claims[0].supporters == (1, 3)
        assert not any("supporters" in w for w in result.warnings)

    def test_type_and_role_normalized(self):
        raw = {
            "claims": [
                {"id": "c_0", "label": "x", "text": "y", "type": "Factual", "role": "anchor", "challenges": "c_1"},
                {"id": "c_1", "label": "x", "text": "y", "type": "weird", "role": "challenger", "challenges": "c_0"},
            ]
        }
        claims = normalize_claim_graph(raw).output.claims
        assert claims[0].type == ClaimType.FACTUAL
        assert claims[0].role == ClaimRole.ANCHOR
        assert claims[0].challenges is None
        assert claims[1].type == ClaimType.SPECULATIVE
        assert claims[1].challenges == "c_0"

    def test_nonstandard_id_warned_once(self):
        result = normalize_claim_graph({"claims": _claims("x1", "x2"), "edges": []})
        assert [w for w in result.warnings if w.startswith("Non-standard")] == ["Non-standard claim id: x1"]

    def test_nonstandard_id_warning_can_be_disabled(self):
        normalizer = ClaimGraphNormalizer(NormalizerConfig(warn_nonstandard_ids=False))
        result = normalizer.normalize({"claims": _claims("x1"), "edges": []})
        assert not any(w.startswith("Non-standard") for w in result.warnings)

    def test_empty_relationships_warning(self):
        result = normalize_claim_graph({"claims": _claims("c_0")})
        assert "No determinants or edges present; proceeding with empty relationships" in result.warnings

    def test_raise_for_errors(self):
        result = normalize_claim_graph({"claims": [{"id": "c_0"}]})
        with pytest.raises(MappingRejected) as exc_info:
            result.raise_for_errors()
        assert len(exc_info.value.errors) == 2
        assert "claims[0].label" in str(exc_info.value)


@pytest.mark.unit
class TestDeterminants:

    @pytest.mark.parametrize("n", [2, 3, 4, 5])
    def test_intrinsic_clique(self, n):
        ids = [f"c_{i}" for i in range(n)]
        raw = {
            "claims": _claims(*ids),
            "determinants": [{"type": "intrinsic", "fork": "f", "hinge": "h", "question": "Which?", "claims": ids}],
        }
        edges = normalize_claim_graph(raw).output.edges
        assert len(edges) == n * (n - 1) // 2
        assert len({e.pair_key for e in edges}) == len(edges)
        assert all(e.question == "Which?" and e.type == "conflict" for e in edges)

    def test_paths_keys_take_precedence(self):
        compiled = compile_determinants([
            {
                "type": "intrinsic", "fork": "f", "hinge": "h", "question": "Q",
                "claims": ["c_0"], "paths": {"c_1": "go fast", "c_2": "go slow"},
            }
        ])
        assert [(e["from"], e["to"]) for e in compiled.edges] == [("c_1", "c_2")]
        assert compiled.determinants[0].paths == {"c_1": "go fast", "c_2": "go slow"}

    def test_single_claim_intrinsic_warns(self):
        compiled = compile_determinants([{"type": "intrinsic", "fork": "f", "hinge": "h", "question": "Q", "claims": ["c_0"]}])
        assert compiled.edges == []
        assert "determinants[0].claims has <2 items; no conflict edges derived" in compiled.warnings
        assert isinstance(compiled.determinants[0], IntrinsicDeterminant)

    def test_extrinsic_gate_default_id(self):
        compiled = compile_determinants([
            {"type": "intrinsic", "fork": "f", "hinge": "h", "question": "Q", "claims": ["c_0", "c_1"]},
            {"type": "extrinsic", "fork": "f", "hinge": "h", "question": "Budget?", "claims": ["c_1", "c_2"]},
        ])
        assert compiled.conditionals == [
            {"id": "det_ext_2", "question": "Budget?", "affectedClaims": ["c_1", "c_2"]}
        ]
        det = compiled.determinants[1]
        assert isinstance(det, ExtrinsicDeterminant)
        assert det.id == "det_ext_2"

    def test_extrinsic_gate_explicit_id(self):
        compiled = compile_determinants([
            {"type": "extrinsic", "id": "g_team", "fork": "f", "hinge": "h", "question": "Team?", "claims": ["c_0"]}
        ])
        assert compiled.conditionals[0]["id"] == "g_team"

    def test_one_pruner_per_extrinsic(self, raw_map):
        graph = normalize_claim_graph(raw_map).output
        assert len(graph.conditionals) == 1
        assert graph.conditionals[0].affected_claims == ("c_1", "c_3")

    @pytest.mark.parametrize(
        "det, warning",
        [
            ({"type": "other", "question": "Q", "claims": ["c_0"]}, "determinants[0].type is invalid; skipping"),
            ({"type": "intrinsic", "question": " ", "claims": ["c_0"]}, "determinants[0].question is empty; skipping"),
            ({"type": "extrinsic", "question": "Q", "claims": []}, "determinants[0].claims is empty; skipping"),
            ("not an object", "determinants[0] is not an object; skipping"),
        ],
    )
    def test_unusable_determinants_skipped(self, det, warning):
        compiled = compile_determinants([det])
        assert warning in compiled.warnings
        assert compiled.determinants == []
        assert compiled.edges == [] and compiled.conditionals == []

    def test_empty_fork_and_hinge_only_warn(self):
        compiled = compile_determinants([{"type": "extrinsic", "question": "Q", "claims": ["c_0"]}])
        assert "determinants[0].fork is empty" in compiled.warnings
        assert "determinants[0].hinge is empty" in compiled.warnings
        assert len(compiled.conditionals) == 1

    def test_determinants_surface_for_audit(self, graph):
        assert [d.type for d in graph.determinants] == ["intrinsic", "extrinsic"]

    def test_no_determinants_means_none(self):
        graph = normalize_claim_graph({"claims": _claims("c_0"), "edges": []}).output
        assert graph.determinants is None


@pytest.mark.unit
class TestEdges:

    def test_edge_sanitization(self):
        raw = {
            "claims": _claims("c_0", "c_1", "c_2"),
            "edges": [
                {"from": "c_0", "to": "c_1", "type": "conflicts", "question": "Speed or safety?"},
                {"from": "c_1", "to": "c_2", "type": "Conflict"},
                {"from": "c_0", "to": "c_2", "type": "tradeoff", "question": "ignored"},
                {"from": "c_0", "to": "c_1", "type": "supports"},
                {"from": "c_1", "to": "c_0", "type": "prerequisite"},
                {"from": "c_0", "type": "conflict"},
            ],
        }
        result = normalize_claim_graph(raw)
        edges = result.output.edges
        assert [(e.from_, e.to, e.question) for e in edges] == [
            ("c_0", "c_1", "Speed or safety?"),
            ("c_1", "c_2", None),
            ("c_0", "c_2", None),
        ]
        assert 'edges[3].type is "supports"; dropped (supports are derived later)' in result.warnings
        assert 'edges[4].type is unsupported ("prerequisite"); dropped' in result.warnings
        assert "edges[5] missing from/to; dropped" in result.warnings

    def test_null_question_is_serialized(self):
        raw = {"claims": _claims("c_0", "c_1"), "edges": [{"from": "c_0", "to": "c_1", "type": "conflict"}]}
        edge = normalize_claim_graph(raw).output.to_dict()["edges"][0]
        assert edge == {"from": "c_0", "to": "c_1", "type": "conflict", "question": None}

    def test_dangling_explicit_edge_dropped(self):
        raw = {"claims": _claims("c_0"), "edges": [{"from": "c_0", "to": "c_9", "type": "conflict"}]}
        result = normalize_claim_graph(raw)
        assert result.output.edges == ()
        assert 'edges[0] references unknown claim "c_9"; dropped' in result.warnings

    def test_dangling_edges_kept_when_disabled(self):
        raw = {"claims": _claims("c_0"), "edges": [{"from": "c_0", "to": "c_9", "type": "conflict"}]}
        result = normalize_claim_graph(raw, config=NormalizerConfig(drop_dangling_edges=False))
        assert len(result.output.edges) == 1

    def test_determinant_edges_to_unknown_claims_dropped(self):
        raw = {
            "claims": _claims("c_0", "c_1"),
            "determinants": [
                {"type": "intrinsic", "fork": "f", "hinge": "h", "question": "Q", "claims": ["c_0", "c_1", "c_ghost"]}
            ],
        }
        result = normalize_claim_graph(raw)
        assert [(e.from_, e.to) for e in result.output.edges] == [("c_0", "c_1")]
        assert 'edges[1] references unknown claim "c_ghost"; dropped' in result.warnings
        assert 'edges[2] references unknown claim "c_ghost"; dropped' in result.warnings


@pytest.mark.unit
class TestConditionalsAndNarrative:

    def test_explicit_conditionals(self):
        raw = {
            "claims": _claims("c_0", "c_1"),
            "edges": [],
            "conditionals": [
                {"id": "g_1", "question": "Remote team?", "affectedClaims": ["c_0"]},
                {"id": "g_2", "affectedClaims": ["c_1"]},
            ],
        }
        result = normalize_claim_graph(raw)
        assert [c.id for c in result.output.conditionals] == ["g_1"]
        assert "conditionals[1] is missing id/question/affectedClaims; dropped" in result.warnings

    def test_explicit_narrative_wins(self):
        raw = {"claims": _claims("c_0"), "narrative": "from map"}
        assert normalize_claim_graph(raw, "given").narrative == "given"
        assert normalize_claim_graph(raw).narrative == "from map"

    def test_string_input_is_parsed(self, model_response):
        result = ClaimGraphNormalizer().normalize(model_response)
        assert result.success is True
        assert len(result.output.claims) == 4
        assert result.narrative.startswith("The pivot is speed")

    def test_unparseable_string(self):
        result = ClaimGraphNormalizer().normalize("no structure at all")
        assert result.success is False
        assert result.errors[0].kind == MappingIssueKind.PARSE_FAILURE
