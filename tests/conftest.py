# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors

import json

import pytest

from forkmap_core.graph.forcing_points import extract_forcing_points
from forkmap_core.graph.normalizer import normalize_claim_graph
from forkmap_core.traversal.engine import init_traversal_state


def _claim(cid: str, label: str, supporters: list[int]) -> dict:
    return {
        "id": cid,
        "label": label,
        "text": f"{label}: reasoning offered by the models.",
        "supporters": supporters,
        "type": "prescriptive",
        "role": "branch",
    }


@pytest.fixture
def raw_map():
    """Release-planning map: a 3-way fork plus one staffing gate."""
    return {
        "claims": [
            _claim("c_0", "Ship now", [1, 2]),
            _claim("c_1", "Wait for QA", [3]),
            _claim("c_2", "Ship behind flag", [2]),
            _claim("c_3", "Hire contractors", [1]),
        ],
        "determinants": [
            {
                "type": "intrinsic",
                "fork": "release timing",
                "hinge": "risk tolerance",
                "question": "How fast do you need to ship?",
                "claims": ["c_0", "c_1", "c_2"],
            },
            {
                "type": "extrinsic",
                "fork": "staffing",
                "hinge": "budget",
                "question": "Do you have budget for extra staff?",
                "claims": ["c_1", "c_3"],
                "yes_means": "QA and contractors stay on the table",
                "no_means": "Drop options that need more people",
            },
        ],
        "edges": [],
    }


@pytest.fixture
def model_response(raw_map):
    """A model answer in the tagged map + narrative layout."""
    return (
        "Here is the map.\n"
        "<map>\n"
        f"{json.dumps(raw_map, indent=2)}\n"
        "</map>\n"
        "<narrative>\n"
        "The pivot is speed: [Ship now|c_0] against **[Wait for QA|c_1]**.\n"
        "</narrative>\n"
    )


@pytest.fixture
def graph(raw_map):
    result = normalize_claim_graph(raw_map)
    assert result.success, result.errors
    return result.output


@pytest.fixture
def forcing_points(graph):
    return extract_forcing_points(graph)


@pytest.fixture
def state(graph):
    return init_traversal_state(graph.claims, graph)
