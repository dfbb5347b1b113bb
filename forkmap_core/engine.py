# Forkmap Engine - main entry point

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from forkmap_core.config import ForkmapConfig
from forkmap_core.graph.forcing_points import extract_forcing_points
from forkmap_core.graph.normalizer import NO_MAP_ISSUE, ClaimGraphNormalizer
from forkmap_core.parsing.json_extraction import ExtractionPath
from forkmap_core.parsing.unified_output import NarrativeAnchor, parse_unified_output
from forkmap_core.schema.forcing_points import ForcingPoint
from forkmap_core.schema.results import NormalizationResult
from forkmap_core.traversal.session import TraversalSession

logger = logging.getLogger(__name__)

NO_NARRATIVE_WARNING = "Mapping round has no narrative"


@dataclass
class MappingRound:
    """Everything one model response yields: the graph result and its decisions."""
    result: NormalizationResult
    forcing_points: list[ForcingPoint] = field(default_factory=list)
    anchors: list[NarrativeAnchor] = field(default_factory=list)
    extraction_path: ExtractionPath = ExtractionPath.NONE

    @property
    def success(self) -> bool:
        return self.result.success

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": self.result.to_dict(),
            "forcingPoints": [fp.to_dict() for fp in self.forcing_points],
            "anchors": [{"label": a.label, "id": a.id, "position": a.position} for a in self.anchors],
            "extractionPath": self.extraction_path.value,
        }


class MappingEngine:
    """Raw model text in, validated graph and ordered forcing points out."""

    def __init__(self, config: Optional[ForkmapConfig] = None):
        self.config = config or ForkmapConfig()
        self.normalizer = ClaimGraphNormalizer(self.config.runtime.normalizer)
        if self.config.runtime.debug.engine_debug:
            logger.debug(
                "Effective config: %s",
                json.dumps(self.config.runtime.to_safe_log_dict(), ensure_ascii=False),
            )

    def _prepare_text(self, text: Optional[str]) -> str:
        raw = str(text or "")
        limit = self.config.runtime.parsing.max_input_chars
        if len(raw) > limit:
            logger.warning("[Extract] Input truncated from %d to %d chars", len(raw), limit)
            raw = raw[:limit]
        debug = self.config.runtime.debug
        if debug.log_payloads:
            logger.debug("[Extract] Payload head: %r", raw[: debug.payload_preview_chars])
        return raw

    def map_text(self, text: Optional[str]) -> MappingRound:
        """
        Run one mapping round over a model response.

        Never raises on bad model output; failures are reported through
        `MappingRound.result`.
        """
        raw = self._prepare_text(text)
        unified = parse_unified_output(raw, repair=self.config.runtime.parsing.repair_enabled)

        if not unified.has_map:
            return MappingRound(
                result=NormalizationResult.parse_failure(NO_MAP_ISSUE),
                anchors=unified.anchors,
            )

        result = self.normalizer.normalize(unified.map_value, unified.narrative)
        if result.success and self.config.require_narrative and not result.narrative:
            result = result.model_copy(update={"warnings": result.warnings + (NO_NARRATIVE_WARNING,)})

        forcing_points = extract_forcing_points(result.output) if result.success and result.output else []
        logger.debug(
            "[Extract] Round mapped via %s: success=%s, %d forcing point(s)",
            unified.extraction_path.value, result.success, len(forcing_points),
        )
        return MappingRound(
            result=result,
            forcing_points=forcing_points,
            anchors=unified.anchors,
            extraction_path=unified.extraction_path,
        )

    def start_traversal(self, mapping_round: MappingRound) -> TraversalSession:
        """
        Fresh traversal over a successful round.

        Raises:
            MappingRejected: if the round failed normalization
        """
        graph = mapping_round.result.raise_for_errors()
        return TraversalSession(list(graph.claims), mapping_round.forcing_points, graph=graph)

    def restore_traversal(self, mapping_round: MappingRound, data: Any) -> TraversalSession:
        """Traversal over a successful round, reusing a persisted state that belongs to it."""
        graph = mapping_round.result.raise_for_errors()
        return TraversalSession.from_dict(
            data, graph, allow_mismatch=self.config.restore_mismatched_state
        )
