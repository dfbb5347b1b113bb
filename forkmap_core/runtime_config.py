from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any


_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})
_FALSY = frozenset({"0", "false", "no", "n", "off"})


def _parse_bool(raw: Any, *, default: bool) -> bool:
    """Env flag; anything unrecognised (including blank) keeps `default`."""
    if isinstance(raw, bool):
        return raw
    token = "" if raw is None else str(raw).strip().lower()
    if token in _TRUTHY:
        return True
    if token in _FALSY:
        return False
    return default


def _parse_int(raw: Any, *, default: int, min_v: int, max_v: int) -> int:
    """Env integer clamped to [min_v, max_v]. Bools and garbage fall back to `default`."""
    value = default
    if isinstance(raw, int) and not isinstance(raw, bool):
        value = raw
    elif isinstance(raw, str) and raw.strip():
        try:
            value = int(raw.strip())
        except ValueError:
            value = default
    return min(max_v, max(min_v, value))


@dataclass(frozen=True)
class ParsingConfig:
    # Second attempt per candidate through the repair pipeline.
    repair_enabled: bool = True
    # Longer inputs are truncated before parsing.
    max_input_chars: int = 2_000_000


@dataclass(frozen=True)
class NormalizerConfig:
    warn_nonstandard_ids: bool = True
    # Explicit edges naming an unknown claim are dropped; determinant edges are always kept.
    drop_dangling_edges: bool = True


@dataclass(frozen=True)
class EngineDebugFlags:
    engine_debug: bool = False
    # Logs raw model text at DEBUG; may contain user content.
    log_payloads: bool = False
    payload_preview_chars: int = 240


@dataclass(frozen=True)
class EngineRuntimeConfig:
    parsing: ParsingConfig = ParsingConfig()
    normalizer: NormalizerConfig = NormalizerConfig()
    debug: EngineDebugFlags = EngineDebugFlags()

    @staticmethod
    def load_from_env() -> "EngineRuntimeConfig":
        parsing = ParsingConfig(
            repair_enabled=_parse_bool(os.getenv("FORKMAP_JSON_REPAIR"), default=True),
            max_input_chars=_parse_int(
                os.getenv("FORKMAP_MAX_INPUT_CHARS"), default=2_000_000, min_v=1_000, max_v=50_000_000
            ),
        )

        normalizer = NormalizerConfig(
            warn_nonstandard_ids=_parse_bool(os.getenv("FORKMAP_WARN_NONSTANDARD_IDS"), default=True),
            drop_dangling_edges=_parse_bool(os.getenv("FORKMAP_DROP_DANGLING_EDGES"), default=True),
        )

        debug = EngineDebugFlags(
            engine_debug=_parse_bool(os.getenv("FORKMAP_ENGINE_DEBUG"), default=False),
            log_payloads=_parse_bool(os.getenv("FORKMAP_LOG_PAYLOADS"), default=False),
            payload_preview_chars=_parse_int(
                os.getenv("FORKMAP_PAYLOAD_PREVIEW_CHARS"), default=240, min_v=40, max_v=10_000
            ),
        )

        return EngineRuntimeConfig(parsing=parsing, normalizer=normalizer, debug=debug)

    def to_safe_log_dict(self) -> dict[str, Any]:
        return {
            "parsing": {
                "repair_enabled": bool(self.parsing.repair_enabled),
                "max_input_chars": int(self.parsing.max_input_chars),
            },
            "normalizer": {
                "warn_nonstandard_ids": bool(self.normalizer.warn_nonstandard_ids),
                "drop_dangling_edges": bool(self.normalizer.drop_dangling_edges),
            },
            "debug": {
                "engine_debug": bool(self.debug.engine_debug),
                "log_payloads": bool(self.debug.log_payloads),
                "payload_preview_chars": int(self.debug.payload_preview_chars),
            },
        }
