"""Default fusion options from the environment.

Values are read at call time so an updated `.env` or environment is picked up
without re-importing the module.

    FUSION_STRATEGY          priority | confidence | voting | consensus | first
    FUSION_TOLERANCE         relative numeric tolerance, e.g. 0.01
    FUSION_CONSENSUS_COUNT   members needed for the consensus strategy
    FUSION_MIN_CONFIDENCE    candidates below this are ignored
    FUSION_CONFLICT_DAMPING  confidence multiplier applied on conflict
    FUSION_LOG_LEVEL         log level used by the CLI
"""
import os
from typing import Any, Dict

from dotenv import load_dotenv

from .types import (
    DEFAULT_CONFLICT_DAMPING,
    DEFAULT_CONSENSUS_COUNT,
    DEFAULT_MIN_CONFIDENCE,
    DEFAULT_STRATEGY,
    DEFAULT_TOLERANCE,
    FusionOptions,
)


def _env(name: str, default: Any, cast=str):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        # malformed values fall back to the default rather than breaking startup
        return default


def load_options(overrides: Dict[str, Any] | None = None) -> FusionOptions:
    """Build FusionOptions from env, then apply non-None ``overrides``."""
    load_dotenv()
    values: Dict[str, Any] = {
        "strategy": _env("FUSION_STRATEGY", DEFAULT_STRATEGY).lower(),
        "tolerance": _env("FUSION_TOLERANCE", DEFAULT_TOLERANCE, float),
        "consensus_count": _env("FUSION_CONSENSUS_COUNT", DEFAULT_CONSENSUS_COUNT, int),
        "min_confidence": _env("FUSION_MIN_CONFIDENCE", DEFAULT_MIN_CONFIDENCE, float),
        "conflict_damping": _env("FUSION_CONFLICT_DAMPING", DEFAULT_CONFLICT_DAMPING, float),
    }
    for k, v in (overrides or {}).items():
        if v is not None:
            values[k] = v
    return FusionOptions.from_dict(values)


def log_level() -> str:
    load_dotenv()
    return _env("FUSION_LOG_LEVEL", "INFO").upper()
