"""Data types shared by the fusion engine.

- Candidate: one source's proposed value for a field
- FusionOptions: strategy selection and tuning knobs
- FusionResult: resolved value for a single field
- Evidence: audit entry for a merged field
- DataConflict: record of a field whose sources disagreed
- SourceDocument: partial product record produced by one source
- MergeOutcome: merged product plus its evidence log
"""
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple


DEFAULT_STRATEGY = "priority"
DEFAULT_TOLERANCE = 0.0
DEFAULT_CONSENSUS_COUNT = 2
DEFAULT_MIN_CONFIDENCE = 0.0
DEFAULT_CONFLICT_DAMPING = 0.9
DEFAULT_DOCUMENT_CONFIDENCE = 0.8


def _check_confidence(value: float) -> float:
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"confidence must be within [0, 1], got {value}")
    return value


@dataclass(frozen=True)
class Candidate:
    value: Any
    source: str
    confidence: float

    def __post_init__(self):
        object.__setattr__(self, "confidence", _check_confidence(self.confidence))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Candidate":
        """Build a candidate from the ``{value, source, confidence}`` dict extractors emit."""
        return cls(
            value=data.get("value"),
            source=str(data.get("source", "unknown")),
            confidence=DEFAULT_DOCUMENT_CONFIDENCE if data.get("confidence") is None else data["confidence"],
        )


@dataclass(frozen=True)
class FusionOptions:
    """Options controlling how candidates are resolved.

    Attributes:
        strategy: priority, confidence, voting, consensus or first
        tolerance: relative distance under which two numbers are equal (0.01 = 1%)
        consensus_count: members a cluster needs for the consensus strategy
        min_confidence: candidates below this are ignored unless nothing is left
        conflict_damping: multiplier applied to the winner's confidence on conflict
    """
    strategy: str = DEFAULT_STRATEGY
    tolerance: float = DEFAULT_TOLERANCE
    consensus_count: int = DEFAULT_CONSENSUS_COUNT
    min_confidence: float = DEFAULT_MIN_CONFIDENCE
    conflict_damping: float = DEFAULT_CONFLICT_DAMPING

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "FusionOptions":
        """Accept both snake_case and camelCase keys; missing keys take defaults."""
        data = data or {}

        def pick(*keys, default):
            for k in keys:
                if data.get(k) is not None:
                    return data[k]
            return default

        return cls(
            strategy=str(pick("strategy", default=DEFAULT_STRATEGY)),
            tolerance=float(pick("tolerance", default=DEFAULT_TOLERANCE)),
            consensus_count=int(pick("consensus_count", "consensusCount", default=DEFAULT_CONSENSUS_COUNT)),
            min_confidence=float(pick("min_confidence", "minConfidence", default=DEFAULT_MIN_CONFIDENCE)),
            conflict_damping=float(pick("conflict_damping", "conflictDamping", default=DEFAULT_CONFLICT_DAMPING)),
        )


@dataclass(frozen=True)
class FusionResult:
    value: Any
    source: str
    confidence: float
    had_conflict: bool
    resolution: str
    sources: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Evidence:
    field: str
    chosen_source: str
    resolution: str
    confidence: float
    value: Any = None
    had_conflict: bool = False


@dataclass(frozen=True)
class DataConflict:
    field: str
    values: Tuple[Candidate, ...]
    resolution: str
    resolved_value: Any


@dataclass(frozen=True)
class SourceDocument:
    data: Mapping[str, Any]
    source: str
    confidence: float = DEFAULT_DOCUMENT_CONFIDENCE

    def __post_init__(self):
        object.__setattr__(self, "confidence", _check_confidence(self.confidence))

    @classmethod
    def from_dict(cls, doc: Mapping[str, Any]) -> "SourceDocument":
        conf = doc.get("confidence")
        return cls(
            data=doc.get("data") or {},
            source=str(doc.get("source", "unknown")),
            confidence=DEFAULT_DOCUMENT_CONFIDENCE if conf is None else conf,
        )


@dataclass(frozen=True)
class MergeOutcome:
    product: Dict[str, Any]
    evidence: Tuple[Evidence, ...]
    conflicts: Tuple[DataConflict, ...] = ()
    confidence: float = 0.0
    extraction_methods: Tuple[str, ...] = ()
