"""Source reliability table.

Machine-readable markup ranks above social preview metadata, which ranks
above free-text heuristics. Weights are only used to break ties and to
weight votes; they never exclude a candidate.
"""
from types import MappingProxyType
from typing import Mapping


SOURCE_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "jsonld": 1.0,
    "microdata": 0.8,
    "opengraph": 0.6,
    "context": 0.5,
    "semantic": 0.45,
    "pattern": 0.3,
})

# weight given to sources missing from the table
UNKNOWN_SOURCE_WEIGHT = 0.0


def source_weight(source: str) -> float:
    return SOURCE_WEIGHTS.get(source, UNKNOWN_SOURCE_WEIGHT)
