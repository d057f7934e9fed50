"""Group candidate values into clusters of "equal enough" values.

Numbers are compared by relative distance, strings case-insensitively.
Clusters are the connected components of the pairwise equality relation.
"""
from dataclasses import dataclass
from numbers import Real
from typing import Any, List, Sequence, Tuple

from .types import Candidate
from .weights import source_weight


def is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def values_equal(a: Any, b: Any, tolerance: float = 0.0) -> bool:
    """Return True when two candidate values should be treated as the same value."""
    if is_number(a) and is_number(b):
        a, b = float(a), float(b)
        if a == b:
            return True
        scale = max(abs(a), abs(b), 1.0)
        return abs(a - b) / scale <= max(tolerance, 0.0)
    if is_number(a) or is_number(b):
        return False
    if isinstance(a, str) and isinstance(b, str):
        return a.casefold() == b.casefold()
    return a == b


def candidate_weight(c: Candidate) -> float:
    return c.confidence * source_weight(c.source)


@dataclass(frozen=True)
class Cluster:
    """Candidates judged equal, in input order.

    first_index is the input position of the earliest member and is used as
    the final deterministic tie-break.
    """
    members: Tuple[Candidate, ...]
    first_index: int

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def weight(self) -> float:
        return sum(candidate_weight(c) for c in self.members)

    @property
    def best(self) -> Candidate:
        # max() keeps the first of equal elements, i.e. first-seen wins ties
        return max(self.members, key=candidate_weight)

    @property
    def is_numeric(self) -> bool:
        return all(is_number(c.value) for c in self.members)

    @property
    def distinct_sources(self) -> Tuple[str, ...]:
        seen: List[str] = []
        for c in self.members:
            if c.source not in seen:
                seen.append(c.source)
        return tuple(seen)


def cluster_candidates(candidates: Sequence[Candidate], tolerance: float = 0.0) -> List[Cluster]:
    """Partition candidates into clusters.

    Union-find over every pair, so membership does not depend on input order.
    """
    n = len(candidates)
    parent = list(range(n))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    for i in range(n):
        for j in range(i + 1, n):
            if values_equal(candidates[i].value, candidates[j].value, tolerance):
                ri, rj = find(i), find(j)
                if ri != rj:
                    # keep the lowest index as root so roots are first members
                    parent[max(ri, rj)] = min(ri, rj)

    groups: dict = {}
    for i in range(n):
        groups.setdefault(find(i), []).append(i)

    return [
        Cluster(members=tuple(candidates[i] for i in idxs), first_index=root)
        for root, idxs in sorted(groups.items())
    ]


def all_equal(candidates: Sequence[Candidate], tolerance: float = 0.0) -> bool:
    return len(cluster_candidates(candidates, tolerance)) <= 1


def rank_clusters(clusters: Sequence[Cluster]) -> List[Cluster]:
    """Order clusters best first: weight, then size, then source weight of the best member, then first seen."""
    return sorted(
        clusters,
        key=lambda cl: (-cl.weight, -cl.size, -source_weight(cl.best.source), cl.first_index),
    )
