"""Conflict resolution strategies.

Each resolver takes a non-empty list of candidates and the fusion options and
returns a Resolved describing the chosen value. Resolvers are pure: they
never look at anything but their arguments.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence, Tuple

from .clustering import Cluster, candidate_weight, cluster_candidates, rank_clusters
from .types import Candidate, FusionOptions
from .weights import source_weight


@dataclass(frozen=True)
class Resolved:
    value: Any
    winner: Candidate
    resolution: str
    contributors: Tuple[Candidate, ...]

    @property
    def sources(self) -> Tuple[str, ...]:
        out: List[str] = []
        for c in self.contributors:
            if c.source not in out:
                out.append(c.source)
        return tuple(out)


def _pick(candidates: Sequence[Candidate], key: Callable[[Candidate], tuple]) -> Candidate:
    # max() returns the first maximal element, so input order settles exact ties
    return max(candidates, key=key)


def resolve_priority(candidates: Sequence[Candidate], options: FusionOptions) -> Resolved:
    winner = _pick(candidates, lambda c: (source_weight(c.source), c.confidence))
    return Resolved(
        value=winner.value,
        winner=winner,
        resolution=f"priority: selected {winner.source} (source weight {source_weight(winner.source):.2f})",
        contributors=(winner,),
    )


def resolve_confidence(candidates: Sequence[Candidate], options: FusionOptions) -> Resolved:
    winner = _pick(candidates, lambda c: (c.confidence, source_weight(c.source)))
    return Resolved(
        value=winner.value,
        winner=winner,
        resolution=f"confidence: selected {winner.source} (confidence {winner.confidence:.2f})",
        contributors=(winner,),
    )


def weighted_average(cluster: Cluster) -> float:
    weights = [candidate_weight(c) for c in cluster.members]
    total = sum(weights)
    values = [float(c.value) for c in cluster.members]
    if total <= 0:
        return sum(values) / len(values)
    avg = sum(v * w for v, w in zip(values, weights)) / total
    # keep the average inside the observed range despite float rounding
    return min(max(avg, min(values)), max(values))


def _averaged(cluster: Cluster) -> bool:
    # identical values keep their own type, 10 and 10 stay an int
    return cluster.is_numeric and any(c.value != cluster.best.value for c in cluster.members)


def _cluster_value(cluster: Cluster) -> Any:
    if _averaged(cluster):
        return weighted_average(cluster)
    # one value for the whole cluster, rendered like its strongest member
    return cluster.best.value


def resolve_voting(candidates: Sequence[Candidate], options: FusionOptions) -> Resolved:
    ranked = rank_clusters(cluster_candidates(candidates, options.tolerance))
    top = ranked[0]
    value = _cluster_value(top)
    if _averaged(top):
        how = f"weighted average of {top.size} values"
    else:
        how = f"{top.size} of {len(candidates)} candidates agree"
    return Resolved(
        value=value,
        winner=top.best,
        resolution=f"voting: {how} (cluster weight {top.weight:.2f}, {len(ranked)} clusters)",
        contributors=top.members,
    )


def resolve_consensus(candidates: Sequence[Candidate], options: FusionOptions) -> Resolved:
    needed = max(options.consensus_count, 1)
    ranked = rank_clusters(cluster_candidates(candidates, options.tolerance))
    agreeing = [cl for cl in ranked if cl.size >= needed]
    if agreeing:
        top = agreeing[0]
        return Resolved(
            value=top.best.value,
            winner=top.best,
            resolution=(
                f"consensus: {top.size} sources agree "
                f"({', '.join(top.distinct_sources)}), needed {needed}"
            ),
            contributors=top.members,
        )

    largest = max(cl.size for cl in ranked)
    fallback = resolve_priority(candidates, options)
    return Resolved(
        value=fallback.value,
        winner=fallback.winner,
        resolution=(
            f"consensus not reached (largest agreement {largest}, needed {needed}); "
            f"fell back to {fallback.resolution}"
        ),
        contributors=fallback.contributors,
    )


def resolve_first(candidates: Sequence[Candidate], options: FusionOptions) -> Resolved:
    winner = candidates[0]
    return Resolved(
        value=winner.value,
        winner=winner,
        resolution=f"first: took {winner.source} (first in input order)",
        contributors=(winner,),
    )


RESOLVERS: Dict[str, Callable[[Sequence[Candidate], FusionOptions], Resolved]] = {
    "priority": resolve_priority,
    "confidence": resolve_confidence,
    "voting": resolve_voting,
    "consensus": resolve_consensus,
    "first": resolve_first,
}
