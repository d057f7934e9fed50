"""Fuse the candidates proposed for one field into a single value.

``fuse`` raises FusionError subclasses; ``fuse_candidates`` is the public
entry point and returns ``(error, result)`` with exactly one of them set.
"""
import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .clustering import all_equal
from .errors import EmptyInputError, FusionError, UnknownStrategyError
from .strategies import RESOLVERS, Resolved
from .types import Candidate, FusionOptions, FusionResult
from .weights import SOURCE_WEIGHTS  # noqa: F401  re-exported for callers

logger = logging.getLogger("prodfuse.fuser")

MIN_RESULT_CONFIDENCE = 0.01

CandidateLike = Union[Candidate, Mapping[str, Any]]
OptionsLike = Union[FusionOptions, Mapping[str, Any], None]


def as_candidates(items: Iterable[CandidateLike]) -> List[Candidate]:
    return [c if isinstance(c, Candidate) else Candidate.from_dict(c) for c in items]


def as_options(options: OptionsLike) -> FusionOptions:
    if isinstance(options, FusionOptions):
        return options
    return FusionOptions.from_dict(options)


def check_strategy(options: FusionOptions) -> None:
    if options.strategy not in RESOLVERS:
        raise UnknownStrategyError(options.strategy)


def _clamp(conf: float) -> float:
    return min(max(conf, MIN_RESULT_CONFIDENCE), 1.0)


def _conflict_confidence(
    resolved: Resolved,
    candidates: Sequence[Candidate],
    options: FusionOptions,
) -> float:
    """Lower the winner's confidence to reflect disagreement.

    Under the confidence strategy the damped value never drops below a
    losing candidate's own confidence, so the winner still outranks them.
    """
    conf = resolved.winner.confidence
    damped = conf * min(max(options.conflict_damping, 0.0), 1.0)
    if options.strategy == "confidence":
        others = list(candidates)
        others.remove(resolved.winner)
        if others:
            damped = max(damped, max(c.confidence for c in others))
    return min(damped, conf)


def fuse(candidates: Sequence[CandidateLike], options: OptionsLike = None) -> FusionResult:
    """Resolve a list of candidates with the strategy named in ``options``.

    Raises:
        EmptyInputError: no candidates
        UnknownStrategyError: strategy is not one of RESOLVERS
    """
    opts = as_options(options)
    cands = as_candidates(candidates)
    if not cands:
        raise EmptyInputError("No candidates supplied")

    if len(cands) == 1:
        only = cands[0]
        return FusionResult(
            value=only.value,
            source=only.source,
            confidence=_clamp(only.confidence),
            had_conflict=False,
            resolution=f"single candidate from {only.source}, no conflict",
            sources=(only.source,),
        )

    check_strategy(opts)

    # weak candidates are ignored unless that would leave nothing
    pool = [c for c in cands if c.confidence >= opts.min_confidence] or cands

    had_conflict = not all_equal(cands, opts.tolerance)
    # first takes input order as is, confidence plays no part
    resolved = RESOLVERS[opts.strategy](cands if opts.strategy == "first" else pool, opts)

    if had_conflict:
        confidence = _conflict_confidence(resolved, cands, opts)
    else:
        confidence = resolved.winner.confidence

    logger.debug(
        "fused %d candidates with %s: value=%r source=%s conflict=%s",
        len(cands), opts.strategy, resolved.value, resolved.winner.source, had_conflict,
    )

    return FusionResult(
        value=resolved.value,
        source=resolved.winner.source,
        confidence=_clamp(confidence),
        had_conflict=had_conflict,
        resolution=resolved.resolution,
        sources=resolved.sources,
    )


def fuse_candidates(
    candidates: Sequence[CandidateLike],
    options: OptionsLike = None,
) -> Tuple[Optional[FusionError], Optional[FusionResult]]:
    """Public wrapper around ``fuse`` that returns errors instead of raising them."""
    try:
        return None, fuse(candidates, options)
    except FusionError as e:
        logger.debug("fusion failed: %s", e)
        return e, None
