"""Merge partial product records from several sources into one record.

Every leaf field found in any source is fused independently with the
caller's options. Evidence is logged in schema traversal order.
"""
import copy
import logging
from collections import defaultdict
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import EmptyInputError, FusionError
from .fuser import OptionsLike, as_options, check_strategy, fuse
from .types import Candidate, DataConflict, Evidence, MergeOutcome, SourceDocument

logger = logging.getLogger("prodfuse.merger")

# Known leaf paths in traversal order. Paths not listed here are visited
# afterwards in the order they were first seen.
PRODUCT_SCHEMA: Tuple[str, ...] = (
    "name",
    "price.amount",
    "price.currency",
    "price.original_value",
    "reference",
    "sku",
    "ean",
    "gtin13",
    "gtin14",
    "brand",
    "model",
    "category",
    "description",
    "weight.value",
    "weight.unit",
    "weight.original_value",
    "weight.original_unit",
    "dimensions.length",
    "dimensions.width",
    "dimensions.height",
    "dimensions.diameter",
    "dimensions.unit",
    "battery.capacity",
    "battery.voltage",
    "battery.power",
    "battery.type",
    "availability",
    "stock_quantity",
    "condition",
    "warranty",
    "color",
    "size",
    "material",
    "images",
)

SourceLike = Union[SourceDocument, Mapping[str, Any]]


def iter_leaves(data: Mapping[str, Any], prefix: str = "") -> Iterator[Tuple[str, Any]]:
    """Yield (dotted_path, value) for every non-mapping value; None counts as absent."""
    for key, value in data.items():
        path = f"{prefix}{key}"
        if isinstance(value, Mapping):
            yield from iter_leaves(value, prefix=f"{path}.")
        elif value is not None:
            yield path, value


def set_path(record: Dict[str, Any], path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    node = record
    for part in parents:
        if not isinstance(node.get(part), dict):
            node[part] = {}
        node = node[part]
    node[leaf] = copy.deepcopy(value)


def shadowed_paths(seen: Sequence[str]) -> List[str]:
    """Paths holding a scalar where another source nests fields below them.

    ``price`` is shadowed when some source also has ``price.amount``; a
    record cannot hold both, so the nested fields are kept.
    """
    return [p for p in seen if any(q.startswith(f"{p}.") for q in seen)]


def traversal_order(seen: Sequence[str]) -> List[str]:
    rank = {p: i for i, p in enumerate(PRODUCT_SCHEMA)}
    known = sorted((p for p in seen if p in rank), key=rank.__getitem__)
    extra = [p for p in seen if p not in rank]
    return known + extra


def _as_documents(sources: Sequence[SourceLike]) -> List[SourceDocument]:
    return [s if isinstance(s, SourceDocument) else SourceDocument.from_dict(s) for s in sources]


def merge(sources: Sequence[SourceLike], options: OptionsLike = None) -> MergeOutcome:
    """Merge source documents; raises FusionError subclasses."""
    opts = as_options(options)
    docs = _as_documents(sources)
    if not docs:
        raise EmptyInputError("No source documents supplied")
    check_strategy(opts)

    field_candidates: Dict[str, List[Candidate]] = defaultdict(list)
    seen: List[str] = []
    methods: List[str] = []

    for doc in docs:
        if doc.source not in methods:
            methods.append(doc.source)
        for path, value in iter_leaves(doc.data):
            if path not in field_candidates:
                seen.append(path)
            field_candidates[path].append(
                Candidate(value=value, source=doc.source, confidence=doc.confidence)
            )

    product: Dict[str, Any] = {}
    evidence: List[Evidence] = []
    conflicts: List[DataConflict] = []

    shadowed = shadowed_paths(seen)
    for path in shadowed:
        logger.debug("dropping %s, other sources nest fields below it", path)

    for path in traversal_order([p for p in seen if p not in shadowed]):
        candidates = field_candidates[path]
        result = fuse(candidates, opts)
        set_path(product, path, result.value)
        evidence.append(Evidence(
            field=path,
            chosen_source=result.source,
            resolution=result.resolution,
            confidence=result.confidence,
            value=result.value,
            had_conflict=result.had_conflict,
        ))
        if result.had_conflict:
            conflicts.append(DataConflict(
                field=path,
                values=tuple(candidates),
                resolution=result.resolution,
                resolved_value=result.value,
            ))
            logger.debug("conflict on %s resolved to %r (%s)", path, result.value, result.resolution)

    overall = sum(e.confidence for e in evidence) / len(evidence) if evidence else 0.0

    return MergeOutcome(
        product=product,
        evidence=tuple(evidence),
        conflicts=tuple(conflicts),
        confidence=overall,
        extraction_methods=tuple(methods),
    )


def merge_product_data(
    sources: Sequence[SourceLike],
    options: OptionsLike = None,
) -> Tuple[Optional[FusionError], Optional[MergeOutcome]]:
    """Public wrapper around ``merge`` returning ``(error, outcome)``."""
    try:
        return None, merge(sources, options)
    except FusionError as e:
        logger.debug("merge failed: %s", e)
        return e, None
