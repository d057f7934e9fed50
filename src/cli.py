"""Command-line entrypoint: fuse a CSV of extracted candidates into one row per record."""
import argparse
import json
import logging
import sys
from collections import defaultdict
from dataclasses import asdict
from typing import Any, Dict, List

import pandas as pd

from src.prodfuse.config import load_options, log_level
from src.prodfuse.errors import FusionError
from src.prodfuse.fuser import check_strategy, fuse_candidates
from src.prodfuse.merger import traversal_order
from src.prodfuse.types import DEFAULT_DOCUMENT_CONFIDENCE, Candidate, Evidence, FusionOptions
from src.prodfuse.utils import coerce_value, is_missing, normalize_text, read_csv, rows_from_df, save_csv


logger = logging.getLogger("prodfuse.cli")


def group_candidates(rows: List[Dict[str, Any]]) -> Dict[str, Dict[str, List[Candidate]]]:
    """Group CSV rows into {record_id: {field: [Candidate, ...]}} preserving input order."""
    records: Dict[str, Dict[str, List[Candidate]]] = {}
    for row in rows:
        record_id = normalize_text(row.get("id"))
        field = normalize_text(row.get("field"))
        value = coerce_value(row.get("value"))
        if not field or value is None:
            continue
        conf = row.get("confidence")
        try:
            cand = Candidate(
                value=value,
                source=normalize_text(row.get("source")) or "unknown",
                confidence=DEFAULT_DOCUMENT_CONFIDENCE if is_missing(conf) else float(conf),
            )
        except ValueError as e:
            logger.warning("Skipping candidate id=%s field=%s: %s", record_id, field, e)
            continue
        records.setdefault(record_id, defaultdict(list))[field].append(cand)
    return records


def fuse_record(fields: Dict[str, List[Candidate]], options: FusionOptions):
    """Fuse every field of one record. Returns (output columns, evidence list)."""
    out: Dict[str, Any] = {}
    evidence: List[Evidence] = []
    conflicts = 0
    for field in traversal_order(list(fields)):
        err, result = fuse_candidates(fields[field], options)
        if err:
            raise err
        out[field] = result.value
        out[f"fusion_source_{field}"] = result.source
        out[f"fusion_confidence_{field}"] = round(result.confidence, 4)
        conflicts += int(result.had_conflict)
        evidence.append(Evidence(
            field=field,
            chosen_source=result.source,
            resolution=result.resolution,
            confidence=result.confidence,
            value=result.value,
            had_conflict=result.had_conflict,
        ))
    out["fusion_conflicts"] = conflicts
    return out, evidence


def run_pipeline(
    input_path: str,
    output_path: str,
    evidence_path: str | None = None,
    strategy: str | None = None,
    tolerance: float | None = None,
    consensus_count: int | None = None,
) -> None:
    logging.basicConfig(level=log_level(), format="%(asctime)s %(levelname)s %(message)s")

    options = load_options({
        "strategy": strategy,
        "tolerance": tolerance,
        "consensus_count": consensus_count,
    })
    check_strategy(options)

    df = read_csv(input_path)
    rows = rows_from_df(df)
    logger.info("Fusing %d candidate rows with strategy=%s tolerance=%s", len(rows), options.strategy, options.tolerance)

    results: List[Dict[str, Any]] = []
    evidence_log: Dict[str, List[Dict[str, Any]]] = {}

    for record_id, fields in group_candidates(rows).items():
        try:
            out, evidence = fuse_record(fields, options)
        except FusionError as e:
            logger.warning("Record id=%s could not be fused: %s", record_id, e)
            results.append({"id": record_id, "error": str(e)})
            continue
        results.append({"id": record_id, **out})
        evidence_log[record_id] = [asdict(e) for e in evidence]

    save_csv(pd.DataFrame(results), output_path)
    logger.info(f"Output saved to {output_path}")

    if evidence_path:
        with open(evidence_path, "w", encoding="utf-8") as f:
            json.dump(evidence_log, f, indent=2, ensure_ascii=False, default=str)
        logger.info(f"Evidence saved to {evidence_path}")


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Fuse conflicting extraction candidates per record.")
    parser.add_argument("--input", required=True, help="CSV with columns id, field, value, source, confidence")
    parser.add_argument("--output", required=True, help="Where to write the fused CSV")
    parser.add_argument("--evidence", help="Optional JSON evidence log path")
    parser.add_argument("--strategy", help="priority | confidence | voting | consensus | first")
    parser.add_argument("--tolerance", type=float, help="Relative numeric tolerance (0.01 = 1%%)")
    parser.add_argument("--consensus-count", type=int, help="Agreeing candidates needed for consensus")
    args = parser.parse_args(argv)

    try:
        run_pipeline(
            input_path=args.input,
            output_path=args.output,
            evidence_path=args.evidence,
            strategy=args.strategy,
            tolerance=args.tolerance,
            consensus_count=args.consensus_count,
        )
    except FusionError as e:
        logger.error("%s", e)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
