from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from core.records import VERSIONS, ExperimentRecord, invalid_reasons, normalize_document, to_record
from core.stats import compute_comparison, compute_stats


logger = logging.getLogger(__name__)


def _split_valid(documents: Iterable[Mapping[str, Any]]) -> Tuple[List[ExperimentRecord], List[Dict[str, Any]]]:
    valid: List[ExperimentRecord] = []
    excluded: List[Dict[str, Any]] = []
    for raw in documents:
        doc = normalize_document(raw)
        reasons = invalid_reasons(doc)
        if reasons:
            logger.debug("excluding record %s: %s", doc["id"] or "<no id>", ", ".join(reasons))
            excluded.append({"id": doc["id"], "reasons": reasons})
            continue
        valid.append(to_record(doc))
    return valid, excluded


def valid_records(documents: Iterable[Mapping[str, Any]]) -> List[ExperimentRecord]:
    return _split_valid(documents)[0]


def build_analytics(documents: List[Mapping[str, Any]], *, percent_for_all: bool = False) -> Dict[str, Any]:
    """Build the analytics payload from raw stored documents.

    `documents` is expected newest-first; record order is kept within each group.
    """
    records, excluded = _split_valid(documents)
    optimized = [r for r in records if r.version == "optimized"]
    feature = [r for r in records if r.version == "feature"]
    for r in records:
        if r.version not in VERSIONS:
            logger.warning("record %s has unknown version %r, left out of both groups", r.id or "<no id>", r.version)

    optimized_stats = compute_stats(optimized)
    feature_stats = compute_stats(feature)
    comparison: List[Dict[str, Any]] = []
    if optimized_stats and feature_stats:
        comparison = compute_comparison(optimized_stats, feature_stats, percent_for_all=percent_for_all)

    debug = {
        "total_from_db": len(documents),
        "filtered_count": len(records),
        "optimized_count": len(optimized),
        "feature_count": len(feature),
        "excluded": excluded,
    }
    logger.info(
        "analytics: %d from db, %d valid (%d optimized, %d feature)",
        debug["total_from_db"],
        debug["filtered_count"],
        debug["optimized_count"],
        debug["feature_count"],
    )
    return {
        "data": {
            "total": {"count": len(records), "stats": compute_stats(records)},
            "optimized": {
                "count": len(optimized),
                "stats": optimized_stats,
                "results": [r.to_dict() for r in optimized],
            },
            "feature": {
                "count": len(feature),
                "stats": feature_stats,
                "results": [r.to_dict() for r in feature],
            },
            "comparison": comparison,
        },
        "debug": debug,
    }
