"""Spreadsheet -> MongoDB importer for study sessions.

Reads the first sheet of the results workbook with every cell as text, maps each
row onto the stored ExperimentResult shape and writes the batch with a single
insert. Lenient by default: unknown version labels and unparseable dates fall
back (feature / current time) with a warning; `strict=True` turns those into
`ImportRowError`.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd
from pymongo.collection import Collection

from core.config import Settings
from core.records import DEFAULT_VERSION, parse_datetime
from core.storage import connect, get_collection, insert_results


logger = logging.getLogger(__name__)

COLUMNS = {
    "version": "版本",
    "start_time": "开始时间",
    "end_time": "完成时间",
    "minutes": "耗时(分)",
    "confirmation_code": "确认码",
    "mental_demand": "心理需求",
    "physical_demand": "体力需求",
    "temporal_demand": "时间压力",
    "performance": "自身表现",
    "effort": "努力程度",
    "frustration": "挫败感",
}

VERSION_LABELS = {
    "对照版": "feature",
    "优化版": "optimized",
    "feature": "feature",
    "optimized": "optimized",
}

SCORE_FIELDS = {
    "mentalDemand": "mental_demand",
    "physicalDemand": "physical_demand",
    "temporalDemand": "temporal_demand",
    "performance": "performance",
    "effort": "effort",
    "frustration": "frustration",
}

_SPLIT_RE = re.compile(r"[\s/:]+")
_SLASH_DATE_RE = re.compile(r"^\s*\d{1,4}/\d{1,2}/\d{1,2}(\s+\d{1,2}(:\d{1,2}){0,2})?\s*$")
_LEADING_NUMBER_RE = re.compile(r"^\s*[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?")


class ImportRowError(ValueError):
    """A row could not be converted and strict mode is on."""


def read_rows(path: Path) -> List[Dict[str, Optional[str]]]:
    """First sheet as row dicts: string cells, None for blanks."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"spreadsheet not found: {path}")
    df = pd.read_excel(path, sheet_name=0, dtype=str)
    df.columns = [str(c).strip() for c in df.columns]
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")


def _present(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def map_version(label: Any, *, strict: bool = False) -> str:
    key = str(label).strip() if label is not None else ""
    version = VERSION_LABELS.get(key)
    if version is None:
        if strict:
            raise ImportRowError(f"unknown version label {label!r}")
        logger.warning("unknown version label %r, defaulting to %r", label, DEFAULT_VERSION)
        return DEFAULT_VERSION
    return version


def manual_parse(text: str) -> datetime:
    """Parse `year/month/day hour:minute`; two-digit years are 20xx."""
    parts = [p for p in _SPLIT_RE.split(text.strip()) if p]
    if len(parts) < 3:
        raise ValueError(f"not enough date parts in {text!r}")
    year = f"20{parts[0]}" if len(parts[0]) == 2 else parts[0]
    hour = parts[3] if len(parts) > 3 else "0"
    minute = parts[4] if len(parts) > 4 else "0"
    return datetime(int(year), int(parts[1]), int(parts[2]), int(hour), int(minute))


def parse_timestamp(value: Any, *, now: datetime, strict: bool = False) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        # year/month/day first, so `25/11/3` is not read as a day-first date
        parsers = (manual_parse, parse_datetime) if _SLASH_DATE_RE.match(value) else (parse_datetime, manual_parse)
        for parser in parsers:
            try:
                parsed = parser(value)
            except ValueError:
                continue
            if parsed is not None:
                return parsed
    if strict:
        raise ImportRowError(f"unparseable timestamp {value!r}")
    logger.warning("unparseable timestamp %r, using ingestion time", value)
    return now


def _leading_number(value: Any) -> Optional[float]:
    match = _LEADING_NUMBER_RE.match(str(value))
    return float(match.group(0)) if match else None


def compute_duration_ms(minutes: Any, start: datetime, end: datetime) -> float:
    if minutes is not None:
        value = _leading_number(minutes)
        if value is not None:
            return value * 60 * 1000
    return (end - start).total_seconds() * 1000


def coerce_score(value: Any) -> float:
    if value is None:
        return 0.0
    return _leading_number(value) or 0.0


def build_document(row: Mapping[str, Any], *, now: datetime, strict: bool = False) -> Dict[str, Any]:
    start = parse_timestamp(row.get(COLUMNS["start_time"]), now=now, strict=strict)
    end = parse_timestamp(row.get(COLUMNS["end_time"]), now=now, strict=strict)
    return {
        "version": map_version(row.get(COLUMNS["version"]), strict=strict),
        "startTime": start,
        "endTime": end,
        "duration": compute_duration_ms(row.get(COLUMNS["minutes"]), start, end),
        "confirmationCode": str(row.get(COLUMNS["confirmation_code"]) or "").strip(),
        "nasatlx": {field: coerce_score(row.get(COLUMNS[key])) for field, key in SCORE_FIELDS.items()},
        "createdAt": now,
    }


def import_rows(rows: List[Mapping[str, Any]], *, now: Optional[datetime] = None, strict: bool = False) -> List[Dict[str, Any]]:
    now = now or datetime.now()
    required = (COLUMNS["version"], COLUMNS["start_time"], COLUMNS["end_time"])
    kept = [row for row in rows if all(_present(row.get(c)) for c in required)]
    if len(kept) < len(rows):
        logger.info("skipped %d rows missing version/start/end", len(rows) - len(kept))
    return [build_document(row, now=now, strict=strict) for row in kept]


def run_import(
    settings: Settings,
    *,
    path: Optional[Path] = None,
    strict: bool = False,
    dry_run: bool = False,
    collection: Optional[Collection] = None,
) -> int:
    path = Path(path or settings.excel_path)
    logger.info("reading %s", path)
    rows = read_rows(path)
    logger.info("read %d rows", len(rows))
    if not rows:
        logger.info("spreadsheet has no data rows")
        return 0
    logger.debug("first raw row: %r", rows[0])

    documents = import_rows(rows, strict=strict)
    logger.info("converted %d rows", len(documents))
    if documents:
        logger.debug("first document: %r", documents[0])
    if dry_run:
        logger.info("dry run, nothing written")
        return len(documents)

    if collection is not None:
        insert_results(collection, documents)
        return len(documents)

    client = connect(settings)
    try:
        insert_results(get_collection(settings, client), documents)
    finally:
        client.close()
    return len(documents)
