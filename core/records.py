from __future__ import annotations

import numbers
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd


VERSIONS = ("optimized", "feature")
DEFAULT_VERSION = "feature"

SUBSCALES = (
    "mental_demand",
    "physical_demand",
    "temporal_demand",
    "performance",
    "effort",
    "frustration",
)

# canonical snake_case -> stored camelCase
SUBSCALE_FIELDS = {
    "mental_demand": "mentalDemand",
    "physical_demand": "physicalDemand",
    "temporal_demand": "temporalDemand",
    "performance": "performance",
    "effort": "effort",
    "frustration": "frustration",
}

TOP_LEVEL_FIELDS = {
    "start_time": "startTime",
    "end_time": "endTime",
    "confirmation_code": "confirmationCode",
    "created_at": "createdAt",
}


@dataclass(frozen=True)
class Workload:
    mental_demand: float
    physical_demand: float
    temporal_demand: float
    performance: float
    effort: float
    frustration: float


@dataclass(frozen=True)
class ExperimentRecord:
    id: str
    version: str
    start_time: datetime
    end_time: datetime
    duration: float
    confirmation_code: str
    nasatlx: Workload
    created_at: datetime

    @property
    def duration_minutes(self) -> float:
        return self.duration / 1000 / 60

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "version": self.version,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration": self.duration,
            "duration_minutes": self.duration_minutes,
            "confirmation_code": self.confirmation_code,
            "nasatlx": asdict(self.nasatlx),
            "created_at": self.created_at.isoformat(),
        }


def _first_present(doc: Mapping[str, Any], *keys: str) -> Any:
    """Return the first value that is not None, mirroring `a ?? b`."""
    for key in keys:
        value = doc.get(key)
        if value is not None:
            return value
    return None


def is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return not pd.isna(value)


def normalize_document(doc: Mapping[str, Any]) -> Dict[str, Any]:
    """Map a stored document onto the canonical snake_case shape.

    Both naming conventions are accepted; camelCase wins when a document carries
    both. Values are passed through untouched so that validity checks still see
    the stored types.
    """
    raw_scores = doc.get("nasatlx")
    scores: Mapping[str, Any] = raw_scores if isinstance(raw_scores, Mapping) else {}
    out: Dict[str, Any] = {
        "id": str(doc["_id"]) if doc.get("_id") is not None else "",
        "version": doc.get("version"),
        "duration": doc.get("duration"),
        "has_nasatlx": isinstance(raw_scores, Mapping),
        "nasatlx": {key: _first_present(scores, camel, key) for key, camel in SUBSCALE_FIELDS.items()},
    }
    for key, camel in TOP_LEVEL_FIELDS.items():
        out[key] = _first_present(doc, camel, key)
    return out


def invalid_reasons(doc: Mapping[str, Any]) -> List[str]:
    reasons: List[str] = []
    if not doc.get("has_nasatlx"):
        reasons.append("nasatlx")
    scores = doc.get("nasatlx") or {}
    for key in SUBSCALES:
        if not is_number(scores.get(key)):
            reasons.append(f"nasatlx.{key}")
    duration = doc.get("duration")
    if not is_number(duration) or duration <= 0:
        reasons.append("duration")
    for key in ("start_time", "end_time"):
        if parse_datetime(doc.get(key)) is None:
            reasons.append(key)
    return reasons


def is_valid(doc: Mapping[str, Any]) -> bool:
    return not invalid_reasons(doc)


def parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        ts = pd.to_datetime(value)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def _as_datetime(value: Any) -> datetime:
    return parse_datetime(value) or datetime.now()


def to_record(doc: Mapping[str, Any]) -> ExperimentRecord:
    """Build a typed record from a normalized, valid document."""
    version = doc.get("version")
    scores = doc.get("nasatlx") or {}
    return ExperimentRecord(
        id=doc.get("id") or "",
        version=str(version) if version else DEFAULT_VERSION,
        start_time=_as_datetime(doc.get("start_time")),
        end_time=_as_datetime(doc.get("end_time")),
        duration=float(doc["duration"]),
        confirmation_code=str(doc.get("confirmation_code") or ""),
        nasatlx=Workload(**{key: float(scores.get(key) or 0) for key in SUBSCALES}),
        created_at=_as_datetime(doc.get("created_at")),
    )
