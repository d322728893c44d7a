from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class StatsModel(BaseModel):
    count: int
    avg_duration: float
    median_duration: float
    min_duration: float
    max_duration: float
    avg_mental_demand: float
    avg_physical_demand: float
    avg_temporal_demand: float
    avg_performance: float
    avg_effort: float
    avg_frustration: float


class WorkloadModel(BaseModel):
    mental_demand: float
    physical_demand: float
    temporal_demand: float
    performance: float
    effort: float
    frustration: float


class RecordModel(BaseModel):
    id: str
    version: str
    start_time: str
    end_time: str
    duration: float
    duration_minutes: float
    confirmation_code: str
    nasatlx: WorkloadModel
    created_at: str


class ComparisonRowModel(BaseModel):
    metric: str
    label: str
    optimized: float
    feature: float
    difference: float
    difference_percent: float


class TotalModel(BaseModel):
    count: int
    stats: Optional[StatsModel] = None


class GroupModel(TotalModel):
    results: List[RecordModel] = Field(default_factory=list)


class AnalyticsDataModel(BaseModel):
    total: TotalModel
    optimized: GroupModel
    feature: GroupModel
    comparison: List[ComparisonRowModel] = Field(default_factory=list)


class ExcludedModel(BaseModel):
    id: str
    reasons: List[str]


class DebugModel(BaseModel):
    total_from_db: int
    filtered_count: int
    optimized_count: int
    feature_count: int
    excluded: List[ExcludedModel] = Field(default_factory=list)


class AnalyticsResponse(BaseModel):
    success: bool = True
    data: AnalyticsDataModel
    debug: DebugModel


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
