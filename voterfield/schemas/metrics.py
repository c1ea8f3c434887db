from pydantic import BaseModel


class MetricsSummary(BaseModel):
    total_voters: int
    total_interactions: int
    contacted_count: int
    completion_percentage: float
    result_breakdown: dict[str, int]
    assignments_by_status: dict[str, int]
