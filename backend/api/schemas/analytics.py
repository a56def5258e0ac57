"""Analytics dashboard schemas."""

from typing import List, Optional

from pydantic import BaseModel


class DailyCount(BaseModel):
    date: str
    count: int


class DailyAmount(BaseModel):
    date: str
    amount: float


class DailyRating(BaseModel):
    date: str
    rating: float


class CategoryCount(BaseModel):
    name: str
    count: int


class TopWorkflow(BaseModel):
    id: str
    name: str
    creator: Optional[str] = None
    downloads: int
    purchases: int
    average_rating: float
    total_reviews: int


class DashboardSummary(BaseModel):
    total_workflows: int
    total_sales: float
    average_rating: float
    period: str


class AnalyticsDashboardResponse(BaseModel):
    """Activity over the requested period, bucketed per day."""

    workflows_over_time: List[DailyCount]
    sales_over_time: List[DailyAmount]
    ratings_over_time: List[DailyRating]
    popular_categories: List[CategoryCount]
    top_workflows: List[TopWorkflow]
    summary: DashboardSummary
