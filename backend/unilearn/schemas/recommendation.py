"""AI recommendation schemas."""

from unilearn.schemas.common import APIModel


class RecommendationResponse(APIModel):
    id: str
    title: str
    description: str
    type: str
    is_read: bool
    created_at: str


class RecommendationListResponse(APIModel):
    recommendations: list[RecommendationResponse]
