"""Like API request/response schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class LikeRequest(BaseModel):
    """Request model for liking a movie."""

    tmdb_id: int = Field(..., gt=0, description="Catalog movie id")
    title: Optional[str] = Field(None, max_length=256, description="Title snapshot")


class LikeResponse(BaseModel):
    """A liked movie."""

    tmdb_id: int
    title: str
    created_at: datetime


class LikeListResponse(BaseModel):
    """Response model for a user's likes."""

    likes: List[LikeResponse]
    total: int
