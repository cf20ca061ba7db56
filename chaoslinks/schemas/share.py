from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class ShareCreateRequest(BaseModel):
    """Body of POST /api/share."""
    model_config = ConfigDict(populate_by_name=True)

    map_type: str = Field(..., alias="mapType")
    parameters: Dict[str, Any]


class ShareCreateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    short_code: str = Field(..., alias="shortCode")
    share_url: str = Field(..., alias="shareUrl")
    expires_at: datetime = Field(..., alias="expiresAt")
    remaining: int


class SharedConfigurationResponse(BaseModel):
    """Public view of a share, returned by GET /api/shared/{code}."""
    model_config = ConfigDict(populate_by_name=True)

    short_code: str = Field(..., alias="shortCode")
    username: str
    map_type: str = Field(..., alias="mapType")
    parameters: Dict[str, Any]
    view_count: int = Field(..., alias="viewCount")
    created_at: datetime = Field(..., alias="createdAt")
    expires_at: datetime = Field(..., alias="expiresAt")
    days_remaining: int = Field(..., alias="daysRemaining")
    # parameters outside the ranges where the map is known to behave
    warnings: List[str] = Field(default_factory=list)
