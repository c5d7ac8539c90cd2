"""Pydantic schemas for product plans and builder generation."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProductCreate(BaseModel):
    """A product suggestion the user chose to build (camelCase as suggested)."""

    session_id: Optional[str] = Field(None, alias="sessionId")
    name: Optional[str] = None
    description: Optional[str] = None
    product_type: Optional[str] = Field(None, alias="productType")
    tagline: Optional[str] = None
    mvp_scope: Optional[Any] = Field(None, alias="mvpScope")
    revenue_model: Optional[str] = Field(None, alias="revenueModel")
    time_to_launch: Optional[str] = Field(None, alias="timeToLaunch")
    difficulty: Optional[str] = None
    estimated_earnings: Optional[str] = Field(None, alias="estimatedEarnings")
    skills_match: Optional[List[str]] = Field(None, alias="skillsMatch")
    match_score: Optional[int] = Field(None, alias="matchScore")

    model_config = ConfigDict(populate_by_name=True)


class ProductUpdate(BaseModel):
    """Fields a client may change on a product; anything else is ignored."""

    name: Optional[str] = None
    tagline: Optional[str] = None
    description: Optional[str] = None
    product_type: Optional[str] = None
    core_features: Optional[List[Any]] = None
    tech_stack: Optional[List[Any]] = None
    pricing_model: Optional[str] = None
    price_point: Optional[str] = None
    revenue_potential: Optional[str] = None
    build_time: Optional[str] = None
    build_difficulty: Optional[str] = None
    mvp_scope: Optional[str] = None
    go_to_market_strategy: Optional[str] = None
    target_launch_date: Optional[date] = None
    status: Optional[str] = None
    is_favorite: Optional[bool] = None
    notes: Optional[str] = None
    raw_analysis: Optional[Dict[str, Any]] = None


class ProductResponse(BaseModel):
    id: str
    user_id: str
    session_id: Optional[str] = None
    name: str
    tagline: Optional[str] = None
    description: Optional[str] = None
    product_type: Optional[str] = None
    core_features: Optional[List[Any]] = None
    tech_stack: Optional[List[Any]] = None
    pricing_model: Optional[str] = None
    price_point: Optional[str] = None
    revenue_potential: Optional[str] = None
    build_time: Optional[str] = None
    build_difficulty: Optional[str] = None
    mvp_scope: Optional[str] = None
    go_to_market_strategy: Optional[str] = None
    target_launch_date: Optional[date] = None
    status: str
    is_favorite: bool
    notes: Optional[str] = None
    raw_analysis: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BuilderGenerateRequest(BaseModel):
    task_id: Optional[str] = Field(None, alias="taskId")
    prompt: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    product_type: Optional[str] = Field(None, alias="productType")

    model_config = ConfigDict(populate_by_name=True)
