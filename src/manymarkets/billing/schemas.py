"""Pydantic schemas for billing API requests."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BillingAction(BaseModel):
    """Body of POST /api/billing."""

    action: Optional[str] = None
    product_id: Optional[str] = Field(None, alias="productId")

    model_config = ConfigDict(populate_by_name=True)


class FeatureCheck(BaseModel):
    feature_id: Optional[str] = Field(None, alias="featureId")
    required_balance: int = Field(1, alias="requiredBalance")

    model_config = ConfigDict(populate_by_name=True)


class UsageTrack(BaseModel):
    feature_id: Optional[str] = Field(None, alias="featureId")
    value: int = 1

    model_config = ConfigDict(populate_by_name=True)


class PaddleCheckout(BaseModel):
    product_id: Optional[str] = Field(None, alias="productId")

    model_config = ConfigDict(populate_by_name=True)
