"""Checkout, purchase and earnings schemas."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class CheckoutRequest(BaseModel):
    workflow_id: str = Field(min_length=1, description="Workflow to buy")


class CheckoutResponse(BaseModel):
    session_id: str = Field(description="Payment processor checkout session id")
    url: str = Field(description="Hosted checkout page")
    simulated: bool = Field(default=False, description="True when no payment processor is configured")


class PurchaseCheckResponse(BaseModel):
    has_purchased: bool


class PurchaseResponse(BaseModel):
    id: str
    workflow_id: str
    workflow_name: Optional[str] = None
    amount: float
    currency: str
    status: str
    created_at: Optional[datetime] = None


class EarningsResponse(BaseModel):
    id: str
    purchase_id: str
    amount: float
    status: str
    created_at: Optional[datetime] = None


class EarningsSummaryResponse(BaseModel):
    earnings: List[EarningsResponse]
    totals: Dict[str, float] = Field(description="Sum of earnings per payout status")


class WebhookAck(BaseModel):
    received: bool = True
    processed: bool = True
    outcome: Optional[str] = None
