"""Payment collaborator schemas"""

from typing import Optional
from pydantic import BaseModel, Field


class CapturedPayment(BaseModel):
    """Payment capture reported back by the payment processor"""
    external_transaction_id: str
    payment_session_token: Optional[str] = None  # checkout session the payment was made in
    amount_cents: int = Field(..., ge=0)
    processor_fee_cents: int = Field(0, ge=0)
    platform_fee_cents: Optional[int] = Field(None, ge=0)  # defaults to PLATFORM_FEE_PERCENT


class RefundResult(BaseModel):
    refund_id: str
    amount_cents: int
    status: str


class ChargeResult(BaseModel):
    charge_id: Optional[str] = None
    succeeded: bool
    failure_reason: Optional[str] = None
