from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class DepositRequest(BaseModel):
    coin: str
    amount: Decimal = Field(gt=0)
    membershipTier: Optional[str] = None


class WithdrawRequest(BaseModel):
    coin: str
    amount: Decimal = Field(gt=0)
    address: Optional[str] = None


class TransferRequest(BaseModel):
    recipient: str = Field(min_length=1)
    coin: str
    amount: Decimal = Field(gt=0)


class VerifyPaymentRequest(BaseModel):
    txId: str
