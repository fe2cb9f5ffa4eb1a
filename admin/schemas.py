from typing import Optional

from pydantic import BaseModel, Field


class ApproveDepositRequest(BaseModel):
    txId: str = Field(min_length=1)


class ApproveWithdrawRequest(BaseModel):
    txId: str = Field(min_length=1)
    txHash: Optional[str] = None


class DeclineRequest(BaseModel):
    txId: str = Field(min_length=1)
    reason: Optional[str] = None


class CancelMembershipRequest(BaseModel):
    membershipId: str = Field(min_length=1)
