import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from core.constants import MembershipStatus, TransactionStatus
from core.database import Base
from core.types import CoinAmount


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)



# USER

class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)

    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    bio = Column(Text, nullable=True)

    # plain reference, memberships already point back at users
    active_membership_id = Column(String(36), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # Relationships
    balances = relationship("Balance", back_populates="user", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="user")
    memberships = relationship("Membership", back_populates="user")


# BALANCES

class Balance(Base):
    __tablename__ = "balances"
    __table_args__ = (
        UniqueConstraint("user_id", "coin", name="uq_balances_user_coin"),
        CheckConstraint("amount >= 0", name="ck_balances_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    coin = Column(String(10), nullable=False)
    amount = Column(CoinAmount(), nullable=False, default=0)

    user = relationship("User", back_populates="balances")


# TRANSACTIONS

class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    type = Column(String, nullable=False)
    # DEPOSIT | WITHDRAW | TRANSFER | PAYOUT | MEMBERSHIP_PAYOUT

    coin = Column(String(10), nullable=False)
    amount = Column(CoinAmount(), nullable=False)
    status = Column(String, nullable=False, default=TransactionStatus.PENDING)
    meta = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="transactions")


# MEMBERSHIPS

class Membership(Base):
    __tablename__ = "memberships"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    tier = Column(String(10), nullable=False)
    status = Column(String, nullable=False, default=MembershipStatus.ACTIVE)
    # ACTIVE | COMPLETED | CANCELLED

    start_date = Column(DateTime(timezone=True), default=_utcnow)
    duration_days = Column(Integer, nullable=False)
    days_paid = Column(Integer, nullable=False, default=0)
    daily_amount = Column(CoinAmount(), nullable=False)
    bonus_amount = Column(CoinAmount(), nullable=False, default=0)
    bonus_paid = Column(Boolean, nullable=False, default=False)

    last_payout = Column(DateTime(timezone=True), nullable=True)
    # calendar date of last_payout in the payout timezone
    last_payout_date = Column(Date, nullable=True)

    source_tx_id = Column(String(36), ForeignKey("transactions.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)

    user = relationship("User", back_populates="memberships")
